"""Batch ("pregenerate") mode: fill the cache for a whole tree and report.

Exit policy: any image that ends without a stored cache entry, whether the
decode failed or only the write did, makes the run exit with status 1.
A run where everything was cached or generated exits 0, including a run over
a tree with no images at all.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass

from background_picker.logger import get_logger

from .metrics import metrics
from .models import SizeClass
from .orchestrator import ImageRequest, ThumbnailOrchestrator

_logger = get_logger("pregenerate")

PROGRESS_THRESHOLD = 50
PROGRESS_EVERY = 100


@dataclass
class PregenerateSummary:
    total: int = 0
    cached: int = 0
    generated: int = 0
    failed: int = 0
    not_stored: int = 0
    elapsed: float = 0.0

    @property
    def exit_code(self) -> int:
        return 1 if (self.failed or self.not_stored) else 0

    def describe(self) -> str:
        text = f"Thumbnail generation complete: {self.cached} cached, {self.generated} generated"
        if self.failed:
            text += f", {self.failed} failed"
        if self.not_stored:
            text += f", {self.not_stored} not cached"
        return f"{text} ({self.elapsed:.1f}s)"


def pregenerate(
    orchestrator: ThumbnailOrchestrator,
    images: Iterable[ImageRequest],
    size_class: SizeClass,
) -> PregenerateSummary:
    """Drain ``orchestrator.ensure`` over ``images`` and count the outcomes."""
    requests = list(images)
    summary = PregenerateSummary(total=len(requests))
    if not requests:
        _logger.info("No images found to pregenerate thumbnails for")
        return summary

    _logger.info("Generating %s thumbnails for %d images...", size_class.value, len(requests))
    start = time.perf_counter()
    show_progress = len(requests) > PROGRESS_THRESHOLD
    done = 0
    for result in orchestrator.ensure(requests, size_class):
        done += 1
        if not result.ok:
            summary.failed += 1
        elif result.cached:
            summary.cached += 1
        else:
            summary.generated += 1
            if not result.stored:
                summary.not_stored += 1
        if show_progress and (done % PROGRESS_EVERY == 0 or done == len(requests)):
            _logger.info("Progress: %d/%d images processed", done, len(requests))
    summary.elapsed = time.perf_counter() - start

    _logger.info(summary.describe())
    _logger.debug("pipeline: %s", metrics.snapshot().describe())
    return summary

