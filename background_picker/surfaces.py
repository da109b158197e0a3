"""Interactive mode: hand thumbnails to a display surface as they complete.

A surface only sees finished results, in whatever order they complete, and
must cope with paths that never get a thumbnail.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable
from typing import Protocol, TextIO

from .folder_tree import FolderTree
from .logger import get_logger
from .thumbnail_engine.models import SizeClass, ThumbnailResult
from .thumbnail_engine.orchestrator import ImageRequest, ThumbnailOrchestrator

_logger = get_logger("surfaces")


class DisplaySurface(Protocol):
    def thumbnail_ready(self, result: ThumbnailResult) -> None: ...

    def finished(self) -> None: ...


class ConsoleSurface:
    """Writes one tab-separated line per ready thumbnail.

    Columns: path relative to the scan root, cache artifact path, WxH.
    Meant to be piped into an external picker; failures go to the log only,
    so every printed line is a usable thumbnail.
    """

    def __init__(self, tree: FolderTree, artifact_path, stream: TextIO | None = None) -> None:
        self._tree = tree
        self._artifact_path = artifact_path
        self._stream = stream or sys.stdout
        self.shown = 0
        self.missing = 0

    def thumbnail_ready(self, result: ThumbnailResult) -> None:
        entry = result.entry
        if entry is None:
            self.missing += 1
            return
        relative = self._tree.relative_path(result.path)
        artifact = self._artifact_path(entry.key, entry.size_class) if result.stored else "-"
        self._stream.write(f"{relative}\t{artifact}\t{entry.width}x{entry.height}\n")
        self._stream.flush()
        self.shown += 1

    def finished(self) -> None:
        _logger.debug("console surface: %d shown, %d without thumbnail", self.shown, self.missing)


def stream_to_surface(
    orchestrator: ThumbnailOrchestrator,
    images: Iterable[ImageRequest],
    size_class: SizeClass,
    surface: DisplaySurface,
) -> int:
    """Feed results to ``surface`` as they complete; returns how many arrived."""
    count = 0
    try:
        for result in orchestrator.ensure(images, size_class):
            surface.thumbnail_ready(result)
            count += 1
    finally:
        surface.finished()
    return count
