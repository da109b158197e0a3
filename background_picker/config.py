"""Run configuration: scan root, size class, worker bound and mode.

Values come from the settings file and are overridden by command line
flags. `PickerConfig.validate` is the single gate before any scanning: a
failure there raises ConfigurationError and the program stops.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import ConfigurationError
from .path_utils import abs_path
from .settings_manager import SettingsManager
from .thumbnail_engine.cache_store import default_cache_root
from .thumbnail_engine.models import SizeClass
from .thumbnail_engine.orchestrator import default_worker_count


@dataclass(frozen=True)
class PickerConfig:
    scan_root: Path
    size_class: SizeClass
    workers: int
    cache_root: Path
    pregenerate: bool = False
    debug: bool = False

    def validate(self) -> PickerConfig:
        root = self.scan_root
        if not root.exists():
            raise ConfigurationError(f"scan root does not exist: {root}")
        if not root.is_dir():
            raise ConfigurationError(f"scan root is not a directory: {root}")
        if not os.access(root, os.R_OK | os.X_OK):
            raise ConfigurationError(f"scan root is not readable: {root}")
        if self.workers < 1:
            raise ConfigurationError(f"worker count must be at least 1, got {self.workers}")
        return self


def _workers(value: Any) -> int:
    if value in (None, ""):
        return default_worker_count()
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"worker count must be an integer, got {value!r}") from None


def build_config(
    settings: SettingsManager,
    *,
    directory: str | None = None,
    thumbnail_size: str | int | None = None,
    workers: int | None = None,
    cache_dir: str | None = None,
    pregenerate: bool = False,
    debug: bool = False,
) -> PickerConfig:
    """Merge flags over settings and validate. Raises ConfigurationError."""
    size_value = thumbnail_size if thumbnail_size is not None else settings.get("thumbnail_size")
    cache_value = cache_dir if cache_dir is not None else settings.get("cache_dir")
    config = PickerConfig(
        scan_root=abs_path(directory if directory is not None else settings.get("directory")),
        size_class=SizeClass.parse(size_value),
        workers=_workers(workers if workers is not None else settings.get("workers")),
        cache_root=abs_path(cache_value) if cache_value else default_cache_root(),
        pregenerate=pregenerate,
        debug=debug,
    )
    return config.validate()
