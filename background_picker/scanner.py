"""Recursive image discovery under a scan root.

Follows symlinked directories but enters each physical directory (device,
inode) at most once, so link cycles end. Unreadable directories are
reported and skipped; the walk itself never fails part-way.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

from background_picker.errors import ScanError
from background_picker.logger import get_logger
from background_picker.path_utils import abs_path_str
from background_picker.thumbnail_engine.formats import format_for_extension
from background_picker.thumbnail_engine.models import SourceImage

_logger = get_logger("scanner")


def is_image_file(path: str | Path) -> bool:
    return format_for_extension(os.path.splitext(str(path))[1]) is not None


def _dir_identity(path: str) -> tuple[int, int] | None:
    try:
        st = os.stat(path)
    except OSError:
        return None
    return st.st_dev, st.st_ino


def scan_images(root: str | Path) -> Iterator[SourceImage]:
    """Yield a SourceImage for every image file under ``root``.

    Lazy and restartable: every call walks the tree again from scratch.
    Order is deterministic (directories and files sorted by name).
    """
    root_str = abs_path_str(root)
    visited: set[tuple[int, int]] = set()
    root_id = _dir_identity(root_str)
    if root_id is not None:
        visited.add(root_id)

    def _on_error(exc: OSError) -> None:
        err = ScanError(exc.filename or root_str, exc.strerror or str(exc))
        _logger.warning("%s", err)

    found = 0
    for dirpath, dirnames, filenames in os.walk(root_str, onerror=_on_error, followlinks=True):
        keep: list[str] = []
        for name in sorted(dirnames):
            ident = _dir_identity(os.path.join(dirpath, name))
            if ident is None or ident in visited:
                if ident is not None:
                    _logger.debug("skipping already visited directory: %s", os.path.join(dirpath, name))
                continue
            visited.add(ident)
            keep.append(name)
        # os.walk descends into whatever is left in dirnames
        dirnames[:] = keep

        for name in sorted(filenames):
            if not is_image_file(name):
                continue
            full = os.path.join(dirpath, name)
            try:
                image = SourceImage.from_path(full)
            except OSError as exc:
                _logger.debug("skipping %s: %s", full, exc)
                continue
            found += 1
            yield image
    _logger.debug("scan finished: root=%s images=%d", root_str, found)
