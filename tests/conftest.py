"""Pytest configuration.

The Qt bridge tests need a QApplication; one is created for the whole
session as early as possible (when PySide6 is installed) and shut down at
the end.

Every test gets its own XDG cache/config homes so nothing touches the real
``~/.cache/thumbnails`` or user settings, and starts with empty metrics.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import numpy as np
import pytest

from background_picker.thumbnail_engine.metrics import metrics

_APP: Any | None = None


def pytest_configure(config) -> None:  # noqa: ARG001
    """Ensure a QApplication exists before collecting/running tests."""

    # Import lazily so non-Qt environments can still import this conftest.
    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        return

    # Headless test runs have no display; default to the offscreen platform.
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

    global _APP

    app = QApplication.instance()
    if app is None:
        # Keep a strong ref so it isn't GC'd mid-session.
        _APP = QApplication([])
    else:
        _APP = app


def pytest_sessionfinish(session, exitstatus) -> None:  # noqa: ARG001
    """Attempt a clean Qt shutdown to avoid lingering threads at interpreter exit."""

    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        return

    app = QApplication.instance()
    if app is None:
        return

    app.quit()
    app.processEvents()


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path_factory, monkeypatch):
    xdg = tmp_path_factory.mktemp("xdg").resolve()
    monkeypatch.setenv("XDG_CACHE_HOME", str(xdg / "cache"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg / "config"))
    monkeypatch.delenv("BACKGROUND_PICKER_LOG_LEVEL", raising=False)
    monkeypatch.delenv("BACKGROUND_PICKER_LOG_CATS", raising=False)
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def root(tmp_path) -> Path:
    """Scan root with symlinks resolved, so paths compare equal to scanned ones."""
    path = tmp_path.resolve() / "pictures"
    path.mkdir()
    return path


@pytest.fixture
def cache_root(tmp_path) -> Path:
    return tmp_path.resolve() / "thumbnails"


def gradient(width: int, height: int, bands: int = 3) -> np.ndarray:
    arr = np.zeros((height, width, bands), dtype=np.uint8)
    arr[..., 0] = np.linspace(0, 255, width, dtype=np.uint8)[None, :]
    arr[..., 1] = np.linspace(255, 0, height, dtype=np.uint8)[:, None]
    if bands == 4:
        arr[..., 3] = 200
    return arr


@pytest.fixture
def write_image():
    """Write a real image file through libvips; the suffix picks the format."""
    pyvips = pytest.importorskip("pyvips")

    def _write(path: Path, width: int = 64, height: int = 48, bands: int = 3) -> Path:
        arr = gradient(width, height, bands)
        image = pyvips.Image.new_from_memory(arr.tobytes(), width, height, bands, "uchar")
        image = image.copy(interpretation="srgb")
        path.parent.mkdir(parents=True, exist_ok=True)
        image.write_to_file(str(path))
        return path

    return _write
