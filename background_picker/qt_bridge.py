"""Qt hand-off for a graphical presentation layer.

The thumbnail stream runs in a worker QThread; results cross to the GUI
thread as queued signals carrying plain ``QImage`` copies. No QPixmap or
widget is created here. The selection side exposes exactly one absolute
path per choice and nothing about what the host does with it.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterable

import numpy as np
from PySide6.QtCore import QObject, QThread, Signal, Slot
from PySide6.QtGui import QImage

from .logger import get_logger
from .path_utils import abs_path_str
from .thumbnail_engine.models import CacheEntry, SizeClass
from .thumbnail_engine.orchestrator import ImageRequest, ThumbnailOrchestrator

_logger = get_logger("qt_bridge")


def entry_to_qimage(entry: CacheEntry) -> QImage:
    rgb = np.array(entry.pixels, dtype=np.uint8, copy=True, order="C")
    h, w, _ = rgb.shape
    # .copy() detaches the QImage from the numpy buffer.
    return QImage(rgb.data, w, h, w * 3, QImage.Format.Format_RGB888).copy()


class ThumbnailStreamWorker(QObject):
    """Drains `ThumbnailOrchestrator.ensure` and re-emits results as signals.

    Meant to run via `QThread.started`; see `ThumbnailStream`.
    """

    thumbnail_ready = Signal(str, QImage)  # path, thumbnail
    thumbnail_failed = Signal(str, str)  # path, message
    finished = Signal(int)  # number of results delivered

    def __init__(
        self,
        orchestrator: ThumbnailOrchestrator,
        images: Iterable[ImageRequest],
        size_class: SizeClass,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._orchestrator = orchestrator
        self._images = list(images)
        self._size_class = size_class
        self._stopped = False

    def stop(self) -> None:
        self._stopped = True

    @Slot()
    def run(self) -> None:
        delivered = 0
        try:
            for result in self._orchestrator.ensure(self._images, self._size_class):
                if self._stopped:
                    break
                if result.entry is None:
                    self.thumbnail_failed.emit(result.path, str(result.error or "no thumbnail"))
                else:
                    self.thumbnail_ready.emit(result.path, entry_to_qimage(result.entry))
                delivered += 1
        finally:
            _logger.debug("thumbnail stream finished: delivered=%d stopped=%s", delivered, self._stopped)
            self.finished.emit(delivered)


class ThumbnailStream(QObject):
    """Owns the worker thread for one thumbnail stream."""

    thumbnail_ready = Signal(str, QImage)
    thumbnail_failed = Signal(str, str)
    finished = Signal(int)

    def __init__(self, orchestrator: ThumbnailOrchestrator, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._orchestrator = orchestrator
        self._thread: QThread | None = None
        self._worker: ThumbnailStreamWorker | None = None

    def start(self, images: Iterable[ImageRequest], size_class: SizeClass) -> None:
        self.stop()
        worker = ThumbnailStreamWorker(self._orchestrator, images, size_class)
        thread = QThread(self)
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.thumbnail_ready.connect(self.thumbnail_ready)
        worker.thumbnail_failed.connect(self.thumbnail_failed)
        worker.finished.connect(self.finished)
        worker.finished.connect(thread.quit)
        worker.finished.connect(worker.deleteLater)
        thread.finished.connect(thread.deleteLater)

        self._thread = thread
        self._worker = worker
        thread.start()

    def stop(self, timeout_ms: int = 250) -> None:
        try:
            if self._worker is not None:
                self._worker.stop()
            if self._thread is not None:
                with contextlib.suppress(RuntimeError):
                    self._thread.quit()
                    self._thread.wait(timeout_ms)
        finally:
            self._worker = None
            self._thread = None


class SelectionBridge(QObject):
    """Publishes the image the user picked; the host decides what to run."""

    image_selected = Signal(str)  # absolute path

    def __init__(self, known_paths: Iterable[str] | None = None, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._known = {abs_path_str(p) for p in known_paths} if known_paths is not None else None

    @Slot(str, result=bool)
    def select(self, path: str) -> bool:
        absolute = abs_path_str(path)
        if self._known is not None and absolute not in self._known:
            _logger.warning("selection ignored, not a scanned image: %s", absolute)
            return False
        _logger.debug("image selected: %s", absolute)
        self.image_selected.emit(absolute)
        return True
