import numpy as np
import pytest

pytest.importorskip("PySide6")

from background_picker.errors import DecodeError
from background_picker.qt_bridge import SelectionBridge, ThumbnailStreamWorker, entry_to_qimage
from background_picker.thumbnail_engine.models import CacheEntry, SizeClass, ThumbnailResult


def _entry(width: int, height: int) -> CacheEntry:
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[0, 0] = (255, 0, 0)
    return CacheEntry("b" * 32, SizeClass.NORMAL, 1, "file:///p/a.png", pixels)


class _FakeOrchestrator:
    def __init__(self, results):
        self.results = results

    def ensure(self, paths, size_class):
        return iter(self.results)


def test_entry_to_qimage_keeps_size_and_pixels():
    image = entry_to_qimage(_entry(7, 3))
    assert (image.width(), image.height()) == (7, 3)
    assert not image.isNull()
    color = image.pixelColor(0, 0)
    assert (color.red(), color.green(), color.blue()) == (255, 0, 0)


def test_worker_emits_ready_failed_and_finished():
    results = [
        ThumbnailResult("/p/a.png", SizeClass.NORMAL, _entry(5, 4), stored=True),
        ThumbnailResult("/p/b.jpg", SizeClass.NORMAL, error=DecodeError("/p/b.jpg", "bad data")),
    ]
    worker = ThumbnailStreamWorker(_FakeOrchestrator(results), ["/p/a.png", "/p/b.jpg"], SizeClass.NORMAL)
    ready, failed, finished = [], [], []
    worker.thumbnail_ready.connect(lambda path, image: ready.append((path, image.width(), image.height())))
    worker.thumbnail_failed.connect(lambda path, message: failed.append((path, message)))
    worker.finished.connect(finished.append)

    worker.run()

    assert ready == [("/p/a.png", 5, 4)]
    assert failed == [("/p/b.jpg", "cannot decode /p/b.jpg: bad data")]
    assert finished == [2]


def test_stopped_worker_delivers_nothing_more():
    results = [ThumbnailResult(f"/p/{i}.png", SizeClass.NORMAL, _entry(2, 2), stored=True) for i in range(3)]
    worker = ThumbnailStreamWorker(_FakeOrchestrator(results), [], SizeClass.NORMAL)
    finished = []
    worker.finished.connect(finished.append)
    worker.stop()
    worker.run()
    assert finished == [0]


def test_selection_bridge_emits_absolute_path(tmp_path):
    image = tmp_path.resolve() / "a.png"
    image.write_bytes(b"x")
    bridge = SelectionBridge([str(image)])
    selected = []
    bridge.image_selected.connect(selected.append)

    assert bridge.select(str(image))
    assert not bridge.select(str(tmp_path.resolve() / "other.png"))
    assert selected == [str(image)]


def test_selection_bridge_without_known_paths_accepts_any(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    bridge = SelectionBridge()
    selected = []
    bridge.image_selected.connect(selected.append)
    assert bridge.select("wall.jpg")
    assert selected == [str(tmp_path.resolve() / "wall.jpg")]
