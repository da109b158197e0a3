"""pyvips glue shared by the renderer and the cache store.

pyvips is imported lazily so modules that only need keys or models stay
importable without libvips. Pixels leave this module as numpy arrays.
"""

from __future__ import annotations

import contextlib
from typing import Any

import numpy as np

RGB_DIMS = 3
RGB_CHANNELS = 3

_pyvips: Any | None = None


def get_pyvips() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        # Thumbnailing many files: keep the operation cache from growing.
        with contextlib.suppress(Exception):
            pyvips.cache_set_max(0)
            pyvips.cache_set_max_mem(0)
            pyvips.cache_set_max_files(0)
        _pyvips = pyvips
    return _pyvips


def vips_to_rgb_array(image: Any) -> np.ndarray:
    """Flatten any pyvips image to an 8-bit sRGB (h, w, 3) numpy array."""
    pyvips = get_pyvips()
    with contextlib.suppress(pyvips.Error):
        image = image.colourspace("srgb")
    if image.hasalpha():
        image = image.flatten(background=[0, 0, 0])
    if image.bands > RGB_CHANNELS:
        image = image.extract_band(0, n=RGB_CHANNELS)
    elif image.bands < RGB_CHANNELS:
        image = pyvips.Image.bandjoin([image] * RGB_CHANNELS)
    if image.format != "uchar":
        image = image.cast("uchar")

    mem = image.write_to_memory()
    array = np.frombuffer(mem, dtype=np.uint8).reshape(image.height, image.width, image.bands)
    if array.shape[2] != RGB_CHANNELS:
        raise RuntimeError(f"Unsupported band count after conversion: {array.shape[2]}")
    return array.copy()


def rgb_array_to_vips(rgb: np.ndarray) -> Any:
    pyvips = get_pyvips()
    if rgb.ndim != RGB_DIMS or rgb.shape[2] != RGB_CHANNELS:
        raise ValueError("expected RGB numpy array with shape (h, w, 3)")
    h, w, _ = rgb.shape
    buf = np.ascontiguousarray(rgb, dtype=np.uint8).tobytes()
    image = pyvips.Image.new_from_memory(buf, w, h, RGB_CHANNELS, "uchar")
    return image.copy(interpretation="srgb")


def encode_png(image: Any) -> bytes:
    out = image.write_to_buffer(".png")
    # Normalize to bytes in case pyvips returns a memoryview-like object
    if isinstance(out, bytes):
        return out
    return bytes(out)


def qt_read_rgb_array(path: str) -> np.ndarray:
    """Decode ``path`` with Qt's built-in readers into an RGB (h, w, 3) array.

    For formats the installed libvips cannot load. QImage (not QPixmap) is
    safe off the GUI thread and needs no QApplication. Raises ValueError.
    """
    from PySide6.QtGui import QImage, QImageReader

    reader = QImageReader(path)
    image = reader.read()
    if image.isNull():
        raise ValueError(reader.errorString() or "unreadable image")
    image = image.convertToFormat(QImage.Format.Format_RGB888)
    w, h, stride = image.width(), image.height(), image.bytesPerLine()
    # Rows are padded to 4 bytes; drop the padding.
    rows = np.frombuffer(image.constBits(), dtype=np.uint8, count=stride * h).reshape(h, stride)
    return rows[:, : w * RGB_CHANNELS].reshape(h, w, RGB_CHANNELS).copy()
