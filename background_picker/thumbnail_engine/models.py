"""Plain data types shared by the scanner, cache store, renderer and orchestrator.

No pyvips or Qt objects cross these boundaries: pixels travel as read-only
numpy arrays of shape (height, width, 3), dtype uint8.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import numpy as np

from background_picker.errors import ConfigurationError
from background_picker.path_utils import abs_path_str


class SizeClass(Enum):
    """Freedesktop thumbnail size classes; the value is the cache subdirectory."""

    NORMAL = "normal"
    LARGE = "large"
    X_LARGE = "x-large"
    XX_LARGE = "xx-large"

    @property
    def pixels(self) -> int:
        return _SIZE_PIXELS[self]

    @classmethod
    def ordered(cls) -> list[SizeClass]:
        return sorted(cls, key=lambda c: c.pixels)

    @classmethod
    def for_pixels(cls, pixels: int) -> SizeClass:
        """Smallest size class whose bounding box holds ``pixels``."""
        if pixels <= 0:
            raise ConfigurationError(f"thumbnail size must be positive, got {pixels}")
        for size_class in cls.ordered():
            if pixels <= size_class.pixels:
                return size_class
        raise ConfigurationError(f"thumbnail size {pixels} exceeds the largest size class ({cls.XX_LARGE.pixels})")

    @classmethod
    def parse(cls, value: str | int) -> SizeClass:
        """Accept a size-class name (``normal``, ``large``...) or a pixel bound."""
        if isinstance(value, int):
            return cls.for_pixels(value)
        text = str(value).strip().lower().replace("_", "-")
        for size_class in cls:
            if size_class.value == text:
                return size_class
        try:
            return cls.for_pixels(int(text))
        except ValueError:
            raise ConfigurationError(f"unknown thumbnail size: {value!r}") from None

    def larger(self) -> list[SizeClass]:
        return [c for c in self.ordered() if c.pixels > self.pixels]


_SIZE_PIXELS = {
    SizeClass.NORMAL: 128,
    SizeClass.LARGE: 256,
    SizeClass.X_LARGE: 512,
    SizeClass.XX_LARGE: 1024,
}


@dataclass(frozen=True)
class SourceImage:
    absolute_path: str
    modified_time: int
    byte_size: int | None = None

    @classmethod
    def from_path(cls, path: str | Path) -> SourceImage:
        """Stat ``path`` and build a SourceImage. Raises OSError if it is gone."""
        canonical = abs_path_str(path)
        st = os.stat(canonical)
        return cls(canonical, int(st.st_mtime), int(st.st_size))

    @property
    def name(self) -> str:
        return os.path.basename(self.absolute_path)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    size_class: SizeClass
    stored_modified_time: int
    source_uri: str
    pixels: np.ndarray = field(repr=False, compare=False)
    stored_size: int | None = None
    image_width: int | None = None
    image_height: int | None = None
    mime_type: str | None = None

    def __post_init__(self) -> None:
        # Entries are shared between consumers; nobody may scribble on the raster.
        self.pixels.flags.writeable = False

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


@dataclass
class GenerationTask:
    source: SourceImage
    key: str
    size_class: SizeClass


@dataclass(frozen=True)
class ThumbnailResult:
    path: str
    size_class: SizeClass
    entry: CacheEntry | None = None
    error: Exception | None = None
    cached: bool = False
    stored: bool = False

    @property
    def ok(self) -> bool:
        return self.entry is not None
