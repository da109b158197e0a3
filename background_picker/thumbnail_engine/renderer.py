"""Thumbnail renderer using pyvips.

Decodes a source image with shrink-on-load, fits it into a size-class box
(never upscaling, aspect ratio kept) and hands back an RGB numpy array plus
the metadata the cache store embeds next to the pixels.

Formats the installed libvips cannot load but Qt reads natively (BMP with
the pyvips-binary build, which ships no magickload) are decoded with
QImageReader and resized by libvips.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from background_picker.errors import DecodeError, UnsupportedFormatError
from background_picker.logger import get_logger

from .cache_key import file_uri
from .codec import get_pyvips, qt_read_rgb_array, rgb_array_to_vips, vips_to_rgb_array
from .formats import SNIFF_BYTES, ImageFormat, sniff_format
from .metrics import Stage, metrics
from .models import CacheEntry, SizeClass, SourceImage

_logger = get_logger("renderer")


def _first_line(exc: Exception) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else "decode failed"


@dataclass(frozen=True)
class RenderedThumbnail:
    """Pixels plus the staleness fields the cache store needs."""

    pixels: np.ndarray
    source_uri: str
    source_modified_time: int
    source_size: int | None
    image_width: int | None
    image_height: int | None
    mime_type: str | None

    def to_entry(self, key: str, size_class: SizeClass) -> CacheEntry:
        return CacheEntry(
            key=key,
            size_class=size_class,
            stored_modified_time=self.source_modified_time,
            source_uri=self.source_uri,
            pixels=self.pixels,
            stored_size=self.source_size,
            image_width=self.image_width,
            image_height=self.image_height,
            mime_type=self.mime_type,
        )


class ThumbnailRenderer:
    """Stateless; safe to share between worker threads."""

    def __init__(self) -> None:
        self._loader_available: dict[ImageFormat, bool] = {}

    def _has_loader(self, fmt: ImageFormat) -> bool:
        known = self._loader_available.get(fmt)
        if known is None:
            pyvips = get_pyvips()
            known = pyvips.type_find("VipsOperation", fmt.vips_loader) != 0
            self._loader_available[fmt] = known
        return known

    def _render_vips(self, path: str, bound: int) -> tuple[int, int, np.ndarray]:
        pyvips = get_pyvips()
        try:
            header = pyvips.Image.new_from_file(path, access="sequential")
            thumb = pyvips.Image.thumbnail(path, bound, height=bound, size="down")
            pixels = vips_to_rgb_array(thumb)
        except pyvips.Error as exc:
            raise DecodeError(path, _first_line(exc)) from exc
        return int(header.width), int(header.height), pixels

    def _render_qt(self, path: str, bound: int) -> tuple[int, int, np.ndarray]:
        pyvips = get_pyvips()
        try:
            rgb = qt_read_rgb_array(path)
        except ValueError as exc:
            raise DecodeError(path, str(exc)) from exc
        height, width = rgb.shape[:2]
        try:
            thumb = rgb_array_to_vips(rgb).thumbnail_image(bound, height=bound, size="down")
            pixels = vips_to_rgb_array(thumb)
        except pyvips.Error as exc:
            raise DecodeError(path, _first_line(exc)) from exc
        return width, height, pixels

    def render(self, source: SourceImage, size_class: SizeClass) -> RenderedThumbnail:
        """Decode ``source`` and fit it into ``size_class``. Raises DecodeError.

        Only the signature is read up front; libvips opens the file itself and
        shrinks on load, so a worker never holds a whole source in memory.
        """
        path = source.absolute_path
        try:
            with open(path, "rb") as f:
                head = f.read(SNIFF_BYTES)
        except OSError as exc:
            raise DecodeError(path, exc.strerror or str(exc)) from exc
        if not head:
            raise DecodeError(path, "empty file")

        fmt = sniff_format(head)
        if fmt is None:
            raise UnsupportedFormatError(path, "unrecognized image signature")

        bound = size_class.pixels
        with metrics.timed(Stage.RENDER):
            if self._has_loader(fmt):
                width, height, pixels = self._render_vips(path, bound)
            elif fmt.qt_readable:
                width, height, pixels = self._render_qt(path, bound)
            else:
                raise UnsupportedFormatError(path, f"libvips has no {fmt.vips_loader} in this build")

        _logger.debug(
            "rendered %s: %sx%s -> %sx%s (%s)",
            path,
            width,
            height,
            pixels.shape[1],
            pixels.shape[0],
            size_class.value,
        )
        return RenderedThumbnail(
            pixels=pixels,
            source_uri=file_uri(path),
            source_modified_time=source.modified_time,
            source_size=source.byte_size,
            image_width=width,
            image_height=height,
            mime_type=fmt.mime_type,
        )

    def downscale(self, entry: CacheEntry, size_class: SizeClass) -> RenderedThumbnail:
        """Shrink an already cached, larger thumbnail into ``size_class``."""
        bound = size_class.pixels
        pixels = entry.pixels
        longest = max(entry.width, entry.height)
        if longest > bound:
            image = rgb_array_to_vips(pixels)
            image = image.thumbnail_image(bound, height=bound, size="down")
            pixels = vips_to_rgb_array(image)
        else:
            pixels = np.array(pixels, copy=True)
        return RenderedThumbnail(
            pixels=pixels,
            source_uri=entry.source_uri,
            source_modified_time=entry.stored_modified_time,
            source_size=entry.stored_size,
            image_width=entry.image_width,
            image_height=entry.image_height,
            mime_type=entry.mime_type,
        )
