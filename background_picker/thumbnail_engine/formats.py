"""Supported source formats.

The set is closed: a file is decoded only when its leading bytes match one of
the signatures below. Anything else is an `UnsupportedFormatError`, never a
best-effort attempt.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Longest prefix needed to recognize every signature (RIFF....WEBP).
SNIFF_BYTES = 12


@dataclass(frozen=True)
class _FormatInfo:
    extensions: tuple[str, ...]
    mime_type: str
    vips_loader: str
    # Qt reads it without an imageformats plugin.
    qt_readable: bool = False


class ImageFormat(Enum):
    PNG = _FormatInfo((".png",), "image/png", "pngload")
    JPEG = _FormatInfo((".jpg", ".jpeg"), "image/jpeg", "jpegload")
    GIF = _FormatInfo((".gif",), "image/gif", "gifload")
    BMP = _FormatInfo((".bmp",), "image/bmp", "magickload", qt_readable=True)
    WEBP = _FormatInfo((".webp",), "image/webp", "webpload")

    @property
    def extensions(self) -> tuple[str, ...]:
        return self.value.extensions

    @property
    def mime_type(self) -> str:
        return self.value.mime_type

    @property
    def vips_loader(self) -> str:
        return self.value.vips_loader

    @property
    def qt_readable(self) -> bool:
        return self.value.qt_readable

    def matches(self, head: bytes) -> bool:
        if self is ImageFormat.PNG:
            return head.startswith(b"\x89PNG\r\n\x1a\n")
        if self is ImageFormat.JPEG:
            return head.startswith(b"\xff\xd8\xff")
        if self is ImageFormat.GIF:
            return head[:6] in (b"GIF87a", b"GIF89a")
        if self is ImageFormat.BMP:
            return head.startswith(b"BM")
        if self is ImageFormat.WEBP:
            return head[:4] == b"RIFF" and head[8:12] == b"WEBP"
        return False


def sniff_format(head: bytes) -> ImageFormat | None:
    """Identify the format from the first `SNIFF_BYTES` of a file."""
    for fmt in ImageFormat:
        if fmt.matches(head):
            return fmt
    return None


def format_for_extension(suffix: str) -> ImageFormat | None:
    suffix = suffix.lower()
    if suffix and not suffix.startswith("."):
        suffix = "." + suffix
    for fmt in ImageFormat:
        if suffix in fmt.extensions:
            return fmt
    return None
