"""Exception types raised by the scanner, the thumbnail engine and the config layer.

Per-path errors (scan, decode, cache read/write) are reported and skipped;
only ``ConfigurationError`` stops the program, before any scanning starts.
"""

from __future__ import annotations


class BackgroundPickerError(Exception):
    """Base class for all project errors."""


class ScanError(BackgroundPickerError):
    """A directory under the scan root could not be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot scan {path}: {reason}")
        self.path = path
        self.reason = reason


class DecodeError(BackgroundPickerError):
    """The source image could not be decoded into a thumbnail."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot decode {path}: {reason}")
        self.path = path
        self.reason = reason


class UnsupportedFormatError(DecodeError):
    """The file content does not match any supported image format."""


class CacheReadError(BackgroundPickerError):
    """A cache artifact exists but is unreadable, corrupt or lacks metadata."""


class CacheWriteError(BackgroundPickerError):
    """A rendered thumbnail could not be persisted to the cache directory."""


class ConfigurationError(BackgroundPickerError):
    """Invalid startup configuration (scan root, thumbnail bound, workers)."""
