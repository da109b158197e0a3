"""Cache keys for the freedesktop.org thumbnail layout.

A thumbnail's file name is the MD5 hex digest of the source's ``file://`` URI.
File managers (GLib/GIO based ones in particular) build that URI with
``g_filename_to_uri``, so the escaping here follows GLib byte for byte:
every byte outside ASCII alphanumerics and ``!$&'()*+,-./:=@_~`` becomes an
upper-case ``%XX`` escape. Any deviation silently produces a different key
and the cache stops being shared.

Everything here is pure: no filesystem access, no shared state.
"""

from __future__ import annotations

import hashlib
import os
import posixpath
from urllib.parse import quote

# `quote` always keeps ASCII alphanumerics and "_.-~".
_GLIB_PATH_SAFE = "/!$&'()*+,:=@"


def _normalize(path: str | os.PathLike) -> bytes:
    raw = os.fsencode(path)
    if not raw.startswith(b"/"):
        raise ValueError(f"cache keys need an absolute path, got {os.fsdecode(raw)!r}")
    normalized = posixpath.normpath(raw)
    # POSIX keeps a leading "//"; GLib and the kernel treat it as "/".
    if normalized.startswith(b"//"):
        normalized = b"/" + normalized.lstrip(b"/")
    return normalized


def file_uri(path: str | os.PathLike) -> str:
    """Canonical ``file://`` URI for an absolute path."""
    return "file://" + quote(_normalize(path), safe=_GLIB_PATH_SAFE)


def key_for_uri(uri: str) -> str:
    return hashlib.md5(uri.encode("utf-8"), usedforsecurity=False).hexdigest()


def derive(path: str | os.PathLike) -> str:
    """Cache key (32 lowercase hex chars) for an absolute path."""
    return key_for_uri(file_uri(path))
