"""ThumbnailCacheStore: freedesktop.org thumbnail directory reader/writer.

Layout: ``<root>/<size-class>/<md5-of-uri>.png``. Freshness metadata lives in
the PNG itself as tEXt chunks (``Thumb::URI``, ``Thumb::MTime`` ...), which is
what file managers read and write, so entries produced here are reused by
them and vice versa.

libvips exposes PNG text chunks as image fields named
``png-comment-<index>-<keyword>``; that naming is used in both directions.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path
from typing import Any

from background_picker.errors import CacheReadError, CacheWriteError
from background_picker.logger import get_logger
from background_picker.path_utils import cache_home

from .cache_key import file_uri
from .codec import encode_png, get_pyvips, rgb_array_to_vips, vips_to_rgb_array
from .metrics import Stage, metrics
from .models import CacheEntry, SizeClass, SourceImage

_logger = get_logger("cache_store")

THUMB_EXT = ".png"
SOFTWARE = "background-picker"

_PNG_COMMENT_PREFIX = "png-comment-"
_PNG_COMMENT_PARTS = 4
_DIR_MODE = 0o700
_FILE_MODE = 0o600


def default_cache_root() -> Path:
    """``$XDG_CACHE_HOME/thumbnails``, falling back to ``~/.cache/thumbnails``."""
    return cache_home() / "thumbnails"


def _png_text_fields(image: Any) -> dict[str, str]:
    fields: dict[str, str] = {}
    for name in image.get_fields():
        if not name.startswith(_PNG_COMMENT_PREFIX):
            continue
        # png-comment-<index>-<keyword>; keywords themselves contain "::" but no "-" at the front
        parts = name.split("-", 3)
        if len(parts) == _PNG_COMMENT_PARTS:
            fields[parts[3]] = str(image.get(name))
    return fields


def _optional_int(fields: dict[str, str], name: str) -> int | None:
    value = fields.get(name)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


class ThumbnailCacheStore:
    """Reads and writes thumbnail artifacts under an explicit cache root.

    The store keeps no in-memory state besides the root path, so one
    instance can be shared by all worker threads.
    """

    def __init__(self, root: Path | str | None = None) -> None:
        self.root = Path(root) if root is not None else default_cache_root()

    def artifact_path(self, key: str, size_class: SizeClass) -> Path:
        return self.root / size_class.value / f"{key}{THUMB_EXT}"

    # ---- read ------------------------------------------------------
    def lookup(self, key: str, size_class: SizeClass) -> CacheEntry | None:
        """Load the artifact for ``key``; None when absent or unusable."""
        path = self.artifact_path(key, size_class)
        if not path.is_file():
            return None
        try:
            return self._read_artifact(path, key, size_class)
        except CacheReadError as exc:
            _logger.debug("cache artifact ignored: %s (%s)", path, exc)
            return None

    def _read_artifact(self, path: Path, key: str, size_class: SizeClass) -> CacheEntry:
        pyvips = get_pyvips()
        try:
            data = path.read_bytes()
            image = pyvips.Image.new_from_buffer(data, "")
            fields = _png_text_fields(image)
            pixels = vips_to_rgb_array(image)
        except (OSError, pyvips.Error, RuntimeError) as exc:
            raise CacheReadError(f"unreadable: {exc}") from exc

        uri = fields.get("Thumb::URI")
        mtime = _optional_int(fields, "Thumb::MTime")
        if not uri or mtime is None:
            raise CacheReadError("missing Thumb::URI or Thumb::MTime")

        return CacheEntry(
            key=key,
            size_class=size_class,
            stored_modified_time=mtime,
            source_uri=uri,
            pixels=pixels,
            stored_size=_optional_int(fields, "Thumb::Size"),
            image_width=_optional_int(fields, "Thumb::Image::Width"),
            image_height=_optional_int(fields, "Thumb::Image::Height"),
            mime_type=fields.get("Thumb::Mimetype"),
        )

    @staticmethod
    def is_fresh(entry: CacheEntry, source: SourceImage) -> bool:
        """True when ``entry`` was rendered from the current state of ``source``.

        Any modification-time difference counts, including a clock going
        backwards. The byte size is compared only when both sides know it.
        """
        if entry.stored_modified_time != source.modified_time:
            return False
        if entry.source_uri != file_uri(source.absolute_path):
            return False
        return entry.stored_size is None or source.byte_size is None or entry.stored_size == source.byte_size

    # ---- write -----------------------------------------------------
    def _encode(self, entry: CacheEntry) -> bytes:
        pyvips = get_pyvips()
        text = {
            "Thumb::URI": entry.source_uri,
            "Thumb::MTime": str(entry.stored_modified_time),
        }
        if entry.stored_size is not None:
            text["Thumb::Size"] = str(entry.stored_size)
        if entry.image_width is not None and entry.image_height is not None:
            text["Thumb::Image::Width"] = str(entry.image_width)
            text["Thumb::Image::Height"] = str(entry.image_height)
        if entry.mime_type:
            text["Thumb::Mimetype"] = entry.mime_type
        text["Software"] = SOFTWARE

        image = rgb_array_to_vips(entry.pixels)
        for index, (keyword, value) in enumerate(text.items()):
            image.set_type(pyvips.GValue.gstr_type, f"{_PNG_COMMENT_PREFIX}{index}-{keyword}", value)
        return encode_png(image)

    def _ensure_dir(self, directory: Path) -> None:
        directory.mkdir(mode=_DIR_MODE, parents=True, exist_ok=True)

    def store(self, key: str, size_class: SizeClass, entry: CacheEntry) -> Path:
        """Atomically write ``entry``; raises CacheWriteError on any failure.

        The PNG goes to a uniquely named temp file in the destination
        directory first and is renamed into place, so readers (other threads,
        other processes, file managers) see either the old or the new
        complete artifact.
        """
        target = self.artifact_path(key, size_class)
        tmp_name: str | None = None
        try:
            with metrics.timed(Stage.STORE):
                payload = self._encode(entry)
                self._ensure_dir(target.parent)
                fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=target.parent)
                with os.fdopen(fd, "wb") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.chmod(tmp_name, _FILE_MODE)
                os.replace(tmp_name, target)
                tmp_name = None
        except Exception as exc:
            raise CacheWriteError(f"cannot write {target}: {exc}") from exc
        finally:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
        _logger.debug("thumbnail stored: %s (%sx%s)", target, entry.width, entry.height)
        return target
