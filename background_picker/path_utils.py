"""Path normalization utilities.

This module centralizes the project's path rules:

- Scanned images carry a canonical path: absolute, normalized and with
  symlinks resolved, so the same file always hashes to the same cache key.
- Cache and config homes follow the XDG base directory conventions.

Keep this module free of Qt dependencies.
"""

from __future__ import annotations

import os
from pathlib import Path


def abs_path(path: str | Path) -> Path:
    """Return an absolute, symlink-resolved path without requiring that it exists."""
    p = Path(path).expanduser()
    try:
        # strict=False avoids exceptions for non-existent paths.
        return p.resolve(strict=False)
    except (OSError, RuntimeError):
        return p.absolute()


def abs_path_str(path: str | Path) -> str:
    return str(abs_path(path))


def relative_to_root(path: str | Path, root: str | Path) -> str:
    """Path of ``path`` relative to ``root``; falls back to the path itself."""
    try:
        return Path(path).relative_to(root).as_posix()
    except ValueError:
        return str(path)


def _xdg_home(env_var: str, fallback: str) -> Path:
    value = os.environ.get(env_var)
    if value and os.path.isabs(os.path.expanduser(value)):
        return Path(value).expanduser()
    return Path(fallback).expanduser()


def cache_home() -> Path:
    return _xdg_home("XDG_CACHE_HOME", "~/.cache")


def config_home() -> Path:
    return _xdg_home("XDG_CONFIG_HOME", "~/.config")
