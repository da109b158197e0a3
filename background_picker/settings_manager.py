from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from .logger import get_logger
from .path_utils import config_home

_logger = get_logger("settings")


def default_settings_path() -> Path:
    return config_home() / "background-picker" / "settings.json"


class SettingsManager:
    """JSON settings file supplying defaults under the command line flags."""

    DEFAULTS: dict[str, Any] = {
        "directory": ".",
        "thumbnail_size": "normal",
        "workers": None,
        "cache_dir": None,
    }

    def __init__(self, settings_path: str | Path | None = None):
        self.settings_path = str(settings_path) if settings_path else str(default_settings_path())
        self._settings: dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        self._settings = data
                        _logger.debug("settings loaded: %s", self.settings_path)
                        return
                    _logger.warning("settings ignored (not a JSON object): %s", self.settings_path)
        except (OSError, ValueError) as e:
            _logger.warning("settings load failed: %s", e)
        self._settings = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

