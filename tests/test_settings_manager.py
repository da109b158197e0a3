from __future__ import annotations

import json
from pathlib import Path

from background_picker.settings_manager import SettingsManager, default_settings_path


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_default_path_follows_xdg_config_home(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    assert default_settings_path() == tmp_path / "background-picker" / "settings.json"


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    sm = SettingsManager(str(tmp_path / "settings.json"))
    assert sm.get("thumbnail_size") == "normal"
    assert sm.get("directory") == "."
    assert sm.get("workers") is None
    assert sm.get("cache_dir") is None


def test_file_values_shadow_defaults(tmp_path: Path) -> None:
    settings_path = _write(tmp_path / "nested" / "settings.json", json.dumps({"thumbnail_size": "large", "workers": 6}))
    sm = SettingsManager(str(settings_path))
    assert sm.get("thumbnail_size") == "large"
    assert sm.get("workers") == 6
    assert sm.get("directory") == "."


def test_default_location_is_read(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    _write(default_settings_path(), json.dumps({"cache_dir": "/srv/thumbs"}))
    assert SettingsManager().get("cache_dir") == "/srv/thumbs"


def test_invalid_json_is_ignored(tmp_path: Path) -> None:
    settings_path = _write(tmp_path / "settings.json", "{not json")
    sm = SettingsManager(str(settings_path))
    assert sm.get("thumbnail_size") == "normal"


def test_non_object_json_is_ignored(tmp_path: Path) -> None:
    settings_path = _write(tmp_path / "settings.json", "[1, 2, 3]")
    assert SettingsManager(str(settings_path)).get("directory") == "."


def test_load_picks_up_changes(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.json"
    sm = SettingsManager(str(settings_path))
    assert sm.get("workers") is None
    _write(settings_path, json.dumps({"workers": 3}))
    sm.load()
    assert sm.get("workers") == 3


def test_explicit_default_wins_over_builtin(tmp_path: Path) -> None:
    sm = SettingsManager(str(tmp_path / "settings.json"))
    assert sm.get("thumbnail_size", "x-large") == "x-large"
