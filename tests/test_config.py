import json

import pytest

from background_picker.config import build_config
from background_picker.errors import ConfigurationError
from background_picker.settings_manager import SettingsManager
from background_picker.thumbnail_engine.cache_store import default_cache_root
from background_picker.thumbnail_engine.models import SizeClass
from background_picker.thumbnail_engine.orchestrator import default_worker_count


@pytest.fixture
def settings(tmp_path):
    return SettingsManager(tmp_path / "settings.json")


def _settings_with(tmp_path, **values) -> SettingsManager:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(values), encoding="utf-8")
    return SettingsManager(path)


def test_defaults(settings, root, monkeypatch):
    monkeypatch.chdir(root)
    config = build_config(settings)
    assert config.scan_root == root
    assert config.size_class is SizeClass.NORMAL
    assert config.workers == default_worker_count()
    assert config.cache_root == default_cache_root()
    assert not config.pregenerate


def test_flags_override_settings(root, tmp_path):
    settings = _settings_with(tmp_path, thumbnail_size="xx-large", workers=3)
    config = build_config(
        settings,
        directory=str(root),
        thumbnail_size="200",
        workers=6,
        cache_dir=str(tmp_path / "cache"),
        pregenerate=True,
    )
    assert config.size_class is SizeClass.LARGE
    assert config.workers == 6
    assert config.cache_root == tmp_path.resolve() / "cache"
    assert config.pregenerate


def test_settings_supply_values(root, tmp_path):
    settings = _settings_with(tmp_path, directory=str(root), thumbnail_size="x-large", workers=2)
    config = build_config(settings)
    assert config.scan_root == root
    assert config.size_class is SizeClass.X_LARGE
    assert config.workers == 2


def test_missing_root(settings, tmp_path):
    with pytest.raises(ConfigurationError, match="does not exist"):
        build_config(settings, directory=str(tmp_path / "nope"))


def test_root_is_a_file(settings, tmp_path):
    path = tmp_path / "file.png"
    path.write_bytes(b"x")
    with pytest.raises(ConfigurationError, match="not a directory"):
        build_config(settings, directory=str(path))


@pytest.mark.parametrize("size", ["0", "-5", "2048", "huge"])
def test_bad_thumbnail_size(settings, root, size):
    with pytest.raises(ConfigurationError):
        build_config(settings, directory=str(root), thumbnail_size=size)


@pytest.mark.parametrize("workers", [0, -1])
def test_bad_worker_count(settings, root, workers):
    with pytest.raises(ConfigurationError, match="worker count"):
        build_config(settings, directory=str(root), workers=workers)


def test_non_integer_workers_in_settings(root, tmp_path):
    settings = _settings_with(tmp_path, workers="many")
    with pytest.raises(ConfigurationError):
        build_config(settings, directory=str(root))


def test_size_class_parsing():
    assert SizeClass.parse("normal") is SizeClass.NORMAL
    assert SizeClass.parse("X_LARGE") is SizeClass.X_LARGE
    assert SizeClass.parse(128) is SizeClass.NORMAL
    assert SizeClass.parse(129) is SizeClass.LARGE
    assert SizeClass.parse("1024") is SizeClass.XX_LARGE
    assert [c.pixels for c in SizeClass.ordered()] == [128, 256, 512, 1024]
    assert SizeClass.NORMAL.larger() == [SizeClass.LARGE, SizeClass.X_LARGE, SizeClass.XX_LARGE]
    assert SizeClass.XX_LARGE.larger() == []
