"""Tests for configuration management."""

from pathlib import Path

import pytest
import yaml

from schedule4d.config import Config


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the home directory at a temporary one."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    return home


def test_set_and_get(home: Path, tmp_path: Path) -> None:
    """Test values are persisted to YAML."""
    config = Config(config_dir=tmp_path / "local")
    config.set("store.path", "/data/store")

    assert config.get("store.path") == "/data/store"
    with open(tmp_path / "local" / "config.yaml") as f:
        assert yaml.safe_load(f) == {"store.path": "/data/store"}
    assert Config(config_dir=tmp_path / "local").get("store.path") == "/data/store"


def test_defaults(home: Path, tmp_path: Path) -> None:
    """Test built-in defaults apply to unset keys."""
    config = Config(config_dir=tmp_path / "local")
    assert config.get("store.type") == "yaml"
    assert config.get_float("playback.speed") == 1.0
    assert config.get("missing.key") is None
    assert config.get("missing.key", "fallback") == "fallback"


def test_global_fallback(home: Path, tmp_path: Path) -> None:
    """Test local config falls back to global config."""
    Config(use_global=True).set("model.id", "global-model")

    local = Config(config_dir=tmp_path / "local")
    assert local.get("model.id") == "global-model"

    local.set("model.id", "local-model")
    assert local.get("model.id") == "local-model"
    assert local.list() == {"model.id": "local-model"}


def test_unset(home: Path, tmp_path: Path) -> None:
    """Test unsetting restores the default."""
    config = Config(config_dir=tmp_path / "local")
    config.set("playback.speed", "7")
    assert config.get_float("playback.speed") == 7
    config.unset("playback.speed")
    assert config.get_float("playback.speed") == 1.0


def test_get_float_rejects_text(home: Path, tmp_path: Path) -> None:
    """Test non-numeric values raise a clear error."""
    config = Config(config_dir=tmp_path / "local")
    config.set("playback.speed", "fast")
    with pytest.raises(ValueError, match="must be a number"):
        config.get_float("playback.speed")


def test_invalid_yaml(home: Path, tmp_path: Path) -> None:
    """Test an unreadable config file raises ValueError."""
    config_dir = tmp_path / "local"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text("key: [unclosed")
    with pytest.raises(ValueError, match="Failed to load config"):
        Config(config_dir=config_dir)
