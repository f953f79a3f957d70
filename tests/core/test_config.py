"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest

from loopcast.core.config import (
    Config,
    create_default_config,
    get_config_path,
    load_config,
    write_default_config,
)


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Keep config lookups away from the real home directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("LOOPCAST_CONFIG", raising=False)


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "nope.toml")
    assert config == Config()
    assert config.player.poll_interval == 5.0
    assert config.auth.max_login_attempts == 5


def test_default_template_parses_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(create_default_config())
    config = load_config(path)
    assert config.station.preview_size == 5
    assert config.server.port == 8642
    assert config.player.resync_tolerance == 5.0
    assert config.auth.token_ttl_seconds == 3600


def test_overrides(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(
        """
[station]
default_station_id = 3

[player]
volume = 40
poll_interval = 2.5

[database]
path = "~/radio.db"
"""
    )
    config = load_config(path)
    assert config.station.default_station_id == 3
    assert config.player.volume == 40
    assert config.player.poll_interval == 2.5
    assert config.database.path == str(Path("~/radio.db").expanduser())
    assert config.logging.level == "INFO"


def test_invalid_toml_raises(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("[player\nvolume = ")
    with pytest.raises(ValueError):
        load_config(path)


def test_invalid_player_values_raise(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("[player]\nvolume = 150\n")
    with pytest.raises(ValueError):
        load_config(path)


def test_env_var_selects_config(tmp_path: Path, monkeypatch) -> None:
    target = tmp_path / "elsewhere.toml"
    monkeypatch.setenv("LOOPCAST_CONFIG", str(target))
    assert get_config_path() == target


def test_dotenv_is_loaded(tmp_path: Path, monkeypatch) -> None:
    env_file = tmp_path / "config" / "loopcast" / ".env"
    env_file.parent.mkdir(parents=True)
    env_file.write_text("ADMIN_PASSWORD=from-dotenv\n")
    # Registers the variable with monkeypatch so teardown removes it again
    monkeypatch.setenv("ADMIN_PASSWORD", "placeholder")
    monkeypatch.delenv("ADMIN_PASSWORD")

    load_config(tmp_path / "nope.toml")

    assert os.environ["ADMIN_PASSWORD"] == "from-dotenv"


def test_write_default_config_does_not_overwrite(tmp_path: Path) -> None:
    path = tmp_path / "cfg" / "config.toml"
    write_default_config(path)
    path.write_text("# edited\n")
    write_default_config(path)
    assert path.read_text() == "# edited\n"
