"""
Tests for config loading, validation and persistence.
"""

import json

import pytest

from birdnest.core import config as config_mod
from birdnest.core.config import Config, load_config, save_config, with_value
from birdnest.core.errors import EXIT_CONFIG, ConfigError


class TestLoad:
    def test_missing_file_writes_defaults(self, config_file):
        cfg = load_config(config_file)
        assert cfg == Config()
        assert json.loads(config_file.read_text()) == {
            "package_manager": "auto",
            "auto_confirm": False,
            "flatpak_enabled": True,
        }

    def test_reads_saved_values(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text(json.dumps({"package_manager": "apt", "auto_confirm": True}))
        cfg = load_config(config_file)
        assert cfg.package_manager == "apt"
        assert cfg.auto_confirm is True
        assert cfg.flatpak_enabled is True
        assert cfg.forced_backend == "apt"

    def test_malformed_json_is_an_error(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text("{not json")
        with pytest.raises(ConfigError) as exc:
            load_config(config_file)
        assert "malformed JSON" in str(exc.value)
        assert exc.value.exit_code == EXIT_CONFIG

    def test_non_object_root_is_an_error(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            load_config(config_file)

    def test_wrong_type_is_an_error(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text(json.dumps({"auto_confirm": "yes"}))
        with pytest.raises(ConfigError, match="auto_confirm"):
            load_config(config_file)

    def test_unknown_package_manager_is_an_error(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text(json.dumps({"package_manager": "pacman"}))
        with pytest.raises(ConfigError, match="package_manager"):
            load_config(config_file)

    def test_unknown_keys_are_ignored(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text(json.dumps({"theme": "dark"}))
        assert load_config(config_file) == Config()

    def test_env_override(self, tmp_path, monkeypatch):
        target = tmp_path / "env.json"
        monkeypatch.setenv(config_mod.ENV_CONFIG, str(target))
        assert config_mod.config_path() == target
        load_config()
        assert target.exists()

    def test_config_is_immutable(self):
        cfg = Config()
        with pytest.raises(AttributeError):
            cfg.auto_confirm = True


class TestSet:
    def test_with_value_parses_booleans(self):
        cfg = with_value(Config(), "auto_confirm", "yes")
        assert cfg.auto_confirm is True
        assert Config().auto_confirm is False

    def test_with_value_validates_mode(self):
        with pytest.raises(ConfigError):
            with_value(Config(), "package_manager", "dnf")

    def test_with_value_rejects_unknown_key(self):
        with pytest.raises(ConfigError):
            with_value(Config(), "theme", "dark")

    def test_with_value_rejects_bad_boolean(self):
        with pytest.raises(ConfigError):
            with_value(Config(), "flatpak_enabled", "maybe")

    def test_save_then_load(self, config_file):
        save_config(Config(package_manager="pikman", flatpak_enabled=False), config_file)
        assert load_config(config_file) == Config(package_manager="pikman", flatpak_enabled=False)
