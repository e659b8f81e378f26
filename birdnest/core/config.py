"""Configuration for BirdNest. Persists settings to ~/.config/birdnest/config.json."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from birdnest.core.errors import ConfigError

CONFIG_DIR = Path.home() / ".config" / "birdnest"
CONFIG_FILE = CONFIG_DIR / "config.json"
CACHE_DIR = Path.home() / ".cache" / "birdnest"

ENV_CONFIG = "BIRDNEST_CONFIG"
PACKAGE_MANAGER_MODES = ("auto", "pikman", "apt")

_log = logging.getLogger("birdnest.config")


@dataclass(frozen=True)
class Config:
    """Immutable settings loaded once at startup."""
    package_manager: str = "auto"
    auto_confirm: bool = False
    flatpak_enabled: bool = True

    @property
    def forced_backend(self) -> str | None:
        return None if self.package_manager == "auto" else self.package_manager


DEFAULTS: dict[str, Any] = asdict(Config())


def config_path(override: str | os.PathLike | None = None) -> Path:
    if override:
        return Path(override)
    env = os.environ.get(ENV_CONFIG)
    if env:
        return Path(env)
    return CONFIG_FILE


def from_dict(data: Any, source: str = "config") -> Config:
    """Validate a decoded JSON document and build a Config from it."""
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: expected a JSON object, got {type(data).__name__}")
    values = dict(DEFAULTS)
    for key, value in data.items():
        if key not in DEFAULTS:
            _log.warning("%s: ignoring unknown key %r", source, key)
            continue
        values[key] = value

    mode = values["package_manager"]
    if mode not in PACKAGE_MANAGER_MODES:
        raise ConfigError(
            f"{source}: package_manager must be one of {', '.join(PACKAGE_MANAGER_MODES)}, got {mode!r}"
        )
    for key in ("auto_confirm", "flatpak_enabled"):
        if not isinstance(values[key], bool):
            raise ConfigError(f"{source}: {key} must be true or false, got {values[key]!r}")
    return Config(**values)


def load_config(path: str | os.PathLike | None = None) -> Config:
    """Load the config file, writing defaults on first run."""
    path = config_path(path)
    if not path.exists():
        config = Config()
        _log.info("No config at %s, writing defaults", path)
        save_config(config, path)
        return config
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}: malformed JSON ({e.msg} at line {e.lineno})") from e
    except OSError as e:
        raise ConfigError(f"{path}: cannot read config ({e.strerror})") from e
    config = from_dict(data, source=str(path))
    _log.debug("Loaded config from %s: %s", path, config)
    return config


def save_config(config: Config, path: str | os.PathLike | None = None) -> Path:
    path = config_path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(asdict(config), f, indent=2)
            f.write("\n")
    except OSError as e:
        raise ConfigError(f"{path}: cannot write config ({e.strerror})") from e
    return path


def parse_value(key: str, raw: str) -> Any:
    """Convert a command-line string into the type the key expects."""
    if key not in DEFAULTS:
        raise ConfigError(f"Unknown config key {key!r}; expected one of {', '.join(DEFAULTS)}")
    if isinstance(DEFAULTS[key], bool):
        lowered = raw.strip().lower()
        if lowered in ("true", "yes", "on", "1"):
            return True
        if lowered in ("false", "no", "off", "0"):
            return False
        raise ConfigError(f"{key} must be true or false, got {raw!r}")
    return raw.strip()


def with_value(config: Config, key: str, raw: str) -> Config:
    """Return a copy of config with one key changed, validated like a loaded file."""
    values = asdict(config)
    values[key] = parse_value(key, raw)
    return from_dict(values, source="config set")
