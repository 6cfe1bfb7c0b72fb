"""
Configuration loader: a YAML file, then ``VAMPIRE_VILLAGE_*`` environment overrides.
"""

import logging
import os
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .game_config import GameConfig, default_config

logger = logging.getLogger(__name__)

ENV_PREFIX = "VAMPIRE_VILLAGE_"
CONFIG_PATH_ENV = ENV_PREFIX + "CONFIG"

STORES = ("memory", "sqlite")


def _field_types() -> Dict[str, Any]:
    return {f.name: f.type for f in fields(GameConfig)}


def _coerce(key: str, raw: str) -> Any:
    """Turn an environment string into the type of the config field."""
    field_type = _field_types()[key]
    value = raw.strip()
    if field_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if field_type is int:
        return int(value)
    if field_type == Optional[int]:
        return None if value.lower() in ("", "none", "null") else int(value)
    return raw


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect config values from ``VAMPIRE_VILLAGE_<FIELD>`` variables."""
    environ = os.environ if environ is None else environ
    overrides = {}
    for key in _field_types():
        name = ENV_PREFIX + key.upper()
        if name in environ:
            overrides[key] = _coerce(key, environ[name])
    return overrides


def validate_config(config: GameConfig) -> GameConfig:
    """
    Raises:
        ValueError: If a value cannot describe a playable game
    """
    if config.store.lower() not in STORES:
        raise ValueError(f"Unknown store: {config.store}. Must be one of {', '.join(STORES)}")
    if config.min_players < 3:
        raise ValueError("min_players must be at least 3")
    if config.max_players < config.min_players:
        raise ValueError("max_players must not be below min_players")
    if config.room_code_length < 1 or len(set(config.room_code_alphabet)) < 2:
        raise ValueError("Room codes need a length of at least 1 and two distinct symbols")
    return config


def load_config_from_yaml(config_path: str) -> GameConfig:
    """
    Load game configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        GameConfig instance with values from YAML file

    Raises:
        FileNotFoundError: If the config file doesn't exist
        yaml.YAMLError: If the YAML file is invalid
        ValueError: If the file is not a mapping or a value is out of range
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_file, 'r') as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        return GameConfig()
    if not isinstance(config_dict, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")

    known_keys = _field_types()
    values = {}
    for key, value in config_dict.items():
        if key in known_keys:
            values[key] = value
        else:
            logger.warning("Unknown config key '%s' in %s", key, config_path)

    return validate_config(GameConfig(**values))


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load configuration from a YAML file, or the defaults, and apply environment overrides.

    Args:
        config_path: Optional path to YAML config file. Falls back to
            ``VAMPIRE_VILLAGE_CONFIG``, then to the default config.

    Returns:
        GameConfig instance
    """
    config_path = config_path or os.environ.get(CONFIG_PATH_ENV)
    config = load_config_from_yaml(config_path) if config_path else default_config

    overrides = env_overrides()
    if not overrides:
        return config
    logger.info("Config overridden from environment: %s", ", ".join(sorted(overrides)))
    return validate_config(replace(config, **overrides))
