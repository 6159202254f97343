import os

import pydantic
import yaml
from loguru import logger

from pendant.schemas.config import PendantConfig

CONFIG_ENV_VAR = "PENDANT_CONFIG"

class ConfigError(ValueError):
    pass

def load_config(path: str | None = None) -> PendantConfig:
    """
    Load and validate the pendant configuration file.

    Args:
        path: Path to a YAML configuration file, or None for defaults

    Returns:
        Validated PendantConfig

    Raises:
        ConfigError: If the file cannot be read or fails validation
    """
    if path is None:
        return PendantConfig()

    try:
        with open(path, 'r') as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read configuration {path}: {e}")

    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration {path} must be a mapping")

    try:
        config = PendantConfig.model_validate(raw)
    except pydantic.ValidationError as e:
        raise ConfigError(f"Invalid configuration {path}: {e}")

    logger.info(f"Loaded configuration from {path}")
    return config

def load_config_from_env() -> PendantConfig:
    """
    Load the configuration named by the PENDANT_CONFIG environment variable.

    Returns:
        Validated PendantConfig, defaults if the variable is unset
    """
    return load_config(os.environ.get(CONFIG_ENV_VAR))

def apply_overrides(config: PendantConfig, **overrides: object) -> PendantConfig:
    """
    Apply command-line overrides on top of a loaded configuration.
    Keys use section__field form (e.g. grbl__port); None values are ignored.

    Args:
        config: Loaded configuration
        overrides: Override values keyed by section__field

    Returns:
        New PendantConfig with overrides applied

    Raises:
        ConfigError: If an override key is unknown or fails validation
    """
    data = config.model_dump()
    for key, value in overrides.items():
        if value is None:
            continue
        section, _, field = key.partition("__")
        if not field:
            data[section] = value
        elif section in data and isinstance(data[section], dict):
            data[section][field] = value
        else:
            raise ConfigError(f"Unknown configuration override: {key}")
    try:
        return PendantConfig.model_validate(data)
    except pydantic.ValidationError as e:
        raise ConfigError(f"Invalid configuration override: {e}")
