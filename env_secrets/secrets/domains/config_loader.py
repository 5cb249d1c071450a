"""Configuration loader for env-secrets.

The config file is optional. When present it supplies defaults for the AWS
client:

    aws:
      profile: dev
      region: us-east-1
      endpoint_url: http://localhost:4566
"""
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError
from .preferences import get_preference

logger = logging.getLogger(__name__)

AWS_KEYS = ("profile", "region", "endpoint_url")


def default_config_path() -> Path:
    return Path.home() / ".config" / "env-secrets" / "config.yml"


def _get_config_path() -> Optional[str]:
    """
    Get config file path using XDG Base Directory standard.

    Priority order:
    1. User preference (stored in ~/.config/env-secrets/preferences.json)
    2. Default location: ~/.config/env-secrets/config.yml

    Returns:
        Absolute path to config file, or None when neither location has one
    """
    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.debug(f"Using config from preference: {config_path}")
            return str(config_path)
        else:
            logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.debug(f"Using default config location: {default_config}")
        return str(default_config)

    return None


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Returns:
        Dict containing configuration, empty when no config file exists

    Raises:
        ConfigError: If the config file is unreadable, empty or malformed
    """
    # Resolved on every call so preference changes apply immediately
    config_path = _get_config_path()
    if config_path is None:
        return {}

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    aws = config.get("aws")
    if aws is not None:
        if not isinstance(aws, dict):
            raise ConfigError(
                f"Invalid 'aws' section in config at {config_path}\n"
                f"Required format:\n"
                f"aws:\n"
                f"  profile: your-profile\n"
                f"  region: us-east-1"
            )
        for key in AWS_KEYS:
            if key in aws and not isinstance(aws[key], str):
                raise ConfigError(f"'aws.{key}' in config must be a string")

    logger.debug(f"Configuration loaded from {config_path}")
    return config


def get_aws_defaults() -> Dict[str, Optional[str]]:
    """Return profile/region/endpoint_url defaults from the config file."""
    aws = load_config().get("aws") or {}
    return {key: aws.get(key) or None for key in AWS_KEYS}
