"""Loader for the static application config files (application.yml and profile overlays)."""
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .environment import ACTIVE_PROFILES_PROPERTY, ConfigEnvironment, PropertySource

logger = logging.getLogger(__name__)

BASE_CONFIG_NAME = "application"
CONFIG_DIR_ENV_VAR = "MONGOREST_CONFIG_DIR"


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def _to_property_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(_to_property_value(item) for item in value)
    return str(value)


def flatten_config(config: Dict[str, Any], prefix: str = "") -> Dict[str, str]:
    """
    Flatten nested YAML mappings into dotted property keys.

    Example:
        {"gcp": {"secretmanager": {"enabled": True}}}
        -> {"gcp.secretmanager.enabled": "true"}
    """
    flat: Dict[str, str] = {}
    for key, value in config.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(flatten_config(value, full_key))
        else:
            flat[full_key] = _to_property_value(value)
    return flat


def _resolve_config_dir(environment: ConfigEnvironment, config_dir: Optional[Union[str, Path]]) -> Path:
    """
    Get the directory holding the application config files.

    Priority order:
    1. Explicit argument
    2. MONGOREST_CONFIG_DIR environment variable
    3. ./config relative to the working directory
    """
    if config_dir:
        return Path(config_dir)

    env_dir = environment.getenv(CONFIG_DIR_ENV_VAR)
    if env_dir:
        logger.debug(f"Using config directory from {CONFIG_DIR_ENV_VAR}: {env_dir}")
        return Path(env_dir)

    return Path.cwd() / "config"


def _find_config_file(config_dir: Path, name: str) -> Optional[Path]:
    for suffix in (".yml", ".yaml"):
        candidate = config_dir / f"{name}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def load_config_file(config_path: Path) -> Dict[str, str]:
    """
    Load one YAML config file and flatten it into properties.

    Raises:
        ConfigError: If the file can't be read, isn't valid YAML, or isn't a mapping
    """
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if config is None:
        logger.debug(f"Config file at {config_path} is empty")
        return {}

    if not isinstance(config, dict):
        raise ConfigError(
            f"Config file at {config_path} must contain a mapping at the top level, "
            f"got {type(config).__name__}"
        )

    return flatten_config(config)


def load_application_config(
    environment: ConfigEnvironment,
    config_dir: Optional[Union[str, Path]] = None,
) -> ConfigEnvironment:
    """
    Load application.yml and the overlay for the declared profile.

    The base file is added below the environment and command line sources.
    The declared profile (spring.profiles.active, which the command line and
    SPRING_PROFILES_ACTIVE can override) is marked active and its
    application-{profile}.yml is placed just above the base file.

    Args:
        environment: Environment to populate
        config_dir: Directory holding the config files (see _resolve_config_dir)

    Returns:
        The same environment, for chaining

    Raises:
        ConfigError: If a config file exists but is invalid
    """
    directory = _resolve_config_dir(environment, config_dir)

    base_file = _find_config_file(directory, BASE_CONFIG_NAME)
    base_source = None
    if base_file is None:
        logger.debug(f"No {BASE_CONFIG_NAME}.yml found in {directory}, continuing without it")
    else:
        base_source = PropertySource(base_file.name, load_config_file(base_file))
        environment.add_last(base_source)
        logger.info(f"Loaded {len(base_source)} properties from {base_file}")

    declared = environment.get_property(ACTIVE_PROFILES_PROPERTY)
    if declared and not environment.active_profiles:
        environment.set_active_profiles(*declared.split(","))

    anchor = base_source.name if base_source is not None else None
    for profile in environment.active_profiles:
        profile_file = _find_config_file(directory, f"{BASE_CONFIG_NAME}-{profile}")
        if profile_file is None:
            logger.debug(f"No config overlay for profile '{profile}' in {directory}")
            continue
        profile_source = PropertySource(profile_file.name, load_config_file(profile_file))
        # Later profiles take precedence over earlier ones
        if anchor is None:
            environment.add_last(profile_source)
        else:
            environment.add_before(anchor, profile_source)
        anchor = profile_source.name
        logger.info(f"Loaded {len(profile_source)} properties from {profile_file}")

    return environment
