"""Configuration and persistence for client connection profiles."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from .models import ClientConfig, ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "MARKETO_"


def get_base_dir() -> Path:
    """
    Get the base directory for storing configuration.

    The directory is determined by:
    1. Environment variable MARKETO_CLIENT_HOME if set
    2. Otherwise, ~/.marketo_client

    The directory is created if it does not exist.

    Returns:
        Path to the base directory
    """
    env_home = os.environ.get("MARKETO_CLIENT_HOME")
    if env_home:
        base_dir = Path(env_home)
    else:
        base_dir = Path.home() / ".marketo_client"

    base_dir.mkdir(parents=True, exist_ok=True)
    return base_dir


def profile_config_path(profile: str) -> Path:
    """
    Get the path for a profile's configuration file.

    Args:
        profile: Profile name (e.g., "default", "sandbox")

    Returns:
        Path to the configuration file
    """
    return get_base_dir() / f"{profile}_config.json"


def save_json(path: Path, data: dict) -> Path:
    """
    Save a dictionary as JSON.

    Args:
        path: Destination file
        data: Dictionary to save

    Returns:
        Path to the saved file

    Raises:
        ConfigurationError: If the file cannot be written
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
        logger.debug(f"Saved JSON to {path}")
        return path
    except OSError as e:
        raise ConfigurationError(f"Failed to save JSON to {path}: {e}") from e


def load_json(path: Path) -> dict:
    """
    Load a dictionary from a JSON file.

    Args:
        path: File to read

    Returns:
        The loaded dictionary

    Raises:
        ConfigurationError: If the file does not exist or JSON is invalid
    """
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to load JSON from {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a JSON object in {path}")
    logger.debug(f"Loaded JSON from {path}")
    return data


def save_client_config(config: ClientConfig, profile: str = "default") -> Path:
    """
    Save a ClientConfig under a profile name.

    The file holds the client secret, so it is written owner-readable only.

    Args:
        config: Configuration to save
        profile: Profile name

    Returns:
        Path to the saved file
    """
    path = save_json(profile_config_path(profile), config.to_dict())
    try:
        path.chmod(0o600)
    except OSError:
        logger.warning(f"Could not restrict permissions on {path}")
    return path


def load_client_config(profile: str = "default") -> ClientConfig:
    """
    Load a ClientConfig saved under a profile name.

    Args:
        profile: Profile name

    Returns:
        The loaded ClientConfig

    Raises:
        ConfigurationError: If the file does not exist or is invalid
    """
    data = load_json(profile_config_path(profile))
    try:
        return ClientConfig.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Failed to parse client configuration for profile '{profile}': {e}"
        ) from e


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """
    Read the ClientConfig fields set through MARKETO_* environment variables.

    Recognised variables: MARKETO_CLIENT_ID, MARKETO_CLIENT_SECRET,
    MARKETO_BASE_URL, MARKETO_MUNCHKIN_ID, MARKETO_API_VERSION. Unset or
    empty variables are left out.

    Raises:
        ConfigurationError: If MARKETO_API_VERSION is not an integer
    """
    if environ is None:
        environ = os.environ

    fields: dict[str, Any] = {}
    for name in ("client_id", "client_secret", "base_url", "munchkin_id"):
        value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value:
            fields[name] = value

    version = environ.get(f"{ENV_PREFIX}API_VERSION")
    if version:
        try:
            fields["api_version"] = int(version)
        except ValueError as e:
            raise ConfigurationError(
                f"{ENV_PREFIX}API_VERSION must be an integer, got '{version}'"
            ) from e
    return fields


def config_from_env(environ: Mapping[str, str] | None = None) -> ClientConfig | None:
    """
    Build a ClientConfig from MARKETO_* environment variables.

    Returns:
        The configuration, or None when MARKETO_CLIENT_ID is not set

    Raises:
        ConfigurationError: If MARKETO_API_VERSION is not an integer
    """
    fields = env_overrides(environ)
    if "client_id" not in fields:
        return None
    fields.setdefault("client_secret", "")
    return ClientConfig(**fields)
