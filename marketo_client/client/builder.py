"""
Builder for configured Marketo clients.

Resolves connection settings from explicit overrides, MARKETO_* environment
variables and saved profiles, then constructs a MarketoClient.
"""

import logging
from typing import Any

import httpx

from marketo_client.core.config_store import env_overrides, load_client_config
from marketo_client.core.models import ClientConfig, ConfigurationError
from .marketo_client import MarketoClient

logger = logging.getLogger(__name__)


def resolve_config(profile: str | None = None, **overrides: Any) -> ClientConfig:
    """
    Work out the effective client configuration.

    Fields are layered with explicit overrides first, then MARKETO_*
    environment variables, then the saved profile. When profile is None
    the "default" profile is consulted only if neither the overrides nor
    the environment supply a client_id, so its secret is never paired
    with a different client.

    Args:
        profile: Saved profile name to load
        **overrides: ClientConfig fields (e.g., munchkin_id, client_id)

    Returns:
        The validated ClientConfig

    Raises:
        ConfigurationError: If no usable configuration can be found
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}
    env = env_overrides()

    fields: dict[str, Any] = {}
    if profile is not None:
        fields = load_client_config(profile).to_dict()
        logger.debug(f"Loaded client configuration from profile '{profile}'")
    elif "client_id" not in env and "client_id" not in overrides:
        try:
            fields = load_client_config("default").to_dict()
            logger.debug("Loaded client configuration from profile 'default'")
        except ConfigurationError:
            fields = {}

    if env:
        logger.debug(f"Applying environment settings: {', '.join(sorted(env))}")
    fields.update(env)
    fields.update(overrides)

    if "client_id" not in fields:
        raise ConfigurationError(
            "No Marketo configuration found. Pass client_id and client_secret, "
            "set MARKETO_CLIENT_ID / MARKETO_CLIENT_SECRET, or save a profile."
        )
    fields.setdefault("client_secret", "")

    try:
        config = ClientConfig(**fields)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration override: {e}") from e

    config.validate()
    return config


def create_client(
    profile: str | None = None,
    http_client: httpx.Client | None = None,
    **overrides: Any,
) -> MarketoClient:
    """
    Create a ready-to-use MarketoClient.

    Args:
        profile: Saved profile name to load
        http_client: Optional httpx client to share
        **overrides: ClientConfig fields overriding other sources

    Returns:
        Configured MarketoClient

    Raises:
        ConfigurationError: If no usable configuration can be found

    Example:
        >>> client = create_client(munchkin_id="123-ABC-456",
        ...                        client_id="id", client_secret="secret")
        >>> lead = client.get_lead(318581).lead
        >>> client.close()
    """
    config = resolve_config(profile, **overrides)
    return MarketoClient(config, http_client=http_client)
