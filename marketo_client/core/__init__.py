"""Core components for the Marketo REST client."""

from .models import (
    MarketoError,
    ConfigurationError,
    UnknownCommandError,
    MissingParameterError,
    ClientConfig,
    AccessToken,
    HttpMethod,
    ParamLocation,
    ParamDefinition,
    CommandDefinition,
    RequestDescriptor,
    ErrorDetail,
    Lead,
    StaticList,
    Campaign,
    ListMembership,
)
from .commands import COMMANDS, get_command, list_commands, validate_catalog
from .resolver import build_request, encode_query, fix_repeated_params, resolve
from .config_store import (
    get_base_dir,
    profile_config_path,
    save_client_config,
    load_client_config,
    config_from_env,
    env_overrides,
)

__all__ = [
    "MarketoError",
    "ConfigurationError",
    "UnknownCommandError",
    "MissingParameterError",
    "ClientConfig",
    "AccessToken",
    "HttpMethod",
    "ParamLocation",
    "ParamDefinition",
    "CommandDefinition",
    "RequestDescriptor",
    "ErrorDetail",
    "Lead",
    "StaticList",
    "Campaign",
    "ListMembership",
    "COMMANDS",
    "get_command",
    "list_commands",
    "validate_catalog",
    "build_request",
    "encode_query",
    "fix_repeated_params",
    "resolve",
    "get_base_dir",
    "profile_config_path",
    "save_client_config",
    "load_client_config",
    "config_from_env",
    "env_overrides",
]
