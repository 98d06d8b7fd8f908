"""Client library for the Marketo lead, list and campaign REST API."""

from .core import (
    MarketoError,
    ConfigurationError,
    UnknownCommandError,
    MissingParameterError,
    ClientConfig,
    Lead,
    StaticList,
    Campaign,
    ListMembership,
    fix_repeated_params,
)
from .auth import Authenticator, AuthError
from .client import (
    MarketoClient,
    ApiError,
    TransportError,
    DecodeError,
    create_client,
)

__all__ = [
    "MarketoError",
    "ConfigurationError",
    "UnknownCommandError",
    "MissingParameterError",
    "ClientConfig",
    "Lead",
    "StaticList",
    "Campaign",
    "ListMembership",
    "fix_repeated_params",
    "Authenticator",
    "AuthError",
    "MarketoClient",
    "ApiError",
    "TransportError",
    "DecodeError",
    "create_client",
]
