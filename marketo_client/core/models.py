"""Core data models for the Marketo REST client."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MUNCHKIN_URL_TEMPLATE = "https://{munchkin_id}.mktorest.com"
DEFAULT_TOKEN_PATH = "/identity/oauth/token"
PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


class MarketoError(Exception):
    """Base class for every error raised by this package."""
    pass


class ConfigurationError(MarketoError):
    """Raised for invalid client configuration or command catalog entries."""
    pass


class UnknownCommandError(ConfigurationError):
    """Raised when a command name has no entry in the catalog."""

    def __init__(self, command: str):
        super().__init__(f"Unknown command '{command}'")
        self.command = command


class MissingParameterError(MarketoError):
    """Raised when a required command parameter was not supplied."""

    def __init__(self, command: str, parameter: str):
        super().__init__(
            f"Command '{command}' requires parameter '{parameter}'"
        )
        self.command = command
        self.parameter = parameter


@dataclass(frozen=True)
class ClientConfig:
    """
    Connection settings and client credentials for one Marketo instance.

    Either base_url or munchkin_id must be set. When only the munchkin id
    is known the instance URL is derived as https://{munchkin_id}.mktorest.com.
    """
    client_id: str
    client_secret: str = field(repr=False)
    base_url: str | None = None
    munchkin_id: str | None = None
    api_version: int = 1
    token_path: str = DEFAULT_TOKEN_PATH
    timeout_seconds: float = 10.0

    @property
    def resolved_base_url(self) -> str:
        """
        Return the instance URL without a trailing slash.

        Raises:
            ConfigurationError: If neither base_url nor munchkin_id is set
        """
        if self.base_url:
            return self.base_url.rstrip("/")
        if self.munchkin_id:
            return MUNCHKIN_URL_TEMPLATE.format(munchkin_id=self.munchkin_id)
        raise ConfigurationError("Must provide either a base URL or a Munchkin ID")

    @property
    def rest_url(self) -> str:
        """Return the versioned REST prefix, e.g. https://x.mktorest.com/rest/v1."""
        return f"{self.resolved_base_url}/rest/v{self.api_version}"

    @property
    def token_url(self) -> str:
        """Return the identity endpoint used for the client-credentials grant."""
        return f"{self.resolved_base_url}/{self.token_path.lstrip('/')}"

    def validate(self) -> None:
        """
        Check that the configuration is usable before any request is made.

        Raises:
            ConfigurationError: If a required setting is missing or invalid
        """
        if not self.client_id:
            raise ConfigurationError("client_id is required")
        if not self.client_secret:
            raise ConfigurationError("client_secret is required")
        if not isinstance(self.api_version, int) or self.api_version < 1:
            raise ConfigurationError(
                f"api_version must be a positive integer, got {self.api_version!r}"
            )
        # Raises when neither URL source is configured
        self.resolved_base_url

    def to_dict(self) -> dict[str, Any]:
        """Convert ClientConfig to a dictionary."""
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "base_url": self.base_url,
            "munchkin_id": self.munchkin_id,
            "api_version": self.api_version,
            "token_path": self.token_path,
            "timeout_seconds": self.timeout_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientConfig":
        """Create ClientConfig from a dictionary."""
        return cls(
            client_id=data["client_id"],
            client_secret=data["client_secret"],
            base_url=data.get("base_url"),
            munchkin_id=data.get("munchkin_id"),
            api_version=int(data.get("api_version", 1)),
            token_path=data.get("token_path", DEFAULT_TOKEN_PATH),
            timeout_seconds=float(data.get("timeout_seconds", 10.0)),
        )


@dataclass(frozen=True)
class AccessToken:
    """An OAuth2 access token with its absolute expiry on a monotonic clock."""
    value: str = field(repr=False)
    expires_at: float

    def is_valid(self, now: float, margin: float = 30.0) -> bool:
        return now < self.expires_at - margin


# ===== Command schema =====

class HttpMethod(Enum):
    """HTTP verbs used by the command catalog."""
    GET = "GET"
    POST = "POST"


class ParamLocation(Enum):
    """Where a command parameter is placed in the outgoing request."""
    PATH = "path"
    QUERY = "query"
    BODY = "body"


@dataclass(frozen=True)
class ParamDefinition:
    """
    A single declared command parameter.

    echo_to_query marks a path parameter that is also repeated in the
    query string.
    """
    name: str
    location: ParamLocation
    required: bool = False
    echo_to_query: bool = False


@dataclass(frozen=True)
class CommandDefinition:
    """
    A named API command: verb, URL template and parameter placement.

    Parameters listed in repeated_params are serialized as repeated bare
    keys (id=1&id=2); their presence flags the command for the array fix-up.
    """
    name: str
    method: HttpMethod
    path: str
    params: tuple[ParamDefinition, ...] = ()
    repeated_params: tuple[str, ...] = ()
    fixed_query: tuple[tuple[str, str], ...] = ()
    extra_location: ParamLocation | None = None

    @property
    def required_params(self) -> list[str]:
        return [p.name for p in self.params if p.required]

    @property
    def path_placeholders(self) -> list[str]:
        """Names of the {placeholder}s in the path template, in order."""
        return PLACEHOLDER_PATTERN.findall(self.path)

    @property
    def uses_array_fixup(self) -> bool:
        return bool(self.repeated_params)

    @property
    def passthrough_location(self) -> ParamLocation:
        """Location for arguments that are not declared on the command."""
        if self.extra_location is not None:
            return self.extra_location
        if self.method == HttpMethod.GET:
            return ParamLocation.QUERY
        return ParamLocation.BODY

    def get_param(self, name: str) -> ParamDefinition | None:
        for param in self.params:
            if param.name == name:
                return param
        return None


@dataclass(frozen=True)
class RequestDescriptor:
    """A fully resolved request, ready to be sent."""
    command: str
    method: HttpMethod
    url: str
    body: dict[str, Any] | None = None


# ===== Records =====

def _map_fields(data: dict[str, Any], keys: dict[str, str]) -> dict[str, Any]:
    """Map Marketo camelCase keys onto dataclass field names."""
    return {attr: data.get(key) for key, attr in keys.items()}


@dataclass
class ErrorDetail:
    """A code/message pair from an envelope's errors or warnings."""
    code: str | None
    message: str | None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorDetail":
        code = data.get("code")
        return cls(
            code=str(code) if code is not None else None,
            message=data.get("message"),
        )


LEAD_FIELDS = {
    "id": "id",
    "email": "email",
    "firstName": "first_name",
    "lastName": "last_name",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "status": "status",
}


@dataclass
class Lead:
    """
    A lead (person) record.

    Marketo returns whichever lead fields were requested, so any field not
    modelled here is kept in attributes under its original name.
    """
    id: int | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    status: str | None = None
    reasons: list[ErrorDetail] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Lead":
        attributes = {
            key: value for key, value in data.items()
            if key not in LEAD_FIELDS and key != "reasons"
        }
        return cls(
            **_map_fields(data, LEAD_FIELDS),
            reasons=[ErrorDetail.from_dict(r) for r in data.get("reasons") or []],
            attributes=attributes,
        )


@dataclass
class StaticList:
    """A static list record."""
    id: int | None = None
    name: str | None = None
    description: str | None = None
    program_name: str | None = None
    workspace_name: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StaticList":
        return cls(**_map_fields(data, {
            "id": "id",
            "name": "name",
            "description": "description",
            "programName": "program_name",
            "workspaceName": "workspace_name",
            "createdAt": "created_at",
            "updatedAt": "updated_at",
        }))


@dataclass
class Campaign:
    """A smart campaign record."""
    id: int | None = None
    name: str | None = None
    description: str | None = None
    type: str | None = None
    program_id: int | None = None
    program_name: str | None = None
    workspace_name: str | None = None
    active: bool | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Campaign":
        return cls(**_map_fields(data, {
            "id": "id",
            "name": "name",
            "description": "description",
            "type": "type",
            "programId": "program_id",
            "programName": "program_name",
            "workspaceName": "workspace_name",
            "active": "active",
            "createdAt": "created_at",
            "updatedAt": "updated_at",
        }))


@dataclass
class ListMembership:
    """Per-lead outcome of a list membership check or list add/remove."""
    id: int | None = None
    status: str | None = None
    reasons: list[ErrorDetail] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ListMembership":
        return cls(
            id=data.get("id"),
            status=data.get("status"),
            reasons=[ErrorDetail.from_dict(r) for r in data.get("reasons") or []],
        )
