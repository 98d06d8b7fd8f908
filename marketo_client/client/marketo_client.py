"""
Marketo REST client

Maps high-level operations onto catalog commands, resolves them into
requests, authenticates them and decodes the JSON envelope.
"""

import logging
from typing import Any, Mapping, Sequence

import httpx

from marketo_client.auth import Authenticator
from marketo_client.core.commands import COMMANDS, validate_catalog
from marketo_client.core.models import (
    ClientConfig,
    CommandDefinition,
    ErrorDetail,
    MarketoError,
    RequestDescriptor,
)
from marketo_client.core.resolver import resolve
from .responses import (
    CampaignResponse,
    CampaignsResponse,
    DecodeError,
    LeadResponse,
    LeadsResponse,
    ListMembershipResponse,
    ListResponse,
    ListsResponse,
    ResponseEnvelope,
)

logger = logging.getLogger(__name__)

# Marketo error codes for an invalid or expired access token
TOKEN_ERROR_CODES = {"601", "602"}


class TransportError(MarketoError):
    """Raised when the request could not be sent (connection, timeout)."""
    pass


class ApiError(MarketoError):
    """Raised on a non-2xx HTTP status or an envelope with success=false."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        errors: list[ErrorDetail] | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.errors = errors or []


def _join(values: str | int | Sequence[Any]) -> str:
    """Join a sequence into Marketo's comma-separated form."""
    if isinstance(values, (str, int)):
        return str(values)
    return ",".join(str(v) for v in values)


def _as_list(ids: int | str | Sequence[Any]) -> list[Any]:
    if isinstance(ids, (str, int)):
        return [ids]
    return list(ids)


class MarketoClient:
    """
    Client for the Marketo lead, list and campaign REST endpoints.

    Features:
    - Declarative command catalog resolved into requests
    - OAuth2 client-credentials authentication with token caching
    - Repeated-key serialization for identifier arrays
    - Typed response envelopes
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: httpx.Client | None = None,
        authenticator: Authenticator | None = None,
        catalog: Mapping[str, CommandDefinition] = COMMANDS,
    ):
        """
        Initialize the Marketo client.

        Args:
            config: Connection settings and credentials
            http_client: Optional httpx client (created if None)
            authenticator: Optional authenticator (created if None)
            catalog: Command catalog, validated before use

        Raises:
            ConfigurationError: If the configuration or catalog is invalid
        """
        config.validate()
        validate_catalog(catalog)

        self.config = config
        self.catalog = catalog
        self.rest_url = config.rest_url

        # Track if we own the HTTP client (for cleanup)
        self._owns_client = http_client is None

        if http_client is None:
            self.http_client = httpx.Client(timeout=config.timeout_seconds)
        else:
            self.http_client = http_client

        if authenticator is None:
            authenticator = Authenticator(config, self.http_client)
        self.authenticator = authenticator

    def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self._owns_client and self.http_client:
            self.http_client.close()

    def __enter__(self):
        """Context manager support."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager cleanup."""
        self.close()
        return False

    # ===== Dispatch =====

    def resolve(self, command_name: str, args: Mapping[str, Any] | None = None) -> RequestDescriptor:
        """
        Resolve a command into a request without sending it.

        Raises:
            UnknownCommandError: If the command is not in the catalog
            MissingParameterError: If a required parameter is absent
        """
        return resolve(command_name, args or {}, self.rest_url, self.catalog)

    def call(
        self,
        command_name: str,
        args: Mapping[str, Any] | None = None,
        response_type: type[ResponseEnvelope] = ResponseEnvelope,
    ) -> ResponseEnvelope:
        """
        Resolve and execute any catalog command.

        Args:
            command_name: Catalog command name (e.g., "get_lead")
            args: Argument mapping for the command
            response_type: Envelope class used to decode the result

        Returns:
            The decoded response envelope
        """
        descriptor = self.resolve(command_name, args)
        return self.execute(descriptor, response_type)

    def execute(
        self,
        descriptor: RequestDescriptor,
        response_type: type[ResponseEnvelope] = ResponseEnvelope,
    ) -> ResponseEnvelope:
        """
        Send a resolved request and decode its envelope.

        Args:
            descriptor: The resolved request
            response_type: Envelope class used to decode the result

        Returns:
            The decoded envelope (always with success=True)

        Raises:
            AuthError: If no access token can be obtained
            TransportError: On connection failures or timeouts
            ApiError: On a non-2xx status or an envelope with success=false
            DecodeError: If the body is not a valid envelope
        """
        headers = {
            "Authorization": self.authenticator.get_authorization_header(),
            "Accept": "application/json",
        }

        try:
            response = self.http_client.request(
                method=descriptor.method.value,
                url=descriptor.url,
                headers=headers,
                json=descriptor.body,
            )
        except httpx.RequestError as e:
            raise TransportError(f"Request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            if response.status_code == 401:
                self.authenticator.invalidate()
            raise ApiError(
                f"API request failed: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError(
                f"Response to {descriptor.command} is not valid JSON",
                body=response.text[:500],
            ) from e

        envelope = response_type.from_payload(payload)
        logger.debug(
            f"{descriptor.command} returned {len(envelope.result)} records "
            f"(requestId={envelope.request_id})"
        )

        if not envelope.success:
            self._raise_api_error(descriptor, envelope, response.status_code)

        return envelope

    def _raise_api_error(
        self,
        descriptor: RequestDescriptor,
        envelope: ResponseEnvelope,
        status_code: int,
    ) -> None:
        first = envelope.errors[0] if envelope.errors else ErrorDetail(None, None)

        if any(e.code in TOKEN_ERROR_CODES for e in envelope.errors):
            logger.warning(
                f"Access token rejected ({first.code}); it will be refreshed on the next call"
            )
            self.authenticator.invalidate()

        raise ApiError(
            f"{descriptor.command} failed: [{first.code}] {first.message}",
            status_code=status_code,
            code=first.code,
            errors=envelope.errors,
        )

    # ===== LEAD METHODS =====

    def _create_or_update_leads(
        self,
        action: str,
        leads: Sequence[dict[str, Any]],
        lookup_field: str | None,
        extra_params: dict[str, Any] | None,
    ) -> LeadsResponse:
        args = dict(extra_params or {})
        args["input"] = list(leads)
        args["action"] = action
        if lookup_field is not None:
            args["lookupField"] = lookup_field

        return self.call("create_or_update_leads", args, LeadsResponse)

    def create_leads(
        self,
        leads: Sequence[dict[str, Any]],
        lookup_field: str | None = None,
        extra_params: dict[str, Any] | None = None,
    ) -> LeadsResponse:
        """
        Create the given leads.

        Args:
            leads: Lead field dicts (e.g., [{"email": "a@b.com"}])
            lookup_field: Field used to match existing leads
            extra_params: Additional body parameters passed through verbatim

        Returns:
            LeadsResponse with one record (id, status) per input lead
        """
        return self._create_or_update_leads("createOnly", leads, lookup_field, extra_params)

    def update_leads(
        self,
        leads: Sequence[dict[str, Any]],
        lookup_field: str | None = None,
        extra_params: dict[str, Any] | None = None,
    ) -> LeadsResponse:
        """Update the given leads."""
        return self._create_or_update_leads("updateOnly", leads, lookup_field, extra_params)

    def create_or_update_leads(
        self,
        leads: Sequence[dict[str, Any]],
        lookup_field: str | None = None,
        extra_params: dict[str, Any] | None = None,
    ) -> LeadsResponse:
        """Update the given leads, or create them if they do not exist."""
        return self._create_or_update_leads("createOrUpdate", leads, lookup_field, extra_params)

    def create_duplicate_leads(
        self,
        leads: Sequence[dict[str, Any]],
        lookup_field: str | None = None,
        extra_params: dict[str, Any] | None = None,
    ) -> LeadsResponse:
        """Create duplicates of the given leads."""
        return self._create_or_update_leads("createDuplicate", leads, lookup_field, extra_params)

    def get_leads_by_filter_type(
        self,
        filter_type: str,
        filter_values: str | Sequence[Any],
        fields: str | Sequence[str] | None = None,
        extra_params: dict[str, Any] | None = None,
    ) -> LeadsResponse:
        """
        Get multiple leads by filter type.

        Args:
            filter_type: Lead field to filter on (e.g., "email")
            filter_values: One value or a sequence of values
            fields: Lead fields to return
            extra_params: Additional query parameters (e.g., batchSize)

        Returns:
            LeadsResponse with the matching leads
        """
        args = dict(extra_params or {})
        args["filterType"] = filter_type
        args["filterValues"] = _join(filter_values)
        if fields is not None:
            args["fields"] = _join(fields)

        return self.call("get_leads_by_filter_type", args, LeadsResponse)

    def get_lead_by_filter_type(
        self,
        filter_type: str,
        filter_value: str,
        fields: str | Sequence[str] | None = None,
        extra_params: dict[str, Any] | None = None,
    ) -> LeadResponse:
        """
        Get a single lead by filter type.

        Uses the multi-lead endpoint and exposes the first match as
        LeadResponse.lead (None when nothing matches).
        """
        args = dict(extra_params or {})
        args["filterType"] = filter_type
        args["filterValues"] = _join(filter_value)
        if fields is not None:
            args["fields"] = _join(fields)

        return self.call("get_leads_by_filter_type", args, LeadResponse)

    def get_leads_by_list(
        self,
        list_id: int,
        fields: str | Sequence[str] | None = None,
        extra_params: dict[str, Any] | None = None,
    ) -> LeadsResponse:
        """Get the leads that belong to a static list."""
        args = dict(extra_params or {})
        args["listId"] = list_id
        if fields is not None:
            args["fields"] = _join(fields)

        return self.call("get_leads_by_list", args, LeadsResponse)

    def get_lead(
        self,
        lead_id: int,
        fields: str | Sequence[str] | None = None,
        extra_params: dict[str, Any] | None = None,
    ) -> LeadResponse:
        """Get a lead by ID."""
        args = dict(extra_params or {})
        args["id"] = lead_id
        if fields is not None:
            args["fields"] = _join(fields)

        return self.call("get_lead", args, LeadResponse)

    # ===== LIST METHODS =====

    def get_lists(
        self,
        ids: int | Sequence[int] | None = None,
        extra_params: dict[str, Any] | None = None,
    ) -> ListsResponse:
        """
        Get multiple static lists.

        Args:
            ids: Filter by one or more list IDs; sent as repeated id params
            extra_params: Additional query parameters (e.g., name, batchSize)

        Returns:
            ListsResponse with the matching lists
        """
        args = dict(extra_params or {})
        if ids:
            args["id"] = ids

        return self.call("get_lists", args, ListsResponse)

    def get_list(
        self,
        list_id: int,
        extra_params: dict[str, Any] | None = None,
    ) -> ListResponse:
        """Get a static list by ID."""
        args = dict(extra_params or {})
        args["id"] = list_id

        return self.call("get_list", args, ListResponse)

    def is_member_of_list(
        self,
        list_id: int,
        lead_ids: int | Sequence[int],
        extra_params: dict[str, Any] | None = None,
    ) -> ListMembershipResponse:
        """
        Check whether one or more leads are members of a list.

        Args:
            list_id: Static list ID
            lead_ids: A single lead ID or a sequence of lead IDs
            extra_params: Additional query parameters

        Returns:
            ListMembershipResponse; use is_member() or status_for()
        """
        args = dict(extra_params or {})
        args["listId"] = list_id
        args["id"] = lead_ids

        return self.call("is_member_of_list", args, ListMembershipResponse)

    def add_leads_to_list(
        self,
        list_id: int,
        lead_ids: int | Sequence[int],
        extra_params: dict[str, Any] | None = None,
    ) -> ListMembershipResponse:
        """Add one or more leads to a static list."""
        args = dict(extra_params or {})
        args["listId"] = list_id
        args["id"] = _as_list(lead_ids)

        return self.call("add_leads_to_list", args, ListMembershipResponse)

    def remove_leads_from_list(
        self,
        list_id: int,
        lead_ids: int | Sequence[int],
        extra_params: dict[str, Any] | None = None,
    ) -> ListMembershipResponse:
        """Remove one or more leads from a static list."""
        args = dict(extra_params or {})
        args["listId"] = list_id
        args["id"] = _as_list(lead_ids)

        return self.call("remove_leads_from_list", args, ListMembershipResponse)

    # ===== CAMPAIGN METHODS =====

    def get_campaign(
        self,
        campaign_id: int,
        extra_params: dict[str, Any] | None = None,
    ) -> CampaignResponse:
        """Get a smart campaign by ID."""
        args = dict(extra_params or {})
        args["id"] = campaign_id

        return self.call("get_campaign", args, CampaignResponse)

    def get_campaigns(
        self,
        ids: int | Sequence[int] | None = None,
        extra_params: dict[str, Any] | None = None,
    ) -> CampaignsResponse:
        """Get smart campaigns, optionally filtered by one or more IDs."""
        args = dict(extra_params or {})
        if ids:
            args["id"] = ids

        return self.call("get_campaigns", args, CampaignsResponse)
