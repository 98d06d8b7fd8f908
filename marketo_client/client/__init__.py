"""Marketo REST client, response envelopes and client builder."""

from .marketo_client import MarketoClient, ApiError, TransportError
from .responses import (
    DecodeError,
    ResponseEnvelope,
    LeadsResponse,
    LeadResponse,
    ListsResponse,
    ListResponse,
    CampaignsResponse,
    CampaignResponse,
    ListMembershipResponse,
)
from .builder import create_client, resolve_config

__all__ = [
    "MarketoClient",
    "ApiError",
    "TransportError",
    "DecodeError",
    "ResponseEnvelope",
    "LeadsResponse",
    "LeadResponse",
    "ListsResponse",
    "ListResponse",
    "CampaignsResponse",
    "CampaignResponse",
    "ListMembershipResponse",
    "create_client",
    "resolve_config",
]
