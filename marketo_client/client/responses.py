"""
Typed response envelopes

Every Marketo REST response is wrapped in the same envelope:

    {"requestId": "...", "success": true, "result": [...],
     "errors": [...], "warnings": [...], "nextPageToken": "...",
     "moreResult": false}

Each operation decodes that envelope into a subclass whose record_type
decides how the result entries are mapped.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar

from marketo_client.core.models import (
    Campaign,
    ErrorDetail,
    Lead,
    ListMembership,
    MarketoError,
    StaticList,
)

MEMBER_STATUS = "memberof"


class DecodeError(MarketoError):
    """Raised when a response body is not a valid Marketo envelope."""

    def __init__(self, message: str, body: str | None = None):
        super().__init__(message)
        self.body = body


def _expect_list(payload: dict[str, Any], key: str) -> list[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise DecodeError(f"Envelope field '{key}' must be a list, got {type(value).__name__}")
    return value


def _expect_objects(payload: dict[str, Any], key: str) -> list[dict[str, Any]]:
    items = _expect_list(payload, key)
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise DecodeError(f"Envelope field '{key}[{index}]' must be an object")
    return items


@dataclass
class ResponseEnvelope:
    """Decoded response envelope with untyped result entries."""
    success: bool
    request_id: str | None = None
    result: list[Any] = field(default_factory=list)
    errors: list[ErrorDetail] = field(default_factory=list)
    warnings: list[Any] = field(default_factory=list)
    next_page_token: str | None = None
    more_result: bool = False

    record_type: ClassVar[Any] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ResponseEnvelope":
        """
        Decode a parsed JSON payload into this envelope type.

        Unknown envelope and record fields are ignored.

        Args:
            payload: The parsed JSON body

        Returns:
            An instance of the envelope subclass

        Raises:
            DecodeError: If the payload does not have the envelope shape
        """
        if not isinstance(payload, dict):
            raise DecodeError(f"Expected a JSON object, got {type(payload).__name__}")

        success = payload.get("success")
        if not isinstance(success, bool):
            raise DecodeError("Envelope is missing a boolean 'success' field")

        errors = [ErrorDetail.from_dict(e) for e in _expect_objects(payload, "errors")]

        if cls.record_type is None:
            result = _expect_list(payload, "result")
        else:
            try:
                result = [
                    cls.record_type.from_dict(item)
                    for item in _expect_objects(payload, "result")
                ]
            except (AttributeError, TypeError, ValueError) as e:
                raise DecodeError(
                    f"Could not decode {cls.record_type.__name__} record: {e}"
                ) from e

        return cls(
            success=success,
            request_id=payload.get("requestId"),
            result=result,
            errors=errors,
            warnings=_expect_list(payload, "warnings"),
            next_page_token=payload.get("nextPageToken"),
            more_result=bool(payload.get("moreResult", False)),
        )

    @property
    def first(self) -> Any:
        """Return the first result record, or None when there are none."""
        return self.result[0] if self.result else None


@dataclass
class LeadsResponse(ResponseEnvelope):
    record_type: ClassVar[Any] = Lead

    @property
    def leads(self) -> list[Lead]:
        return self.result


@dataclass
class LeadResponse(ResponseEnvelope):
    """Envelope for single-lead operations; lead is the first match."""
    record_type: ClassVar[Any] = Lead

    @property
    def lead(self) -> Lead | None:
        return self.first


@dataclass
class ListsResponse(ResponseEnvelope):
    record_type: ClassVar[Any] = StaticList

    @property
    def lists(self) -> list[StaticList]:
        return self.result


@dataclass
class ListResponse(ResponseEnvelope):
    record_type: ClassVar[Any] = StaticList

    @property
    def list(self) -> StaticList | None:
        return self.first


@dataclass
class CampaignsResponse(ResponseEnvelope):
    record_type: ClassVar[Any] = Campaign

    @property
    def campaigns(self) -> list[Campaign]:
        return self.result


@dataclass
class CampaignResponse(ResponseEnvelope):
    record_type: ClassVar[Any] = Campaign

    @property
    def campaign(self) -> Campaign | None:
        return self.first


@dataclass
class ListMembershipResponse(ResponseEnvelope):
    """
    Envelope for membership checks and list add/remove operations.

    Each record carries the lead id and a status such as "memberof",
    "notmemberof", "added", "removed" or "skipped".
    """
    record_type: ClassVar[Any] = ListMembership

    @property
    def memberships(self) -> list[ListMembership]:
        return self.result

    def status_for(self, lead_id: int | str) -> str | None:
        """Return the status reported for a lead id, or None if absent."""
        for membership in self.result:
            if str(membership.id) == str(lead_id):
                return membership.status
        return None

    def is_member(self, lead_id: int | str | None = None) -> bool:
        """
        Check list membership.

        Args:
            lead_id: Lead to check; defaults to the first record

        Returns:
            True if the lead's status is "memberof"
        """
        if lead_id is None:
            first = self.first
            status = first.status if first else None
        else:
            status = self.status_for(lead_id)
        return status == MEMBER_STATUS
