"""Tests for the Marketo client executor and operations."""

import json
from urllib.parse import urlsplit

import httpx
import pytest
from unittest.mock import MagicMock, Mock

from marketo_client.auth import Authenticator, AuthError
from marketo_client.client.marketo_client import ApiError, MarketoClient, TransportError
from marketo_client.client.responses import (
    DecodeError,
    LeadResponse,
    LeadsResponse,
    ListMembershipResponse,
    ResponseEnvelope,
)
from marketo_client.core.models import (
    ClientConfig,
    ConfigurationError,
    HttpMethod,
    MissingParameterError,
    RequestDescriptor,
    UnknownCommandError,
)

REST_URL = "https://123-ABC-456.mktorest.com/rest/v1"


def _response(payload=None, status_code=200, text=None):
    """Build a mock API response."""
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    if isinstance(payload, Exception):
        response.json.side_effect = payload
        response.text = text or ""
    else:
        response.json.return_value = payload
        response.text = text if text is not None else json.dumps(payload)
    return response


@pytest.fixture
def config():
    return ClientConfig(client_id="id", client_secret="secret", munchkin_id="123-ABC-456")


@pytest.fixture
def mock_http_client():
    """Create a mock HTTP client."""
    client = Mock(spec=httpx.Client)
    client.request.return_value = _response({"success": True, "result": []})
    return client


@pytest.fixture
def mock_authenticator():
    """Create a mock authenticator."""
    authenticator = Mock(spec=Authenticator)
    authenticator.get_authorization_header.return_value = "Bearer test_token"
    return authenticator


@pytest.fixture
def client(config, mock_http_client, mock_authenticator):
    """Create a Marketo client for testing."""
    return MarketoClient(config, http_client=mock_http_client, authenticator=mock_authenticator)


def _sent(mock_http_client):
    """Return the keyword arguments of the last request."""
    return mock_http_client.request.call_args[1]


# ===== Construction and Lifecycle Tests =====

def test_client_initialization(config):
    """Test that client initializes correctly."""
    client = MarketoClient(config)

    assert client.config == config
    assert client.rest_url == REST_URL
    assert client._owns_client is True
    assert isinstance(client.authenticator, Authenticator)
    assert client.authenticator.http_client is client.http_client
    client.close()


def test_client_with_custom_http_client(config, mock_http_client):
    """Test that client uses provided HTTP client."""
    client = MarketoClient(config, http_client=mock_http_client)

    assert client.http_client == mock_http_client
    assert client._owns_client is False


def test_client_rejects_invalid_config():
    """Test that configuration errors surface at construction."""
    with pytest.raises(ConfigurationError):
        MarketoClient(ClientConfig(client_id="id", client_secret="secret"))


def test_client_close(config):
    """Test that close() closes owned HTTP client."""
    client = MarketoClient(config)
    client.http_client = Mock()
    client.close()

    client.http_client.close.assert_called_once()


def test_client_close_leaves_injected_client_open(client, mock_http_client):
    """Test that an injected HTTP client is not closed."""
    client.close()

    mock_http_client.close.assert_not_called()


def test_client_context_manager(config):
    """Test context manager support."""
    with MarketoClient(config) as client:
        assert client is not None


# ===== Executor Tests =====

def test_execute_success(client, mock_http_client, mock_authenticator):
    """Test a successful request carries the bearer token."""
    mock_http_client.request.return_value = _response(
        {"requestId": "r1", "success": True, "result": [{"id": 1}]}
    )
    descriptor = RequestDescriptor(
        command="get_lead", method=HttpMethod.GET, url=f"{REST_URL}/lead/1.json"
    )

    envelope = client.execute(descriptor, LeadResponse)

    assert envelope.lead.id == 1
    assert envelope.request_id == "r1"
    sent = _sent(mock_http_client)
    assert sent["method"] == "GET"
    assert sent["url"] == f"{REST_URL}/lead/1.json"
    assert sent["headers"]["Authorization"] == "Bearer test_token"
    assert sent["json"] is None
    mock_authenticator.get_authorization_header.assert_called_once()


def test_execute_network_error(client, mock_http_client):
    """Test that transport failures raise TransportError."""
    mock_http_client.request.side_effect = httpx.ConnectTimeout("timed out")

    with pytest.raises(TransportError) as exc_info:
        client.get_lead(1)

    assert isinstance(exc_info.value.__cause__, httpx.ConnectTimeout)
    assert mock_http_client.request.call_count == 1


def test_execute_http_error_is_not_retried(client, mock_http_client):
    """Test that a 5xx status raises ApiError without retrying."""
    mock_http_client.request.return_value = _response(None, status_code=503, text="Unavailable")

    with pytest.raises(ApiError) as exc_info:
        client.get_lead(1)

    assert exc_info.value.status_code == 503
    assert "503" in str(exc_info.value)
    assert mock_http_client.request.call_count == 1


def test_execute_http_401_invalidates_token(client, mock_http_client, mock_authenticator):
    """Test that HTTP 401 drops the cached token."""
    mock_http_client.request.return_value = _response(None, status_code=401, text="Unauthorized")

    with pytest.raises(ApiError):
        client.get_lead(1)

    mock_authenticator.invalidate.assert_called_once()


def test_execute_api_error(client, mock_http_client, mock_authenticator):
    """Test that success=false raises ApiError with the remote code and message."""
    mock_http_client.request.return_value = _response({
        "success": False,
        "errors": [{"code": "1013", "message": "Object not found"}],
    })

    with pytest.raises(ApiError) as exc_info:
        client.get_list(1)

    error = exc_info.value
    assert error.code == "1013"
    assert "Object not found" in str(error)
    assert error.status_code == 200
    assert len(error.errors) == 1
    mock_authenticator.invalidate.assert_not_called()


@pytest.mark.parametrize("code", ["601", "602"])
def test_execute_token_error_invalidates_token(client, mock_http_client, mock_authenticator, code):
    """Test that token errors drop the cached token without retrying."""
    mock_http_client.request.return_value = _response({
        "success": False,
        "errors": [{"code": code, "message": "Access token invalid"}],
    })

    with pytest.raises(ApiError) as exc_info:
        client.get_lead(1)

    assert exc_info.value.code == code
    mock_authenticator.invalidate.assert_called_once()
    assert mock_http_client.request.call_count == 1


def test_execute_invalid_json(client, mock_http_client):
    """Test that a non-JSON body raises DecodeError."""
    mock_http_client.request.return_value = _response(ValueError("bad"), text="<html>oops</html>")

    with pytest.raises(DecodeError) as exc_info:
        client.get_lead(1)

    assert exc_info.value.body == "<html>oops</html>"


def test_execute_unexpected_shape(client, mock_http_client):
    """Test that a JSON body without the envelope shape raises DecodeError."""
    mock_http_client.request.return_value = _response({"id": 1})

    with pytest.raises(DecodeError):
        client.get_lead(1)


def test_execute_auth_failure_sends_nothing(client, mock_http_client, mock_authenticator):
    """Test that an AuthError stops the request from being sent."""
    mock_authenticator.get_authorization_header.side_effect = AuthError("denied", status_code=401)

    with pytest.raises(AuthError):
        client.get_lead(1)

    mock_http_client.request.assert_not_called()


# ===== Dispatch Tests =====

def test_call_unknown_command_makes_no_request(client, mock_http_client, mock_authenticator):
    """Test that unknown commands fail before any network activity."""
    with pytest.raises(UnknownCommandError):
        client.call("getEverything")

    mock_http_client.request.assert_not_called()
    mock_authenticator.get_authorization_header.assert_not_called()


def test_missing_parameter_makes_no_request(client, mock_http_client, mock_authenticator):
    """Test that get_list without an id fails before any network activity."""
    with pytest.raises(MissingParameterError):
        client.get_list(None)

    mock_http_client.request.assert_not_called()
    mock_authenticator.get_authorization_header.assert_not_called()


def test_empty_lead_ids_make_no_request(client, mock_http_client, mock_authenticator):
    """Test that list operations reject an empty id list before sending."""
    with pytest.raises(MissingParameterError):
        client.is_member_of_list(100, [])
    with pytest.raises(MissingParameterError):
        client.add_leads_to_list(1, [])
    with pytest.raises(MissingParameterError):
        client.remove_leads_from_list(1, [])

    mock_http_client.request.assert_not_called()
    mock_authenticator.get_authorization_header.assert_not_called()


def test_call_generic_command(client, mock_http_client):
    """Test the generic dispatch entry point."""
    envelope = client.call("get_campaigns", {"name": "Nurture"})

    assert isinstance(envelope, ResponseEnvelope)
    assert _sent(mock_http_client)["url"] == f"{REST_URL}/campaigns.json?name=Nurture"


# ===== Lead Methods Tests =====

@pytest.mark.parametrize("method_name,action", [
    ("create_leads", "createOnly"),
    ("update_leads", "updateOnly"),
    ("create_or_update_leads", "createOrUpdate"),
    ("create_duplicate_leads", "createDuplicate"),
])
def test_lead_write_actions(client, mock_http_client, method_name, action):
    """Test that the lead write operations share one command."""
    getattr(client, method_name)([{"email": "a@b.com"}])

    sent = _sent(mock_http_client)
    assert sent["method"] == "POST"
    assert sent["url"] == f"{REST_URL}/leads.json"
    assert sent["json"] == {"action": action, "input": [{"email": "a@b.com"}]}


def test_create_leads_with_lookup_field_and_extras(client, mock_http_client):
    """Test lookupField and passthrough extra parameters."""
    client.create_leads(
        [{"email": "a@b.com"}],
        "email",
        extra_params={"partitionName": "Default", "asyncProcessing": False},
    )

    assert _sent(mock_http_client)["json"] == {
        "action": "createOnly",
        "lookupField": "email",
        "input": [{"email": "a@b.com"}],
        "partitionName": "Default",
        "asyncProcessing": False,
    }


def test_get_leads_by_filter_type(client, mock_http_client):
    """Test filter values and fields are comma-joined."""
    mock_http_client.request.return_value = _response(
        {"success": True, "result": [{"id": 1}, {"id": 2}]}
    )

    response = client.get_leads_by_filter_type(
        "email", ["a@b.com", "c@d.com"], fields=["email", "firstName"]
    )

    assert isinstance(response, LeadsResponse)
    assert len(response.leads) == 2
    query = urlsplit(_sent(mock_http_client)["url"]).query
    assert query == "filterType=email&filterValues=a%40b.com%2Cc%40d.com&fields=email%2CfirstName"


def test_get_lead_by_filter_type_returns_first(client, mock_http_client):
    """Test the single-lead convenience wrapper."""
    mock_http_client.request.return_value = _response(
        {"success": True, "result": [{"id": 5, "email": "a@b.com"}, {"id": 6}]}
    )

    response = client.get_lead_by_filter_type("email", "a@b.com")

    assert response.lead.id == 5
    assert urlsplit(_sent(mock_http_client)["url"]).path == "/rest/v1/leads.json"


def test_get_lead_by_filter_type_none(client, mock_http_client):
    """Test the convenience wrapper when nothing matches."""
    assert client.get_lead_by_filter_type("email", "x@y.com").lead is None


def test_get_leads_by_list(client, mock_http_client):
    """Test leads-by-list path and paging passthrough."""
    client.get_leads_by_list(1001, extra_params={"batchSize": 100})

    assert _sent(mock_http_client)["url"] == f"{REST_URL}/list/1001/leads.json?batchSize=100"


def test_get_lead(client, mock_http_client):
    """Test get_lead path and fields."""
    client.get_lead(318581, fields="email")

    assert _sent(mock_http_client)["url"] == f"{REST_URL}/lead/318581.json?fields=email"


# ===== List Methods Tests =====

def test_get_lists_with_ids(client, mock_http_client):
    """Test that list ids are sent as repeated id params."""
    client.get_lists([1, 2])

    assert _sent(mock_http_client)["url"] == f"{REST_URL}/lists.json?id=1&id=2"


def test_get_lists_single_id(client, mock_http_client):
    """Test get_lists with a single id."""
    client.get_lists(3)

    assert _sent(mock_http_client)["url"] == f"{REST_URL}/lists.json?id=3"


def test_get_lists_without_ids(client, mock_http_client):
    """Test get_lists with no filter."""
    client.get_lists()

    assert _sent(mock_http_client)["url"] == f"{REST_URL}/lists.json"


def test_get_list(client, mock_http_client):
    """Test get_list path."""
    mock_http_client.request.return_value = _response(
        {"success": True, "result": [{"id": 1001, "name": "Attendees"}]}
    )

    response = client.get_list(1001)

    assert response.list.name == "Attendees"
    assert _sent(mock_http_client)["url"] == f"{REST_URL}/lists/1001.json"


def test_is_member_of_list(client, mock_http_client):
    """Test membership query string and decoding."""
    mock_http_client.request.return_value = _response(
        {"success": True, "result": [{"id": 1, "status": "memberof"}]}
    )

    response = client.is_member_of_list(100, [1, 2, 3])

    assert isinstance(response, ListMembershipResponse)
    assert response.is_member(1)
    url = _sent(mock_http_client)["url"]
    assert urlsplit(url).path == "/rest/v1/lists/100/leads/ismember.json"
    assert urlsplit(url).query == "listId=100&id=1&id=2&id=3"


def test_add_leads_to_list_wraps_single_id(client, mock_http_client):
    """Test that a single lead id is sent as a one-element array."""
    client.add_leads_to_list(7, 42)

    sent = _sent(mock_http_client)
    assert sent["method"] == "POST"
    assert sent["url"] == f"{REST_URL}/lists/7/leads.json?id=42"
    assert sent["json"] is None


def test_remove_leads_from_list(client, mock_http_client):
    """Test list removal uses the remove command."""
    client.remove_leads_from_list(7, [1, 2])

    sent = _sent(mock_http_client)
    assert sent["method"] == "POST"
    assert sent["url"] == f"{REST_URL}/lists/7/leads.json?id=1&id=2&_method=DELETE"


# ===== Campaign Methods Tests =====

def test_get_campaign(client, mock_http_client):
    """Test get_campaign path and decoding."""
    mock_http_client.request.return_value = _response(
        {"success": True, "result": [{"id": 1004, "name": "Nurture"}]}
    )

    response = client.get_campaign(1004)

    assert response.campaign.name == "Nurture"
    assert _sent(mock_http_client)["url"] == f"{REST_URL}/campaigns/1004.json"


def test_get_campaigns_with_ids(client, mock_http_client):
    """Test that campaign ids are sent as repeated id params."""
    client.get_campaigns([10, 20])

    assert _sent(mock_http_client)["url"] == f"{REST_URL}/campaigns.json?id=10&id=20"


# ===== Error Type Tests =====

def test_api_error_attributes():
    """Test ApiError stores status code, code and errors."""
    error = ApiError("Request failed", status_code=404)
    assert str(error) == "Request failed"
    assert error.status_code == 404
    assert error.code is None
    assert error.errors == []
