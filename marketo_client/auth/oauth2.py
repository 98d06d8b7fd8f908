"""
OAuth2 client-credentials authentication

Marketo issues access tokens from the instance's identity endpoint
({base_url}/identity/oauth/token). Tokens are cached in memory and reused
until they are within a 30 second margin of expiry.
"""

import logging
import threading
import time
from typing import Any, Callable

import httpx

from marketo_client.core.models import AccessToken, ClientConfig, MarketoError

logger = logging.getLogger(__name__)

EXPIRY_MARGIN_SECONDS = 30.0
DEFAULT_EXPIRES_IN = 3600.0


class AuthError(MarketoError):
    """Raised when an access token cannot be obtained."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class Authenticator:
    """
    Obtains and caches an access token via the client-credentials grant.

    The token is the only state shared between calls. Its read-check-refresh
    sequence runs under a lock, so concurrent callers trigger at most one
    token request and never observe a half-updated token.
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: httpx.Client,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the authenticator.

        Args:
            config: Client configuration with credentials and base URL
            http_client: httpx client used for the token request
            clock: Monotonic time source, injectable for tests
        """
        self.config = config
        self.http_client = http_client
        self._clock = clock
        self._token: AccessToken | None = None
        self._lock = threading.Lock()

    def get_authorization_header(self) -> str:
        """
        Return an Authorization header value for the current token.

        Fetches a new token when none is cached or the cached one is
        about to expire.

        Returns:
            Header value of the form "Bearer <token>"

        Raises:
            AuthError: If the token endpoint fails or returns a bad payload
        """
        with self._lock:
            token = self._token
            if token is None or not token.is_valid(self._clock(), EXPIRY_MARGIN_SECONDS):
                token = self._fetch_token()
                self._token = token
        return f"Bearer {token.value}"

    def refresh(self) -> str:
        """Discard the cached token and fetch a new one."""
        self.invalidate()
        return self.get_authorization_header()

    def invalidate(self) -> None:
        """Drop the cached token so the next call re-authenticates."""
        with self._lock:
            self._token = None

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def _fetch_token(self) -> AccessToken:
        """
        POST the client credentials to the identity endpoint.

        Returns:
            A new AccessToken with its absolute expiry

        Raises:
            AuthError: On HTTP failure, non-JSON payload, missing
                access_token or a non-numeric expires_in
        """
        url = self.config.token_url
        logger.info(f"Requesting access token from {url}")

        try:
            response = self.http_client.post(
                url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.RequestError as e:
            raise AuthError(f"Token request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise AuthError(
                f"Token request failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            payload: Any = response.json()
        except ValueError as e:
            raise AuthError(
                "Token response is not valid JSON",
                status_code=response.status_code,
            ) from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise AuthError(
                "Token response missing 'access_token' field",
                status_code=response.status_code,
            )

        expires_in = payload.get("expires_in", DEFAULT_EXPIRES_IN)
        try:
            expires_in = float(expires_in)
        except (TypeError, ValueError) as e:
            raise AuthError(
                f"Token response has invalid 'expires_in': {expires_in!r}",
                status_code=response.status_code,
            ) from e

        logger.info(f"Obtained access token valid for {expires_in:.0f}s")
        return AccessToken(
            value=str(payload["access_token"]),
            expires_at=self._clock() + expires_in,
        )
