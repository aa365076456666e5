"""
Authentication providers for the motapi SDK.

This module provides the OAuth2 client-credentials flow used to obtain the
bearer token required by every MOT History API call.

The main classes are:
- AuthProvider: Abstract base class for authentication providers.
- ClientCredentialsAuthProvider: OAuth2 client credentials flow with a shared token cache.

Example:
    >>> from motapi._auth import ClientCredentialsAuthProvider
    >>> auth = ClientCredentialsAuthProvider(
    ...     client_id="my-client-id",
    ...     client_secret="my-client-secret",
    ... )
    >>> headers = auth.get_auth_headers()
    >>> # {"Authorization": "Bearer eyJ..."}
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import requests

from motapi._errors import MotApiError
from motapi._event_listeners import notify_listeners

if TYPE_CHECKING:
    from motapi._config import AuthConfig
    from motapi._event_listeners import MotEventListener

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class AuthenticationError(MotApiError):
    """
    Raised when the token exchange fails.

    The message is always the same; the underlying failure is reported to
    listeners via `on_token_error` and kept in `cause` for debugging.

    Attributes:
        message: Description of the authentication failure.
        cause: The underlying exception that caused the failure, if any.
    """

    DEFAULT_MESSAGE = "Failed to obtain access token"

    def __init__(self, message: str = DEFAULT_MESSAGE, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class TokenInfo:
    """
    Token with expiration metadata.

    Attributes:
        access_token: The OAuth2 access token.
        expires_at: Unix timestamp when the token expires.
    """

    access_token: str
    expires_at: float


# =============================================================================
# Abstract Base Class
# =============================================================================


class AuthProvider(ABC):
    """
    Abstract base class for authentication providers.

    Implementations are responsible for obtaining and managing access tokens.
    All implementations must be thread-safe.
    """

    @abstractmethod
    def get_access_token(self) -> str:
        """
        Obtain a valid access token.

        Returns:
            Access token string (without "Bearer" prefix).

        Raises:
            AuthenticationError: If unable to obtain a valid token.
        """
        pass

    def get_auth_headers(self) -> dict[str, str]:
        """Return the Authorization header carrying the bearer token."""
        return {"Authorization": f"Bearer {self.get_access_token()}"}


# =============================================================================
# Implementations
# =============================================================================


class ClientCredentialsAuthProvider(AuthProvider):
    """
    OAuth2 Client Credentials flow against the DVSA identity provider.

    Features:
        - Token caching: one live token per provider, reused until it expires.
        - Lazy refresh: a new token is only requested when a caller needs one.
        - Thread-safe: the lock is held for the whole exchange, so concurrent
          callers share one token request instead of firing one each.

    Attributes:
        DEFAULT_TOKEN_URL: DVSA OAuth2 token endpoint.
        DEFAULT_SCOPE: Scope identifying the MOT History API audience.

    Example:
        >>> auth = ClientCredentialsAuthProvider(
        ...     client_id="my-client-id",
        ...     client_secret="my-client-secret",
        ... )
        >>> token = auth.get_access_token()

    Args:
        client_id: DVSA client ID.
        client_secret: DVSA client secret.
        token_url: OAuth2 token endpoint URL.
        scope: OAuth2 scope sent with the token request.
        refresh_margin: Seconds before expiration to treat the token as expired.
        listeners: Observers notified on token refresh and token errors.
        timeout: Token request timeout in seconds.
    """

    DEFAULT_TOKEN_URL = "https://login.microsoftonline.com/a455b827-244f-4c97-b5b4-ce5d13b4d00c/oauth2/v2.0/token"
    DEFAULT_SCOPE = "https://tapi.dvsa.gov.uk/.default"
    DEFAULT_REFRESH_MARGIN = 0

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = DEFAULT_TOKEN_URL,
        scope: str = DEFAULT_SCOPE,
        refresh_margin: float = DEFAULT_REFRESH_MARGIN,
        listeners: list[MotEventListener] | None = None,
        timeout: int = 30,
    ):
        assert client_id, "client_id cannot be empty"
        assert client_secret, "client_secret cannot be empty"
        assert refresh_margin >= 0, "refresh_margin must be non-negative"

        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._scope = scope
        self._refresh_margin = refresh_margin
        self._timeout = timeout
        self.listeners: list[MotEventListener] = listeners if listeners is not None else []

        self._token: TokenInfo | None = None
        self._lock = threading.Lock()

    def get_access_token(self) -> str:
        """
        Obtain a valid access token, fetching a new one if necessary.

        Returns:
            Valid access token string.

        Raises:
            AuthenticationError: If unable to obtain a valid token.
        """
        with self._lock:
            if self._is_token_valid():
                assert self._token is not None  # for type checker
                logger.debug("Reusing cached access token.")
                return self._token.access_token

            try:
                token = self._fetch_new_token()
            except AuthenticationError as e:
                error = e
            else:
                error = None
                self._token = token

        # Listeners are notified outside the lock.
        if error is not None:
            notify_listeners(self.listeners, "on_token_error", cause=error.cause)
            raise error

        expires_at = datetime.fromtimestamp(token.expires_at, tz=timezone.utc)
        notify_listeners(self.listeners, "on_token_refreshed", expires_at=expires_at)
        return token.access_token

    def invalidate(self) -> None:
        """Drop the cached token so the next call performs a new exchange."""
        with self._lock:
            self._token = None

    def _is_token_valid(self) -> bool:
        """Check if current token exists and has not reached its expiry."""
        if self._token is None:
            return False
        return time.time() < (self._token.expires_at - self._refresh_margin)

    def _fetch_new_token(self) -> TokenInfo:
        """
        Fetch a new token from the OAuth2 endpoint.

        The caller only ever sees the fixed AuthenticationError message on
        failure. The underlying error is kept as its cause.

        Raises:
            AuthenticationError: If the token request fails for any reason.
        """
        try:
            response = requests.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "scope": self._scope,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._timeout,
            )
            response.raise_for_status()

            data = response.json()
            token = TokenInfo(
                access_token=data["access_token"],
                expires_at=time.time() + float(data["expires_in"]),
            )
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            logger.debug(f"Token request to {self._token_url} failed: {e}")
            raise AuthenticationError(cause=e) from e

        logger.debug(f"Token request to {self._token_url} succeeded.")
        return token


# =============================================================================
# Helper Functions
# =============================================================================


def create_standalone_auth(
    config: AuthConfig | None = None,
    listeners: list[MotEventListener] | None = None,
) -> ClientCredentialsAuthProvider:
    """
    Create a ClientCredentialsAuthProvider from configuration.

    Args:
        config: Optional AuthConfig with credentials. If None, uses
            MOTAPI.config.auth from global configuration.
        listeners: Observers for token lifecycle notifications.

    Raises:
        ValueError: If credentials are not configured.

    Example:
        >>> from motapi import MOTAPI
        >>> MOTAPI.configure(auth={"client_id": "x", "client_secret": "y"})
        >>> auth = create_standalone_auth()
    """
    if config is None:
        from motapi._config import MOTAPI

        config = MOTAPI.config.auth

    if not config.has_credentials():
        raise ValueError(
            "Client credentials not configured. "
            "Set client_id and client_secret via MOTAPI.configure() or environment variables "
            "(MOTAPI_AUTH_CLIENT_ID, MOTAPI_AUTH_CLIENT_SECRET)."
        )

    return ClientCredentialsAuthProvider(
        client_id=config.client_id,  # type: ignore[arg-type]
        client_secret=config.client_secret,  # type: ignore[arg-type]
        token_url=config.token_url,
        scope=config.scope,
        refresh_margin=config.refresh_margin,
        listeners=listeners,
    )
