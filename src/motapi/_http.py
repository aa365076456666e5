"""
HTTP client abstraction for the motapi SDK.

The transport used by the SDK is pluggable: anything implementing HttpClient
can be handed to MotHistoryClient. Implementations handle authentication and
can be wrapped with decorators for cross-cutting concerns such as rate limiting.

Available implementations:
    - StandaloneHttpClient: Uses an AuthProvider plus the static API key.
    - RateLimitedHttpClient: Decorator that admits requests through the rate limiter
      (see motapi._rate_limit).

Example:
    >>> from motapi._auth import ClientCredentialsAuthProvider
    >>> from motapi._http import StandaloneHttpClient
    >>> auth = ClientCredentialsAuthProvider(client_id="id", client_secret="secret")
    >>> client = StandaloneHttpClient(auth_provider=auth, api_key="my-api-key")
    >>> response = client.get("https://history.mot.api.gov.uk/v1/trade/vehicles/registration/ABC123")
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, override

import requests

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from motapi._auth import AuthProvider

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


# =============================================================================
# Abstract Base Class
# =============================================================================


class HttpClient(ABC):
    """
    Abstract base class for HTTP clients.

    The MOT History API only needs two verbs: GET for lookups and PUT for
    credential renewal.

    Example:
        >>> class MyHttpClient(HttpClient):
        ...     def get(self, url, headers=None, timeout=30):
        ...         return requests.get(url, headers=headers, timeout=timeout)
        ...     def put(self, url, data=None, headers=None, timeout=30):
        ...         return requests.put(url, data=data, headers=headers, timeout=timeout)
    """

    @abstractmethod
    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: int = 30,
    ) -> requests.Response:
        """
        Execute an authenticated GET request with no body.

        Args:
            url: The full URL to request.
            headers: Additional headers to include (merged with auth headers).
            timeout: Request timeout in seconds.

        Returns:
            The HTTP response.

        Raises:
            requests.RequestException: If the HTTP request fails.
        """
        pass

    @abstractmethod
    def put(
        self,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: int = 30,
    ) -> requests.Response:
        """
        Execute an authenticated PUT request with a form-url-encoded body.

        Args:
            url: The full URL to request.
            data: Form fields to send in the request body.
            headers: Additional headers to include (merged with auth headers).
            timeout: Request timeout in seconds.

        Returns:
            The HTTP response.

        Raises:
            requests.RequestException: If the HTTP request fails.
        """
        pass


# =============================================================================
# Standalone Implementation
# =============================================================================


class StandaloneHttpClient(HttpClient):
    """
    HTTP client using an AuthProvider and the static API key.

    Every request carries the `X-API-Key` header and a bearer token obtained
    from the auth provider. The token is resolved per request, so an expired
    token is refreshed transparently.

    Args:
        auth_provider: Provider for authorization tokens.
        api_key: Static API key issued by DVSA.

    See Also:
        ClientCredentialsAuthProvider: OAuth2 client credentials implementation.
    """

    API_KEY_HEADER = "X-API-Key"

    def __init__(self, auth_provider: AuthProvider, api_key: str):
        from motapi._auth import AuthProvider

        assert auth_provider is not None, "auth_provider cannot be None"
        assert isinstance(auth_provider, AuthProvider), "auth_provider must be an AuthProvider instance"
        assert api_key, "api_key cannot be empty"

        self._auth = auth_provider
        self._api_key = api_key

    def _build_headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        return {
            self.API_KEY_HEADER: self._api_key,
            **self._auth.get_auth_headers(),
            **(headers or {}),
        }

    @override
    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: int = 30,
    ) -> requests.Response:
        """
        Execute an authenticated GET request.

        Raises:
            AssertionError: If url is empty or timeout is invalid.
            requests.RequestException: If the HTTP request fails.
            AuthenticationError: If unable to obtain authorization token.
        """
        assert url, "URL cannot be empty."
        assert timeout is not None, "Timeout cannot be None."
        assert timeout > 0, "Timeout must be greater than 0."

        logger.debug(f"GET {url}")
        return requests.get(
            url,
            headers=self._build_headers(headers),
            timeout=timeout,
        )

    @override
    def put(
        self,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: int = 30,
    ) -> requests.Response:
        """
        Execute an authenticated PUT request with a form-url-encoded body.

        Raises:
            AssertionError: If url is empty or timeout is invalid.
            requests.RequestException: If the HTTP request fails.
            AuthenticationError: If unable to obtain authorization token.
        """
        assert url, "URL cannot be empty."
        assert timeout is not None, "Timeout cannot be None."
        assert timeout > 0, "Timeout must be greater than 0."

        merged_headers = self._build_headers({"Content-Type": FORM_CONTENT_TYPE, **(headers or {})})

        logger.debug(f"PUT {url}")
        return requests.put(
            url,
            data=data or {},
            headers=merged_headers,
            timeout=timeout,
        )
