"""
MOT History API client.

This module contains MotHistoryClient, the public entry point of the SDK. Each
public operation is a thin caller into `execute()`, which runs the request
pipeline:

1. wait for admission by the client-side rate limiter;
2. resolve a valid access token (refreshing it when expired);
3. send the request with the bearer token and API key attached;
4. on failure, classify the error and notify listeners.

Example:
    >>> from motapi import MotHistoryClient
    >>> client = MotHistoryClient(
    ...     client_id="my-client-id",
    ...     client_secret="my-client-secret",
    ...     api_key="my-api-key",
    ... )
    >>> vehicle = client.get_vehicle_by_registration("ABC123")
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import requests

from motapi._auth import create_standalone_auth
from motapi._config import MOTAPI, MOTAPIConfig
from motapi._errors import ClassifiedError, ErrorKind, classify_error
from motapi._event_listeners import LoggingListener, MotEventListener, notify_listeners
from motapi._http import HttpClient, StandaloneHttpClient
from motapi._models import CredentialsRequest, HttpMethod
from motapi._rate_limit import AdmissionController, RateLimitedHttpClient

logger = logging.getLogger(__name__)


class MotHistoryClient:
    """
    Client for the DVSA MOT History trade API.

    Thread-safe: one instance can be shared by any number of threads. All of
    them share the same access token and the same rate limit budget.

    Example:
        >>> client = MotHistoryClient(client_id="id", client_secret="secret", api_key="key")
        >>> client.get_vehicle_by_vin("WDD2040082R088866")

    Args:
        client_id: DVSA client ID. Falls back to MOTAPI.config.auth.client_id.
        client_secret: DVSA client secret. Falls back to MOTAPI.config.auth.client_secret.
        api_key: DVSA API key. Falls back to MOTAPI.config.api.api_key.
        listeners: Event listeners. Defaults to a LoggingListener; pass `[]` to disable.
        http_client: Custom transport. If given, credentials are not used and no
            rate limiting is added; the transport is used as-is.
        config: Configuration to use instead of the global MOTAPI.config.

    Raises:
        ValueError: If credentials or the API key are missing and no http_client is given.
    """

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        api_key: str | None = None,
        *,
        listeners: list[MotEventListener] | None = None,
        http_client: HttpClient | None = None,
        config: MOTAPIConfig | None = None,
    ):
        # To disable logging, pass an empty list: `listeners=[]`
        if listeners is None:
            listeners = [LoggingListener()]

        self.config: MOTAPIConfig = config or MOTAPI.config
        self.listeners: list[MotEventListener] = listeners
        self.base_url = self.config.api.base_url.rstrip("/")
        self.request_timeout = self.config.api.request_timeout

        if http_client is None:
            http_client = self._create_http_client(client_id, client_secret, api_key)
        self.http_client: HttpClient = http_client

    def _create_http_client(
        self,
        client_id: str | None,
        client_secret: str | None,
        api_key: str | None,
    ) -> HttpClient:
        auth_config = self.config.auth.with_overrides(
            {"client_id": client_id, "client_secret": client_secret}
        )
        auth = create_standalone_auth(auth_config, listeners=self.listeners)

        api_key = api_key or self.config.api.api_key
        if not api_key:
            raise ValueError(
                "API key not configured. "
                "Pass api_key, call MOTAPI.configure(api={'api_key': ...}) "
                "or set the MOTAPI_API_KEY environment variable."
            )

        client: HttpClient = StandaloneHttpClient(auth_provider=auth, api_key=api_key)

        rl_config = self.config.rate_limit
        if rl_config.enabled:
            logger.debug(
                f"Applying rate limiting (daily_quota={rl_config.daily_quota}, "
                f"burst_limit={rl_config.burst_limit}, rps_limit={rl_config.rps_limit})."
            )
            controller = AdmissionController.from_config(rl_config, listeners=self.listeners)
            client = RateLimitedHttpClient(delegate=client, controller=controller)

        return client

    # =========================================================================
    # Public API
    # =========================================================================

    def get_vehicle_by_registration(self, registration: str) -> Any:
        """Look up a vehicle and its MOT history by registration number."""
        assert registration, "registration cannot be empty."
        return self.execute(f"/registration/{quote(registration, safe='')}")

    def get_vehicle_by_vin(self, vin: str) -> Any:
        """Look up a vehicle and its MOT history by VIN."""
        assert vin, "vin cannot be empty."
        return self.execute(f"/vin/{quote(vin, safe='')}")

    def get_bulk_download(self) -> Any:
        """Return the list of bulk and delta files available for download."""
        return self.execute("/bulk-download")

    def renew_credentials(self, credentials: CredentialsRequest) -> Any:
        """Request a new API key for the given current key and email."""
        return self.execute("/credentials", HttpMethod.PUT, credentials.to_form())

    # =========================================================================
    # Request pipeline
    # =========================================================================

    def execute(
        self,
        endpoint: str,
        method: HttpMethod | str = HttpMethod.GET,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """
        Send a request to the API and return the decoded JSON payload.

        Args:
            endpoint: Path relative to the base URL, e.g. "/vin/ABC".
            method: "GET" or "PUT". GET requests carry no body.
            data: Form fields for PUT requests.

        Returns:
            The decoded JSON payload, None for an empty body, or the raw text
            when the body is not JSON.

        Raises:
            AuthenticationError: If the access token could not be obtained.
            ApiError: If the API answered with a non-success status.
            Exception: Any other transport failure, propagated unmodified. Custom
                HttpClient implementations may raise whatever they like here.
        """
        method = HttpMethod(str(method).upper())
        url = f"{self.base_url}{endpoint}"

        try:
            if method == HttpMethod.PUT:
                response = self.http_client.put(url, data=data, timeout=self.request_timeout)
            else:
                response = self.http_client.get(url, timeout=self.request_timeout)
            response.raise_for_status()
        except Exception as e:
            notify_listeners(self.listeners, "on_request_error", endpoint=endpoint, method=str(method), error=e)
            classified = classify_error(e)
            self._announce_failure(classified)
            if classified.is_api_error:
                raise classified.to_exception() from e
            raise

        payload = self._decode(response)
        notify_listeners(self.listeners, "on_request_success", endpoint=endpoint, method=str(method))
        return payload

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except requests.JSONDecodeError:
            logger.debug(f"Response from {response.url} is not JSON; returning raw text.")
            return response.text

    def _announce_failure(self, classified: ClassifiedError) -> None:
        """Notify listeners about a classified failure. Auth failures were already announced."""
        if classified.kind == ErrorKind.API:
            notify_listeners(
                self.listeners, "on_api_error",
                status=classified.status, message=classified.message,
            )
        elif classified.kind == ErrorKind.TRANSPORT:
            notify_listeners(self.listeners, "on_network_error", cause=classified.cause)
