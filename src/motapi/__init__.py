"""
MOT History API SDK for Python.

A Python SDK for the DVSA MOT History trade API, with OAuth2 client-credentials
authentication and client-side rate limiting built in.

Quick Start:
    >>> from motapi import MotHistoryClient
    >>> client = MotHistoryClient(
    ...     client_id="my-client-id",
    ...     client_secret="my-client-secret",
    ...     api_key="my-api-key",
    ... )
    >>> vehicle = client.get_vehicle_by_registration("ABC123")

Global Configuration:
    >>> from motapi import MOTAPI
    >>> MOTAPI.configure(
    ...     auth={"client_id": "x", "client_secret": "y"},
    ...     api={"api_key": "z"},
    ...     rate_limit={"rps_limit": 5},
    ... )

Main Classes:
    - MotHistoryClient: Client for the MOT History API.
    - CredentialsRequest: Body of the credential renewal call.

Configuration:
    - MOTAPI: Global SDK singleton for configuration.
    - MOTAPIConfig, AuthConfig, ApiConfig, RateLimitConfig: Configuration sections.
    - ConfigEnvVarError, ConfigValidationError: Configuration errors.

Authentication:
    - AuthProvider: Abstract base class for authentication providers.
    - ClientCredentialsAuthProvider: OAuth2 client credentials implementation.
    - create_standalone_auth: Helper to create an auth provider from config.

Rate Limiting:
    - AdmissionController: Daily quota, burst and RPS admission gate.
    - RateLimitedHttpClient: HTTP client decorator applying the admission gate.

HTTP Client:
    - HttpClient: Abstract base class for HTTP clients.
    - StandaloneHttpClient: HTTP client using an AuthProvider and API key.

Errors:
    - MotApiError: Base class for SDK errors.
    - AuthenticationError: Raised when the token exchange fails.
    - ApiError: Raised when the API returns a non-success status.
    - ClassifiedError, ErrorKind, classify_error, describe_status: Error classification.

Events:
    - MotEventListener: Base class for lifecycle observers.
    - LoggingListener: Listener writing notifications to a logger.
"""

from importlib.metadata import version as _get_version

__version__ = _get_version("mot-history-sdk")

from motapi._auth import (
    AuthenticationError,
    AuthProvider,
    ClientCredentialsAuthProvider,
    TokenInfo,
    create_standalone_auth,
)
from motapi._client import MotHistoryClient
from motapi._config import (
    MOTAPI,
    ApiConfig,
    AuthConfig,
    ConfigEntry,
    ConfigEnvVarError,
    ConfigValidationError,
    MOTAPIConfig,
    RateLimitConfig,
)
from motapi._errors import (
    ApiError,
    ClassifiedError,
    ErrorKind,
    MotApiError,
    classify_error,
    describe_status,
)
from motapi._event_listeners import (
    LoggingListener,
    MotEventListener,
)
from motapi._http import (
    HttpClient,
    StandaloneHttpClient,
)
from motapi._models import (
    CredentialsRequest,
    HttpMethod,
)
from motapi._rate_limit import (
    AdmissionController,
    RateLimitedHttpClient,
)

__all__ = [
    "__version__",
    # Client
    "MotHistoryClient",
    "CredentialsRequest",
    "HttpMethod",
    # Configuration
    "MOTAPI",
    "MOTAPIConfig",
    "AuthConfig",
    "ApiConfig",
    "RateLimitConfig",
    "ConfigEntry",
    "ConfigEnvVarError",
    "ConfigValidationError",
    # Authentication
    "AuthProvider",
    "ClientCredentialsAuthProvider",
    "TokenInfo",
    "create_standalone_auth",
    # Rate limiting
    "AdmissionController",
    "RateLimitedHttpClient",
    # HTTP Client
    "HttpClient",
    "StandaloneHttpClient",
    # Errors
    "MotApiError",
    "AuthenticationError",
    "ApiError",
    "ClassifiedError",
    "ErrorKind",
    "classify_error",
    "describe_status",
    # Events
    "MotEventListener",
    "LoggingListener",
]
