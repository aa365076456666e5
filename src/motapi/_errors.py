"""
Error classification for the motapi SDK.

Failed calls are normalized into a small, stable taxonomy:

- AUTH: the token exchange failed (AuthenticationError).
- API: the MOT History API answered with a non-success status (ApiError).
- TRANSPORT: no response was received. The original `requests` exception is
  propagated as-is, so callers can still catch `requests.ConnectionError`,
  `requests.Timeout`, etc.

Example:
    >>> from motapi._errors import describe_status
    >>> describe_status(404)
    'Not Found - The requested data is not found'
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import requests


ERROR_MESSAGES: dict[int, str] = {
    400: "Bad Request - The format of the request is incorrect",
    401: "Unauthorized - Authentication credentials are missing or invalid",
    403: "Forbidden - The request is not allowed",
    404: "Not Found - The requested data is not found",
    405: "Method Not Allowed - The HTTP method is not supported for this endpoint",
    406: "Not Acceptable - The requested media type is not supported",
    409: "Conflict - The request could not be completed due to a conflict with the current state of the target resource",
    412: "Precondition Failed - Could not complete request because a constraint was not met",
    415: "Unsupported Media Type - The media type of the request is not supported",
    422: "Unprocessable Entity - The request was well-formed but contains semantic errors",
    429: "Too Many Requests - The user has sent too many requests in a given amount of time",
    500: "Internal Server Error - An unexpected error has occurred",
    502: "Bad Gateway - The server received an invalid response from an upstream server",
    503: "Service Unavailable - The server is currently unable to handle the request",
    504: "Gateway Timeout - The upstream server failed to send a request in the time allowed by the server",
}

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred"


# =============================================================================
# Exceptions
# =============================================================================


class MotApiError(Exception):
    """Base class for errors raised by the motapi SDK itself."""

    pass


class ApiError(MotApiError):
    """
    Raised when the MOT History API returns a non-success status code.

    The message is always formatted as `"<status>: <description>"`.

    Attributes:
        status: The HTTP status code returned by the API.
        message: The normalized error message.
        response: The original HTTP response, when available.

    Example:
        >>> try:
        ...     client.get_vehicle_by_registration("ABC123")
        ... except ApiError as e:
        ...     print(e.status, e.message)
        404 404: Not Found - The requested data is not found
    """

    def __init__(self, status: int, message: str, response: requests.Response | None = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.response = response


# =============================================================================
# Classification
# =============================================================================


class ErrorKind(StrEnum):
    """Stable categories for failed calls."""

    AUTH = "AuthError"
    API = "ApiError"
    TRANSPORT = "TransportError"


@dataclass(frozen=True)
class ClassifiedError:
    """
    A failed call outcome normalized into the SDK's error taxonomy.

    Attributes:
        kind: Category of the failure.
        message: Human-readable explanation.
        status: HTTP status code (API errors only).
        cause: The exception that was classified.
    """

    kind: ErrorKind
    message: str
    status: int | None = None
    cause: BaseException | None = None

    @property
    def is_api_error(self) -> bool:
        return self.kind == ErrorKind.API

    def to_exception(self) -> BaseException:
        """
        Return the exception the pipeline should raise for this outcome.

        API errors become `ApiError`; everything else surfaces the original cause.
        """
        if self.kind == ErrorKind.API:
            assert self.status is not None
            response = getattr(self.cause, "response", None)
            return ApiError(self.status, self.message, response=response)
        assert self.cause is not None, "Non-API errors always carry their cause."
        return self.cause


def describe_status(status: int) -> str:
    """Return the table message for `status`, or the generic unknown-error text."""
    return ERROR_MESSAGES.get(status, UNKNOWN_ERROR_MESSAGE)


def classify_status(status: int, cause: BaseException | None = None) -> ClassifiedError:
    """Classify an HTTP response status as an API error."""
    return ClassifiedError(
        kind=ErrorKind.API,
        message=f"{status}: {describe_status(status)}",
        status=status,
        cause=cause,
    )


def classify_error(error: BaseException) -> ClassifiedError:
    """
    Classify any exception raised while performing a call.

    Args:
        error: The exception raised by the auth provider or the HTTP transport.

    Returns:
        ClassifiedError describing the failure.
    """
    # Lazy import to avoid circular dependencies
    from motapi._auth import AuthenticationError

    if isinstance(error, AuthenticationError):
        return ClassifiedError(kind=ErrorKind.AUTH, message=error.message, cause=error)

    response = getattr(error, "response", None)
    if response is not None:
        return classify_status(response.status_code, cause=error)

    return ClassifiedError(kind=ErrorKind.TRANSPORT, message=str(error), cause=error)
