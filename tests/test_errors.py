"""Tests for error classification."""

from unittest.mock import MagicMock

import pytest
import requests

from motapi import (
    ApiError,
    AuthenticationError,
    ClassifiedError,
    ErrorKind,
    MotApiError,
    classify_error,
    describe_status,
)
from motapi._errors import ERROR_MESSAGES, classify_status

EXPECTED_MESSAGES = {
    400: "400: Bad Request - The format of the request is incorrect",
    401: "401: Unauthorized - Authentication credentials are missing or invalid",
    403: "403: Forbidden - The request is not allowed",
    404: "404: Not Found - The requested data is not found",
    405: "405: Method Not Allowed - The HTTP method is not supported for this endpoint",
    406: "406: Not Acceptable - The requested media type is not supported",
    409: "409: Conflict - The request could not be completed due to a conflict with the current state of the target resource",
    412: "412: Precondition Failed - Could not complete request because a constraint was not met",
    415: "415: Unsupported Media Type - The media type of the request is not supported",
    422: "422: Unprocessable Entity - The request was well-formed but contains semantic errors",
    429: "429: Too Many Requests - The user has sent too many requests in a given amount of time",
    500: "500: Internal Server Error - An unexpected error has occurred",
    502: "502: Bad Gateway - The server received an invalid response from an upstream server",
    503: "503: Service Unavailable - The server is currently unable to handle the request",
    504: "504: Gateway Timeout - The upstream server failed to send a request in the time allowed by the server",
}


def _http_error(status: int) -> requests.HTTPError:
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    return requests.HTTPError(f"{status} error", response=response)


class TestStatusTable:

    def test_table_covers_exactly_the_documented_codes(self):
        assert set(ERROR_MESSAGES) == set(EXPECTED_MESSAGES)

    @pytest.mark.parametrize("status, expected", sorted(EXPECTED_MESSAGES.items()))
    def test_classify_status_formats_message(self, status, expected):
        classified = classify_status(status)

        assert classified.kind == ErrorKind.API
        assert classified.status == status
        assert classified.message == expected

    def test_unknown_status(self):
        assert describe_status(418) == "An unknown error occurred"
        assert classify_status(418).message == "418: An unknown error occurred"


class TestClassifyError:

    def test_http_error_is_api_error(self):
        error = _http_error(404)

        classified = classify_error(error)

        assert classified == ClassifiedError(
            kind=ErrorKind.API,
            message="404: Not Found - The requested data is not found",
            status=404,
            cause=error,
        )

    def test_connection_error_is_transport_error(self):
        error = requests.ConnectionError("Connection refused")

        classified = classify_error(error)

        assert classified.kind == ErrorKind.TRANSPORT
        assert classified.status is None
        assert classified.message == "Connection refused"
        assert classified.cause is error

    def test_timeout_is_transport_error(self):
        assert classify_error(requests.Timeout("timed out")).kind == ErrorKind.TRANSPORT

    def test_authentication_error_is_auth_error(self):
        error = AuthenticationError()

        classified = classify_error(error)

        assert classified.kind == ErrorKind.AUTH
        assert classified.message == "Failed to obtain access token"


class TestToException:

    def test_api_error_becomes_api_error_exception(self):
        cause = _http_error(503)

        exc = classify_error(cause).to_exception()

        assert isinstance(exc, ApiError)
        assert isinstance(exc, MotApiError)
        assert exc.status == 503
        assert str(exc) == "503: Service Unavailable - The server is currently unable to handle the request"
        assert exc.response is cause.response

    def test_transport_error_is_returned_unmodified(self):
        cause = requests.ConnectionError("boom")

        assert classify_error(cause).to_exception() is cause

    def test_error_kind_values(self):
        assert ErrorKind.AUTH == "AuthError"
        assert ErrorKind.API == "ApiError"
        assert ErrorKind.TRANSPORT == "TransportError"
