"""
Request models for the motapi SDK.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class HttpMethod(StrEnum):
    """HTTP methods used by the MOT History API."""

    GET = "GET"
    PUT = "PUT"


@dataclass(frozen=True)
class CredentialsRequest:
    """
    Body of the credential renewal call (`PUT /credentials`).

    Attributes:
        aws_api_key_value: The current API key value.
        email: Email address registered for the API key.

    Example:
        >>> request = CredentialsRequest(aws_api_key_value="old-key", email="me@example.com")
        >>> request.to_form()
        {'awsApiKeyValue': 'old-key', 'email': 'me@example.com'}
    """

    aws_api_key_value: str
    email: str

    def __post_init__(self) -> None:
        assert self.aws_api_key_value, "aws_api_key_value cannot be empty."
        assert self.email, "email cannot be empty."

    def to_form(self) -> dict[str, str]:
        """Return the form fields expected by the API."""
        return {"awsApiKeyValue": self.aws_api_key_value, "email": self.email}
