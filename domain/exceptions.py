"""Domain-specific exceptions.

Every failure the client can report is an ``OpenFoodFactsError`` carrying a
stable ``kind``, a literal human message, an optional detail and an optional
HTTP status code. Callers should branch on ``kind``/``status_code`` and treat
the message as display text.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Distinguishable failure kinds."""

    TYPE_MISMATCH = "TypeMismatch"
    FORMAT_INVALID = "FormatInvalid"
    MISSING_INPUT = "MissingInput"
    SIZE_EXCEEDED = "SizeExceeded"
    CONTENT_MISMATCH = "ContentMismatch"
    READ_ERROR = "ReadError"
    INSECURE_TRANSPORT = "InsecureTransport"
    CREDENTIALS_REQUIRED = "CredentialsRequired"
    API_ERROR = "ApiError"
    NETWORK_ERROR = "NetworkError"
    INVALID_RESPONSE_FORMAT = "InvalidResponseFormat"


class OpenFoodFactsError(Exception):
    """Base exception for all client errors."""

    kind: ErrorKind = ErrorKind.API_ERROR

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.status_code = status_code

    def with_prefix(self, prefix: str) -> "OpenFoodFactsError":
        """Return a copy of this error with ``prefix: `` prepended to the message.

        Kind, detail and status code are preserved.
        """
        return type(self)(
            f"{prefix}: {self.message}",
            detail=self.detail,
            status_code=self.status_code,
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r}, "
            f"detail={self.detail!r}, status_code={self.status_code!r})"
        )


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(OpenFoodFactsError):
    """Base exception for input rejected before any network access."""

    kind = ErrorKind.FORMAT_INVALID


class TypeMismatchError(ValidationError):
    """Raised when an input has the wrong Python type."""

    kind = ErrorKind.TYPE_MISMATCH


class FormatInvalidError(ValidationError):
    """Raised when an input is of the right type but malformed."""

    kind = ErrorKind.FORMAT_INVALID


class MissingInputError(ValidationError):
    """Raised when a required input is absent."""

    kind = ErrorKind.MISSING_INPUT


class SizeExceededError(ValidationError):
    """Raised when an upload is larger than allowed."""

    kind = ErrorKind.SIZE_EXCEEDED


class ContentMismatchError(ValidationError):
    """Raised when file bytes do not match any allowed image signature."""

    kind = ErrorKind.CONTENT_MISMATCH


class ReadError(ValidationError):
    """Raised when image bytes cannot be read and strict reads are enabled."""

    kind = ErrorKind.READ_ERROR


# ============================================================================
# Security Errors
# ============================================================================


class InsecureTransportError(OpenFoodFactsError):
    """Raised when credentials would travel over a non-HTTPS endpoint."""

    kind = ErrorKind.INSECURE_TRANSPORT


class CredentialsRequiredError(OpenFoodFactsError):
    """Raised when a write operation is attempted without credentials."""

    kind = ErrorKind.CREDENTIALS_REQUIRED


# ============================================================================
# Infrastructure Errors
# ============================================================================


class APIError(OpenFoodFactsError):
    """Base exception for failures after a request was attempted."""


class ApiError(APIError):
    """Non-2xx HTTP response; ``status_code`` is always set."""

    kind = ErrorKind.API_ERROR


class NetworkError(APIError):
    """Transport-level failure (DNS, refused connection, timeout)."""

    kind = ErrorKind.NETWORK_ERROR


class InvalidResponseFormatError(APIError):
    """Response body decoded but is empty or not a JSON object."""

    kind = ErrorKind.INVALID_RESPONSE_FORMAT


class TransportError(Exception):
    """Raised by transports when no HTTP response could be obtained.

    Not part of the public taxonomy; the client turns it into ``NetworkError``.
    """
