"""
Error taxonomy for the WaniKani client.

Every error raised by the client derives from WaniKaniError and carries an
ErrorCategory, so callers can decide between dismiss, retry and logout
without re-inspecting raw status codes:

- TransportError: network unreachable, timeouts (retryable)
- ProtocolError: non-success HTTP status, classified by status code
  - NotModified: 304, passive success-with-no-change
  - RateLimitExceeded: 429 with the server-supplied reset time
- DecodingError: response body does not match the expected schema
- CredentialError: NoCredential, UnexpectedCredentialData,
  UnhandledCredentialError
- AuthenticationError: login and token bootstrap failures, including the
  HTML scraping failures (CsrfTokenNotFound, EmailNotFound,
  AccessTokenNotFound, BadCredentials, SessionCookieNotSet)
"""

from datetime import datetime
from enum import Enum


class ErrorCategory(str, Enum):
    """How a caller should react to an error."""

    PASSIVE = "passive"
    REQUIRES_REAUTHENTICATION = "requires_reauthentication"
    RETRYABLE = "retryable"
    NON_RETRYABLE = "non_retryable"


def classify_status(status_code: int) -> ErrorCategory:
    """
    Classify an HTTP status code.

    Args:
        status_code: HTTP status returned by the API.

    Returns:
        The ErrorCategory for the status. Codes the API does not document
        fall back to RETRYABLE for 5xx and NON_RETRYABLE otherwise.
    """
    if status_code in (200, 304):
        return ErrorCategory.PASSIVE
    if status_code in (401, 403):
        return ErrorCategory.REQUIRES_REAUTHENTICATION
    if status_code in (404, 429, 500, 503):
        return ErrorCategory.RETRYABLE
    if status_code == 422:
        return ErrorCategory.NON_RETRYABLE
    if 500 <= status_code < 600:
        return ErrorCategory.RETRYABLE
    return ErrorCategory.NON_RETRYABLE


def category_of(error: BaseException) -> ErrorCategory:
    """Category of any exception; foreign exceptions are non-retryable."""
    if isinstance(error, WaniKaniError):
        return error.category
    return ErrorCategory.NON_RETRYABLE


class WaniKaniError(Exception):
    """Base class for all client errors."""

    category: ErrorCategory = ErrorCategory.NON_RETRYABLE


# =============================================================================
# Transport and protocol errors
# =============================================================================


class TransportError(WaniKaniError):
    """
    Raised when a request never produced an HTTP response.

    Attributes:
        url: The URL that was requested.
    """

    category = ErrorCategory.RETRYABLE

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Request to {url} failed: {reason}")


class ProtocolError(WaniKaniError):
    """
    Raised when the API answers with a non-success status.

    Attributes:
        status_code: HTTP status code of the response.
        url: The URL that was requested.
        message: Error message reported by the API, if any.
    """

    def __init__(self, status_code: int, url: str, message: str = "") -> None:
        self.status_code = status_code
        self.url = url
        self.message = message
        detail = f": {message}" if message else ""
        super().__init__(f"WaniKani returned {status_code} for {url}{detail}")

    @property
    def category(self) -> ErrorCategory:  # type: ignore[override]
        return classify_status(self.status_code)


class NotModified(ProtocolError):
    """Raised for 304 responses to conditional requests."""

    def __init__(self, url: str) -> None:
        super().__init__(304, url)


class RateLimitExceeded(ProtocolError):
    """
    Raised when the API rejects a request with 429.

    Attributes:
        limit: Requests allowed per window, if reported.
        remaining: Requests left in the window, if reported.
        reset: When the window resets, if reported.
    """

    def __init__(
        self,
        url: str,
        limit: int | None = None,
        remaining: int | None = None,
        reset: datetime | None = None,
    ) -> None:
        self.limit = limit
        self.remaining = remaining
        self.reset = reset
        super().__init__(429, url, "rate limit exceeded")


class DecodingError(WaniKaniError):
    """
    Raised when a response body does not match the expected content type.

    Attributes:
        url: The URL whose response failed to decode.
        content: Name of the type the body was decoded into.
        shape: Top-level structure of the payload (keys only, no values).
    """

    category = ErrorCategory.NON_RETRYABLE

    def __init__(self, url: str, content: str, shape: str, reason: str) -> None:
        self.url = url
        self.content = content
        self.shape = shape
        self.reason = reason
        super().__init__(f"Could not decode {content} from {url}: {reason}")


# =============================================================================
# Credential storage errors
# =============================================================================


class CredentialError(WaniKaniError):
    """Base class for credential store failures."""

    category = ErrorCategory.NON_RETRYABLE


class NoCredential(CredentialError):
    """Raised when no credential is stored for the domain."""

    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__(f"No credential stored for {domain}")


class UnexpectedCredentialData(CredentialError):
    """Raised when the stored record is missing fields or is not UTF-8."""

    def __init__(self, domain: str, reason: str) -> None:
        self.domain = domain
        self.reason = reason
        super().__init__(f"Stored credential for {domain} is malformed: {reason}")


class UnhandledCredentialError(CredentialError):
    """
    Raised for any other storage failure.

    Attributes:
        status: Native error code of the storage backend.
    """

    def __init__(self, status: int, reason: str = "") -> None:
        self.status = status
        self.reason = reason
        super().__init__(f"Credential storage failed with status {status}: {reason}")


# =============================================================================
# Authentication and scraping errors
# =============================================================================


class AuthenticationError(WaniKaniError):
    """Base class for login failures. All are fatal to the attempt."""

    category = ErrorCategory.NON_RETRYABLE
    description = "Authentication failed"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{self.description}: {detail}" if detail else self.description)


class BadCredentials(AuthenticationError):
    description = "Unknown user credentials"


class CsrfTokenNotFound(AuthenticationError):
    description = "CSRF token not found"


class EmailNotFound(AuthenticationError):
    description = "Email address not found"


class AccessTokenNotFound(AuthenticationError):
    description = "Access token not found"


class SessionCookieNotSet(AuthenticationError):
    description = "Session cookie not set"


class InvalidToken(AuthenticationError):
    description = "Unknown user access token"


class ServiceUnavailable(AuthenticationError):
    category = ErrorCategory.RETRYABLE
    description = "WaniKani is currently unavailable"
