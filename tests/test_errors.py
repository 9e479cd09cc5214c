"""Tests for error classification."""

from datetime import datetime, timezone

import pytest

from wanikani_client.errors import (
    BadCredentials,
    DecodingError,
    ErrorCategory,
    InvalidToken,
    NoCredential,
    NotModified,
    ProtocolError,
    RateLimitExceeded,
    ServiceUnavailable,
    TransportError,
    category_of,
    classify_status,
)


class TestClassifyStatus:
    """Tests for classify_status()."""

    @pytest.mark.parametrize(
        "status,category",
        [
            (200, ErrorCategory.PASSIVE),
            (304, ErrorCategory.PASSIVE),
            (401, ErrorCategory.REQUIRES_REAUTHENTICATION),
            (403, ErrorCategory.REQUIRES_REAUTHENTICATION),
            (404, ErrorCategory.RETRYABLE),
            (429, ErrorCategory.RETRYABLE),
            (500, ErrorCategory.RETRYABLE),
            (503, ErrorCategory.RETRYABLE),
            (422, ErrorCategory.NON_RETRYABLE),
        ],
    )
    def test_documented_codes(self, status, category):
        """Each documented status maps to its category."""
        assert classify_status(status) == category

    def test_undocumented_server_error_is_retryable(self):
        """Other 5xx codes are treated as transient."""
        assert classify_status(502) == ErrorCategory.RETRYABLE

    def test_undocumented_client_error_is_not_retryable(self):
        """Other codes are not retried."""
        assert classify_status(400) == ErrorCategory.NON_RETRYABLE
        assert classify_status(418) == ErrorCategory.NON_RETRYABLE


class TestErrorCategories:
    """Tests for the category carried by each error."""

    def test_protocol_error_category_follows_status(self):
        """ProtocolError derives its category from the status code."""
        assert ProtocolError(401, "/user").category == ErrorCategory.REQUIRES_REAUTHENTICATION
        assert ProtocolError(422, "/reviews").category == ErrorCategory.NON_RETRYABLE

    def test_not_modified_is_passive(self):
        """304 is success with no change."""
        error = NotModified("/subjects")
        assert error.status_code == 304
        assert error.category == ErrorCategory.PASSIVE

    def test_rate_limit_keeps_reset(self):
        """RateLimitExceeded carries the reset instant."""
        reset = datetime(2024, 1, 1, tzinfo=timezone.utc)
        error = RateLimitExceeded("/subjects", limit=60, remaining=0, reset=reset)
        assert error.status_code == 429
        assert error.reset == reset
        assert error.category == ErrorCategory.RETRYABLE

    def test_fixed_categories(self):
        """Non-HTTP errors carry fixed categories."""
        assert TransportError("/user", "timed out").category == ErrorCategory.RETRYABLE
        assert DecodingError("/user", "User", "{}", "bad").category == ErrorCategory.NON_RETRYABLE
        assert NoCredential("api.wanikani.com").category == ErrorCategory.NON_RETRYABLE
        assert BadCredentials().category == ErrorCategory.NON_RETRYABLE
        assert ServiceUnavailable().category == ErrorCategory.RETRYABLE

    def test_category_of_foreign_exception(self):
        """Exceptions from outside the client are non-retryable."""
        assert category_of(ValueError("x")) == ErrorCategory.NON_RETRYABLE
        assert category_of(ProtocolError(503, "/")) == ErrorCategory.RETRYABLE

    def test_authentication_error_messages(self):
        """Authentication errors describe themselves, with optional detail."""
        assert str(InvalidToken()) == "Unknown user access token"
        assert str(BadCredentials("landed on /login")) == (
            "Unknown user credentials: landed on /login"
        )
