"""
Tests for error classification at the HTTP boundary.
"""

import httpx
import pytest

from rampwatch.auth import AuthError
from rampwatch.core.recovery import (
    ErrorCategory,
    ErrorKind,
    OrderNotFoundError,
    RecoveryAction,
    StatusCheckError,
    UnauthorizedError,
    classify_http_error,
)


# =============================================================================
# Fixtures
# =============================================================================

def status_error(status_code, body=None):
    request = httpx.Request("POST", "https://api.test/api/ramp/payment/status")
    response = httpx.Response(status_code, json=body if body is not None else {}, request=request)
    return httpx.HTTPStatusError("failed", request=request, response=response)


# =============================================================================
# classify_http_error
# =============================================================================

class TestClassifyHttpError:

    def test_404_is_transient(self):
        """The status record may simply not exist yet."""
        error = classify_http_error(status_error(404))

        assert error.kind is ErrorKind.TRANSIENT
        assert error.category is ErrorCategory.NOT_FOUND
        assert error.status_code == 404

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_rejected_credential(self, status_code):
        error = classify_http_error(status_error(status_code))

        assert isinstance(error, UnauthorizedError)
        assert error.is_permanent
        assert RecoveryAction.RECONNECT_WALLET in error.context.recovery_actions

    def test_server_error_is_permanent_with_body_message(self):
        error = classify_http_error(status_error(500, {"message": "Provider unavailable"}))

        assert error.is_permanent
        assert error.message == "Provider unavailable"
        assert error.context.recovery_actions == [RecoveryAction.RETRY, RecoveryAction.CONTACT_SUPPORT]

    def test_timeout_is_transient(self):
        request = httpx.Request("POST", "https://api.test/api/ramp/payment/status")

        error = classify_http_error(httpx.ReadTimeout("slow", request=request))

        assert error.is_transient
        assert error.category is ErrorCategory.TIMEOUT

    def test_connection_failure_is_transient(self):
        request = httpx.Request("POST", "https://api.test/api/ramp/payment/status")

        error = classify_http_error(httpx.ConnectError("refused", request=request))

        assert error.is_transient
        assert error.category is ErrorCategory.NETWORK

    def test_unreadable_body_is_permanent(self):
        error = classify_http_error(ValueError("Expecting value"))

        assert error.is_permanent
        assert error.category is ErrorCategory.VALIDATION

    def test_classified_error_passes_through(self):
        original = StatusCheckError("already classified", kind=ErrorKind.TRANSIENT)

        assert classify_http_error(original) is original


# =============================================================================
# Terminal error types
# =============================================================================

class TestTerminalErrors:

    def test_order_not_found_is_unrecoverable(self):
        error = OrderNotFoundError("gone", order_id="ord_1")

        assert error.context.recoverable is False
        assert error.context.recovery_actions == [RecoveryAction.GO_TO_DASHBOARD]
        assert error.context.details["order_id"] == "ord_1"

    def test_auth_error_offers_reconnect(self):
        error = AuthError(wallet_address="0xabc")

        assert error.category is ErrorCategory.AUTHENTICATION
        assert error.context.recovery_actions == [RecoveryAction.RECONNECT_WALLET]
