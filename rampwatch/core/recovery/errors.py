"""
Error Classification

Defines the error types raised by the reconciliation engine.
Transport failures are converted into one of these at the client boundary,
so callers only ever see a classified error with at least one recovery action.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx


class ErrorCategory(str, Enum):
    """Categories of errors for recovery decisions."""

    NETWORK = "network"           # Connectivity issues, DNS, resets
    TIMEOUT = "timeout"           # Request timed out
    NOT_FOUND = "not_found"       # Record does not exist (yet)
    AUTHENTICATION = "authentication"  # Missing/rejected credential
    PROVIDER = "provider"         # Backend rejected the request
    VALIDATION = "validation"     # Response could not be parsed
    UNKNOWN = "unknown"


class ErrorKind(str, Enum):
    """Whether a status check failure is expected to resolve on its own."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


class RecoveryAction(str, Enum):
    """Actions a user can take from a surfaced error."""

    RETRY = "retry"
    RECONNECT_WALLET = "reconnect_wallet"
    GO_TO_DASHBOARD = "go_to_dashboard"
    CONTACT_SUPPORT = "contact_support"


@dataclass
class ErrorContext:
    """Additional context about an error."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    recoverable: bool = True
    suggested_action: Optional[str] = None
    recovery_actions: List[RecoveryAction] = field(default_factory=list)
    status_code: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)


class RampError(Exception):
    """Base class for every classified error in the package."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context = context or ErrorContext(category=category)


class StatusCheckError(RampError):
    """
    A reconciliation call failed.

    Transient failures (404 on the status endpoint, network blips) are
    swallowed by the polling session and retried on the next tick.
    Permanent failures are surfaced with a manual "check again" action.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.PERMANENT,
        category: ErrorCategory = ErrorCategory.PROVIDER,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        transient = kind is ErrorKind.TRANSIENT
        super().__init__(
            message,
            category=category,
            context=ErrorContext(
                category=category,
                recoverable=True,
                suggested_action=(
                    "Retry on the next scheduled check" if transient else "Check the payment status again"
                ),
                recovery_actions=[] if transient else [RecoveryAction.RETRY, RecoveryAction.CONTACT_SUPPORT],
                status_code=status_code,
                details=details or {},
            ),
        )
        self.kind = kind
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT

    @property
    def is_permanent(self) -> bool:
        return self.kind is ErrorKind.PERMANENT


class UnauthorizedError(StatusCheckError):
    """The bearer credential was rejected (401/403)."""

    def __init__(self, message: str = "Authorization rejected", status_code: Optional[int] = 401):
        super().__init__(
            message,
            kind=ErrorKind.PERMANENT,
            category=ErrorCategory.AUTHENTICATION,
            status_code=status_code,
        )
        self.context.recovery_actions = [RecoveryAction.RETRY, RecoveryAction.RECONNECT_WALLET]


class OrderNotFoundError(RampError):
    """No order could be resolved by either identifier path."""

    def __init__(
        self,
        message: str = "Order not found",
        order_id: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ):
        super().__init__(
            message,
            category=ErrorCategory.NOT_FOUND,
            context=ErrorContext(
                category=ErrorCategory.NOT_FOUND,
                recoverable=False,
                suggested_action="Return to the dashboard",
                recovery_actions=[RecoveryAction.GO_TO_DASHBOARD],
                status_code=404,
                details={"order_id": order_id, "payment_reference": payment_reference},
            ),
        )
        self.order_id = order_id
        self.payment_reference = payment_reference


def _response_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        return str(message) if message else None
    return None


def classify_http_error(error: Exception, *, operation: str = "status check") -> StatusCheckError:
    """
    Convert an ``httpx`` exception into a StatusCheckError.

    404 and transport-level failures are transient; 401/403 become
    UnauthorizedError; everything else is permanent.
    """
    if isinstance(error, StatusCheckError):
        return error

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        message = _response_message(error.response) or f"{operation} failed with HTTP {status}"
        if status == 404:
            return StatusCheckError(
                message,
                kind=ErrorKind.TRANSIENT,
                category=ErrorCategory.NOT_FOUND,
                status_code=status,
            )
        if status in (401, 403):
            return UnauthorizedError(message, status_code=status)
        return StatusCheckError(message, kind=ErrorKind.PERMANENT, status_code=status)

    if isinstance(error, httpx.TimeoutException):
        return StatusCheckError(
            f"{operation} timed out",
            kind=ErrorKind.TRANSIENT,
            category=ErrorCategory.TIMEOUT,
        )

    if isinstance(error, httpx.RequestError):
        return StatusCheckError(
            f"{operation} could not reach the server: {error}",
            kind=ErrorKind.TRANSIENT,
            category=ErrorCategory.NETWORK,
        )

    if isinstance(error, (ValueError, KeyError, TypeError, OverflowError)):
        return StatusCheckError(
            f"{operation} returned an unreadable response: {error}",
            kind=ErrorKind.PERMANENT,
            category=ErrorCategory.VALIDATION,
        )

    return StatusCheckError(f"{operation} failed: {error}", kind=ErrorKind.PERMANENT)
