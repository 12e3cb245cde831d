"""Order/provider status pair -> user-facing hint."""

from __future__ import annotations

from typing import Optional, Union

from .models import NextAction, OrderStatus, UserInterfaceHint

PAID = "PAID"

_COMPLETED = UserInterfaceHint(
    title="Payment Successful!",
    message="Your transaction has been completed successfully.",
    next_action=NextAction.TRANSACTION_COMPLETE,
)
_PROCESSING = UserInterfaceHint(
    title="Payment Processing",
    message="Your payment is being processed. This usually takes a few minutes.",
    next_action=NextAction.WAIT_FOR_PROCESSING,
    show_progress=True,
)
_PAID_PENDING_TRANSFER = UserInterfaceHint(
    title="Payment Confirmed",
    message="Your payment has been confirmed. The transfer to your wallet is pending.",
    next_action=NextAction.WAIT_FOR_PROCESSING,
)
_AWAITING_PAYMENT = UserInterfaceHint(
    title="Payment Pending",
    message="Your payment is awaiting confirmation. Complete the payment to continue.",
    next_action=NextAction.COMPLETE_PAYMENT,
    cancel_allowed=True,
)
_FAILED = UserInterfaceHint(
    title="Payment Failed",
    message="There was an issue processing your payment. Please contact support.",
    next_action=NextAction.CONTACT_SUPPORT,
)
_CANCELLED = UserInterfaceHint(
    title="Payment Cancelled",
    message="Your payment was cancelled.",
    next_action=NextAction.WAIT,
)
_CHECKING = UserInterfaceHint(
    title="Checking Status",
    message="Checking the status of your payment...",
    next_action=NextAction.WAIT,
)


def is_paid(provider_raw_status: Optional[str]) -> bool:
    return (provider_raw_status or "").strip().upper() == PAID


def derive_hint(
    order_status: Union[OrderStatus, str, None],
    provider_raw_status: Optional[str] = None,
) -> UserInterfaceHint:
    """First matching row wins; unmatched pairs get the neutral checking hint."""

    status = _coerce(order_status)
    if status is OrderStatus.COMPLETED:
        return _COMPLETED
    if status is OrderStatus.PROCESSING:
        return _PROCESSING
    if status is OrderStatus.PENDING:
        return _PAID_PENDING_TRANSFER if is_paid(provider_raw_status) else _AWAITING_PAYMENT
    if status is OrderStatus.FAILED:
        return _FAILED
    if status is OrderStatus.CANCELLED:
        return _CANCELLED
    return _CHECKING


def _coerce(order_status: Union[OrderStatus, str, None]) -> Optional[OrderStatus]:
    # Unknown strings fall through to the checking hint
    if isinstance(order_status, OrderStatus):
        return order_status
    if not order_status:
        return None
    try:
        return OrderStatus(str(order_status).strip().lower())
    except ValueError:
        return None
