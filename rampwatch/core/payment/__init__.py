"""
Payment settlement tracking.

Reconciles an on-ramp order with the payment provider's status until it
reaches a terminal state, then drives the receipt prompt and redirect.
"""

from .client import OrderStatusClient, normalize_order, normalize_provider_status
from .context import RampContext
from .controller import PageState, PageStatus, PaymentPageController
from .formatting import explorer_url, format_amount
from .models import (
    NextAction,
    Order,
    OrderStatus,
    PaymentCheckout,
    PaymentProviderStatus,
    PaymentSnapshot,
    TERMINAL_STATUSES,
    UserInterfaceHint,
)
from .onramp import OnrampResult, start_onramp
from .polling import PollingSession, SessionState
from .receipt import ManualCopy, PlatformShare, ShareMethod, ShareResult, share_receipt
from .redirect import RedirectCoordinator
from .share_gate import ReceiptShareGate, ShareCloseReason
from .status_mapper import derive_hint

__all__ = [
    # Client
    "OrderStatusClient",
    "normalize_order",
    "normalize_provider_status",
    # Page
    "RampContext",
    "PageState",
    "PageStatus",
    "PaymentPageController",
    # Models
    "NextAction",
    "Order",
    "OrderStatus",
    "PaymentCheckout",
    "PaymentProviderStatus",
    "PaymentSnapshot",
    "TERMINAL_STATUSES",
    "UserInterfaceHint",
    # Polling and completion flow
    "PollingSession",
    "SessionState",
    "RedirectCoordinator",
    "ReceiptShareGate",
    "ShareCloseReason",
    "derive_hint",
    # Extras
    "OnrampResult",
    "start_onramp",
    "ManualCopy",
    "PlatformShare",
    "ShareMethod",
    "ShareResult",
    "share_receipt",
    "explorer_url",
    "format_amount",
]
