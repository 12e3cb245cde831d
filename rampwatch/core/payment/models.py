"""
Payment Settlement Models

Normalized order and payment-provider views produced by each reconciliation,
plus the UI hint derived from them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    """Lifecycle state of an order."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def normalize(cls, raw: Any) -> "OrderStatus":
        """Map a raw status value onto the enum; anything unknown is pending."""
        if isinstance(raw, cls):
            return raw
        value = str(raw or "").strip().lower()
        if value == "canceled":
            value = "cancelled"
        try:
            return cls(value)
        except ValueError:
            return cls.PENDING

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    OrderStatus.COMPLETED,
    OrderStatus.FAILED,
    OrderStatus.CANCELLED,
})


class NextAction(str, Enum):
    """What the user should do next."""

    TRANSACTION_COMPLETE = "transaction_complete"
    WAIT_FOR_PROCESSING = "wait_for_processing"
    COMPLETE_PAYMENT = "complete_payment"
    CONTACT_SUPPORT = "contact_support"
    WAIT = "wait"


class Order(BaseModel):
    """One swap/settlement transaction, always fully populated."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: OrderStatus = OrderStatus.PENDING
    type: str = "onramp"
    source_amount: Decimal = Decimal("0")
    source_currency: str
    target_amount: Decimal = Decimal("0")
    target_currency: str
    recipient_address: Optional[str] = None
    transaction_hash: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    notes: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class PaymentProviderStatus(BaseModel):
    """The payment rail's own view of the payment."""

    model_config = ConfigDict(frozen=True)

    raw_status: str = ""
    paid: bool = False
    paid_amount: Optional[Decimal] = None
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None


class UserInterfaceHint(BaseModel):
    """Derived presentation hint; recomputed every tick, never stored."""

    model_config = ConfigDict(frozen=True)

    title: str
    message: str
    next_action: NextAction
    show_progress: bool = False
    cancel_allowed: bool = False


class PaymentCheckout(BaseModel):
    """Checkout descriptor returned when an on-ramp order is created."""

    model_config = ConfigDict(frozen=True)

    checkout_url: Optional[str] = None
    payment_reference: Optional[str] = None


class PaymentSnapshot(BaseModel):
    """Result of one reconciliation, applied as a single unit."""

    model_config = ConfigDict(frozen=True)

    order: Order
    provider_status: Optional[PaymentProviderStatus] = None
    hint: UserInterfaceHint
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def status(self) -> OrderStatus:
        return self.order.status

    @property
    def is_terminal(self) -> bool:
        return self.order.is_terminal
