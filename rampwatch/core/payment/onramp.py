"""On-ramp initiation: create the order and remember it locally."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ...storage import CURRENT_ORDER_ID_KEY, ORDER_STATUS_KEY
from .context import RampContext
from .models import Order, PaymentCheckout


@dataclass
class OnrampResult:
    order: Order
    checkout: PaymentCheckout


async def start_onramp(
    context: RampContext,
    amount: Decimal,
    target_currency: str,
    recipient_address: str,
    *,
    wallet_address: Optional[str] = None,
) -> OnrampResult:
    """Create an on-ramp order and persist ``currentOrderId`` / ``orderStatus``."""

    if amount <= 0:
        raise ValueError("amount must be positive")

    credential = await context.credentials.get_or_create(wallet_address or recipient_address)
    order, checkout = await context.client.create_onramp_order(
        amount,
        target_currency.upper(),
        recipient_address,
        credential,
    )
    context.storage.update({
        CURRENT_ORDER_ID_KEY: order.id,
        ORDER_STATUS_KEY: order.status.value,
    })
    context.logger.info(
        "Created on-ramp order %s (%s -> %s)",
        order.id,
        order.source_currency,
        order.target_currency,
    )
    return OnrampResult(order=order, checkout=checkout)
