"""Display formatting for amounts and transaction links."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from ...config import settings

SIX_DECIMAL_ASSETS = {"USDC", "USDT", "ETH", "CNGN"}


def format_amount(amount: Union[Decimal, int, float, str], currency: str) -> str:
    value = Decimal(str(amount))
    code = (currency or "").upper()
    if code == "NGN":
        quantized = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        sign = "-" if quantized < 0 else ""
        return f"{sign}₦{abs(quantized):,.2f}"
    if code in SIX_DECIMAL_ASSETS:
        return f"{value:.6f} {code}"
    return f"{value.normalize():f}"


def explorer_url(transaction_hash: Optional[str], base_url: Optional[str] = None) -> Optional[str]:
    if not transaction_hash:
        return None
    base = (base_url or settings.explorer_base_url).rstrip("/")
    return f"{base}/tx/{transaction_hash}"


def short_hash(value: Optional[str], head: int = 6, tail: int = 4) -> str:
    if not value:
        return ""
    if len(value) <= head + tail + 3:
        return value
    return f"{value[:head]}...{value[-tail:]}"
