"""
Receipt sharing.

Strategies are tried in order; the first one whose capability check passes
is used, and a failure falls through to the next. The caller always gets a
ShareResult back.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from .formatting import explorer_url, format_amount, short_hash
from .models import Order


class ShareMethod(str, Enum):
    PLATFORM = "platform"
    MANUAL_COPY = "manual_copy"


@dataclass
class ShareResult:
    success: bool
    method: Optional[ShareMethod] = None
    message: str = ""
    errors: List[str] = field(default_factory=list)


class ShareStrategy(ABC):
    method: ShareMethod

    @abstractmethod
    def available(self) -> bool:
        """Capability check."""

    @abstractmethod
    async def share(self, text: str) -> None:
        pass


class PlatformShare(ShareStrategy):
    """Hands the receipt to a native share sheet when the platform supports it."""

    method = ShareMethod.PLATFORM

    def __init__(self, share: Callable[[str], Awaitable[None]], can_share: Callable[[], bool]):
        self._share = share
        self._can_share = can_share

    def available(self) -> bool:
        return bool(self._can_share())

    async def share(self, text: str) -> None:
        await self._share(text)


class ManualCopy(ShareStrategy):
    """Copies the receipt text so the user can paste it anywhere."""

    method = ShareMethod.MANUAL_COPY

    def __init__(self, copy: Callable[[str], None]):
        self._copy = copy

    def available(self) -> bool:
        return True

    async def share(self, text: str) -> None:
        self._copy(text)


def build_receipt_text(order: Order) -> str:
    lines = [
        "Just swapped on Aboki!",
        f"Sent: {format_amount(order.source_amount, order.source_currency)}",
        f"Received: {format_amount(order.target_amount, order.target_currency)}",
        f"Status: {order.status.value}",
    ]
    if order.transaction_hash:
        lines.append(f"Tx: {short_hash(order.transaction_hash)} {explorer_url(order.transaction_hash)}")
    return "\n".join(lines)


async def share_receipt(
    order: Order,
    strategies: Sequence[ShareStrategy],
    logger: Optional[logging.Logger] = None,
) -> ShareResult:
    log = logger or logging.getLogger(__name__)
    text = build_receipt_text(order)
    errors: List[str] = []

    for strategy in strategies:
        if not strategy.available():
            continue
        try:
            await strategy.share(text)
        except Exception as exc:  # noqa: BLE001
            log.warning("Receipt share via %s failed: %s", strategy.method.value, exc)
            errors.append(f"{strategy.method.value}: {exc}")
            continue
        message = "Shared!" if strategy.method is ShareMethod.PLATFORM else "Receipt copied. Paste it to share."
        return ShareResult(success=True, method=strategy.method, message=message, errors=errors)

    return ShareResult(success=False, message="No share method succeeded", errors=errors)
