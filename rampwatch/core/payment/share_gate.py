"""Receipt-sharing prompt that holds the redirect countdown while it is pending or open."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, List, Optional

from ...config import settings
from .models import OrderStatus
from .redirect import RedirectCoordinator


class ShareCloseReason(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    SHARED = "shared"


class ReceiptShareGate:
    """Opens the share prompt once, a fixed delay after the first completion."""

    def __init__(
        self,
        redirect: RedirectCoordinator,
        *,
        delay_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.redirect = redirect
        self.delay_seconds = delay_seconds if delay_seconds is not None else settings.share_prompt_delay_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.close_reason: Optional[ShareCloseReason] = None

        self._open = False
        self._triggered = False
        self._disposed = False
        self._pending_task: asyncio.Task | None = None
        self._listeners: List[Callable[[bool], Any]] = []

    def on_change(self, listener: Callable[[bool], Any]) -> None:
        """Listener receives True when the prompt opens, False when it closes."""
        self._listeners.append(listener)

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def is_pending(self) -> bool:
        return self._pending_task is not None and not self._pending_task.done()

    @property
    def has_triggered(self) -> bool:
        return self._triggered

    def observe(self, status: OrderStatus) -> None:
        if status is not OrderStatus.COMPLETED or self._disposed:
            return
        if self._triggered:
            self.redirect.mark_completed()
            return
        self._triggered = True
        # Suppress before the redirect learns about completion so the
        # countdown never starts from the initial value
        self.redirect.suppress()
        self.redirect.mark_completed()
        self.logger.info("Order completed; share prompt opens in %ss", self.delay_seconds)
        self._pending_task = asyncio.get_running_loop().create_task(self._open_after_delay())

    def open(self) -> None:
        if self._open or self._disposed:
            return
        self._open = True
        self.redirect.suppress()
        self._emit(True)

    def close(self, reason: ShareCloseReason = ShareCloseReason.COMPLETED) -> bool:
        """Close (or cancel the pending) prompt and restart the countdown."""
        if not (self._open or self.is_pending):
            return False
        self._cancel_pending()
        was_open = self._open
        self._open = False
        self.close_reason = reason
        self.logger.info("Share prompt closed: %s", reason.value)
        self.redirect.release()
        if was_open:
            self._emit(False)
        return True

    def dispose(self) -> None:
        self._disposed = True
        self._cancel_pending()

    async def _open_after_delay(self) -> None:
        try:
            await asyncio.sleep(self.delay_seconds)
        except asyncio.CancelledError:
            return
        self._pending_task = None
        self.open()

    def _cancel_pending(self) -> None:
        task = self._pending_task
        self._pending_task = None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _emit(self, is_open: bool) -> None:
        for listener in list(self._listeners):
            try:
                listener(is_open)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("Share gate listener failed: %s", exc, exc_info=True)
