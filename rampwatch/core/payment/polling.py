from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ...auth.models import AuthError, Credential
from ...config import settings
from ..recovery.errors import (
    ErrorCategory,
    OrderNotFoundError,
    RampError,
    StatusCheckError,
    UnauthorizedError,
)
from .client import OrderStatusClient
from .models import Order, PaymentProviderStatus, PaymentSnapshot
from .status_mapper import derive_hint


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    TERMINAL = "terminal"
    STOPPED = "stopped"


UpdateListener = Callable[[PaymentSnapshot], Any]
ErrorListener = Callable[[RampError], Any]
StopListener = Callable[[str], Any]
Reauthenticator = Callable[[], Awaitable[Credential]]


class PollingSession:
    """Repeating reconciliation for one order until it reaches a terminal status.

    Identified by the payment reference when one is known, otherwise by the
    order id. Only one tick is ever in flight; every response passes through
    ``_apply`` which replaces the snapshot in a single assignment, and nothing
    is applied once the session has been stopped.
    """

    def __init__(
        self,
        client: OrderStatusClient,
        credential: Credential,
        *,
        payment_reference: Optional[str] = None,
        order_id: Optional[str] = None,
        interval_seconds: Optional[float] = None,
        max_duration_seconds: Optional[float] = None,
        reauthenticate: Optional[Reauthenticator] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not payment_reference and not order_id:
            raise ValueError("PollingSession needs a payment reference or an order id")
        self.payment_reference = payment_reference
        self.order_id = order_id
        self.identifier: str = payment_reference or order_id  # type: ignore[assignment]
        self.interval_seconds = interval_seconds or settings.poll_interval_seconds
        self.max_duration_seconds = max_duration_seconds or settings.max_poll_duration_seconds
        self.logger = logger or logging.getLogger(__name__)

        self._client = client
        self._credential = credential
        self._reauthenticate = reauthenticate
        self._reauthenticated = False

        self._state = SessionState.IDLE
        self._loop_task: asyncio.Task | None = None
        self._tick_in_flight = False
        self._cancelled = False
        self._started_monotonic: Optional[float] = None
        self._started_at: Optional[datetime] = None

        self.snapshot: Optional[PaymentSnapshot] = None
        self.last_checked_at: Optional[datetime] = None
        self.last_error: Optional[RampError] = None
        self.stop_reason: Optional[str] = None
        self.tick_count = 0
        self.skipped_ticks = 0
        self.transient_failures = 0

        self._update_listeners: List[UpdateListener] = []
        self._error_listeners: List[ErrorListener] = []
        self._stop_listeners: List[StopListener] = []

    # ---------------------------
    # Listeners
    # ---------------------------
    def on_update(self, listener: UpdateListener) -> None:
        self._update_listeners.append(listener)

    def on_error(self, listener: ErrorListener) -> None:
        """Receives errors from scheduled ticks; direct calls raise instead."""
        self._error_listeners.append(listener)

    def on_stop(self, listener: StopListener) -> None:
        self._stop_listeners.append(listener)

    # ---------------------------
    # Lifecycle
    # ---------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SessionState.ACTIVE

    @property
    def is_terminal(self) -> bool:
        return self._state is SessionState.TERMINAL

    @property
    def tick_in_flight(self) -> bool:
        return self._tick_in_flight

    async def start(self) -> Optional[PaymentSnapshot]:
        """Schedule the interval and run the first check immediately.

        A permanent failure of the first check is raised, but the interval
        stays scheduled.
        """
        if self._state is not SessionState.IDLE:
            return self.snapshot
        self._state = SessionState.ACTIVE
        self._started_monotonic = time.monotonic()
        self._started_at = datetime.now(timezone.utc)
        self.logger.info(
            "Polling %s every %ss (max %ss)",
            self.identifier,
            self.interval_seconds,
            self.max_duration_seconds,
        )
        self._loop_task = asyncio.create_task(self._run_loop(), name=f"poll-{self.identifier}")
        return await self._tick()

    async def refresh(self) -> Optional[PaymentSnapshot]:
        """Manual check outside the schedule; a no-op once terminal or stopped."""
        if self._state is not SessionState.ACTIVE:
            self.logger.debug("Refresh ignored for %s in state %s", self.identifier, self._state.value)
            return None
        return await self._tick()

    async def teardown(self) -> None:
        """Cancel the interval unconditionally. Safe to call more than once."""
        self._stop("teardown")
        task = self._loop_task
        self._loop_task = None
        if task and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ---------------------------
    # Scheduling and execution
    # ---------------------------
    async def _run_loop(self) -> None:
        try:
            while self._state is SessionState.ACTIVE:
                await asyncio.sleep(self.interval_seconds)
                if self._state is not SessionState.ACTIVE:
                    break
                if self._expired():
                    self.logger.warning("Polling %s timed out after %ss", self.identifier, self.max_duration_seconds)
                    self._stop("timeout")
                    break
                try:
                    await self._tick()
                except RampError as exc:
                    self._emit(self._error_listeners, exc)
                except Exception as exc:  # noqa: BLE001
                    self.logger.error("Unexpected failure polling %s: %s", self.identifier, exc, exc_info=True)
                    error = StatusCheckError(
                        f"Status check failed unexpectedly: {exc}",
                        category=ErrorCategory.UNKNOWN,
                    )
                    self.last_error = error
                    self._emit(self._error_listeners, error)
        except asyncio.CancelledError:
            return

    async def _tick(self) -> Optional[PaymentSnapshot]:
        if self._state is not SessionState.ACTIVE:
            return None
        if self._tick_in_flight:
            self.skipped_ticks += 1
            self.logger.debug("Tick for %s skipped; previous check still in flight", self.identifier)
            return None

        self._tick_in_flight = True
        try:
            order, provider_status = await self._reconcile_with_reauth()
        except StatusCheckError as exc:
            if self._cancelled:
                return None
            if exc.is_transient:
                self.transient_failures += 1
                self.logger.info("Transient status check failure for %s: %s", self.identifier, exc.message)
                return None
            self.last_error = exc
            raise
        except OrderNotFoundError as exc:
            if self._cancelled:
                return None
            self.last_error = exc
            self._stop("not_found")
            raise
        except AuthError as exc:
            if self._cancelled:
                return None
            self.last_error = exc
            self._stop("unauthorized")
            raise
        finally:
            self._tick_in_flight = False

        if self._cancelled or self._state is not SessionState.ACTIVE:
            self.logger.debug("Discarding response for %s; session no longer active", self.identifier)
            return None
        return self._apply(order, provider_status)

    async def _reconcile_with_reauth(self) -> Tuple[Order, Optional[PaymentProviderStatus]]:
        try:
            return await self._reconcile()
        except UnauthorizedError:
            if self._reauthenticate is None or self._reauthenticated or self._cancelled:
                raise
            self._reauthenticated = True
            self.logger.info("Credential rejected for %s; re-authenticating once", self.identifier)
            self._credential = await self._reauthenticate()
            return await self._reconcile()

    async def _reconcile(self) -> Tuple[Order, Optional[PaymentProviderStatus]]:
        # Payment reference is authoritative; the order path is a fallback only
        if self.payment_reference:
            return await self._client.check_by_payment_reference(self.payment_reference, self._credential)
        order = await self._client.fetch_by_order_id(self.order_id, self._credential)  # type: ignore[arg-type]
        return order, None

    def _apply(self, order: Order, provider_status: Optional[PaymentProviderStatus]) -> PaymentSnapshot:
        hint = derive_hint(order.status, provider_status.raw_status if provider_status else None)
        snapshot = PaymentSnapshot(order=order, provider_status=provider_status, hint=hint)

        self.snapshot = snapshot
        self.last_checked_at = snapshot.checked_at
        self.last_error = None
        self.tick_count += 1

        if order.is_terminal:
            self._state = SessionState.TERMINAL
            self.stop_reason = "terminal"
            self._cancel_loop()
            self.logger.info("Order %s reached terminal status %s", order.id, order.status.value)

        self._emit(self._update_listeners, snapshot)
        if order.is_terminal:
            self._emit(self._stop_listeners, "terminal")
        return snapshot

    def _stop(self, reason: str) -> None:
        self._cancelled = True
        self._cancel_loop()
        if self._state in (SessionState.IDLE, SessionState.ACTIVE):
            self._state = SessionState.STOPPED
            self.stop_reason = reason
            self.logger.info("Stopped polling %s: %s", self.identifier, reason)
            self._emit(self._stop_listeners, reason)

    def _cancel_loop(self) -> None:
        task = self._loop_task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _expired(self) -> bool:
        if self._started_monotonic is None:
            return False
        return time.monotonic() - self._started_monotonic >= self.max_duration_seconds

    def _emit(self, listeners: List[Callable[[Any], Any]], payload: Any) -> None:
        for listener in list(listeners):
            try:
                listener(payload)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("Polling listener failed for %s: %s", self.identifier, exc, exc_info=True)

    # ---------------------------
    # Introspection
    # ---------------------------
    def status(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "state": self._state.value,
            "interval_seconds": self.interval_seconds,
            "started_at": _iso(self._started_at),
            "last_checked_at": _iso(self.last_checked_at),
            "order_status": self.snapshot.status.value if self.snapshot else None,
            "tick_count": self.tick_count,
            "skipped_ticks": self.skipped_ticks,
            "transient_failures": self.transient_failures,
            "tick_in_flight": self._tick_in_flight,
            "last_error": self.last_error.message if self.last_error else None,
            "stop_reason": self.stop_reason,
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.astimezone(timezone.utc).isoformat() if value else None
