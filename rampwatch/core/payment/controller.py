"""
Payment page controller.

Owns one page's worth of collaborators: resolves the credential, runs the
polling session, and feeds completed orders into the share gate and the
redirect countdown. All state a front end renders lives in ``PageState``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from ...auth.models import AuthError, Credential
from ...logging_config import bind_payment_context, clear_payment_context
from ..recovery.errors import (
    OrderNotFoundError,
    RampError,
    RecoveryAction,
    StatusCheckError,
)
from .context import RampContext
from .models import PaymentSnapshot
from .polling import PollingSession, Reauthenticator, SessionState
from .receipt import ShareResult, ShareStrategy, share_receipt
from .redirect import Navigate, RedirectCoordinator
from .share_gate import ReceiptShareGate, ShareCloseReason


class PageStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    NOT_FOUND = "not_found"
    AUTH_REQUIRED = "auth_required"


@dataclass
class PageState:
    status: PageStatus = PageStatus.LOADING
    snapshot: Optional[PaymentSnapshot] = None
    error_message: Optional[str] = None
    error_kind: Optional[str] = None
    recovery_actions: List[RecoveryAction] = field(default_factory=list)
    share_prompt_open: bool = False
    countdown: int = 0
    last_checked_at: Optional[datetime] = None

    @property
    def has_error(self) -> bool:
        return self.error_message is not None


class PaymentPageController:
    def __init__(
        self,
        context: RampContext,
        navigate: Navigate,
        *,
        on_change: Optional[Callable[[PageState], Any]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.context = context
        self.logger = logger or context.logger.getChild("page")
        cfg = context.settings

        self.redirect = RedirectCoordinator(
            navigate,
            destination=cfg.redirect_destination,
            initial_seconds=cfg.redirect_initial_seconds,
            base_seconds=cfg.redirect_base_seconds,
            tick_seconds=cfg.countdown_tick_seconds,
            logger=self.logger.getChild("redirect"),
        )
        self.share_gate = ReceiptShareGate(
            self.redirect,
            delay_seconds=cfg.share_prompt_delay_seconds,
            logger=self.logger.getChild("share"),
        )
        self.redirect.on_tick(self._handle_countdown)
        self.share_gate.on_change(self._handle_share_prompt)

        self.session: Optional[PollingSession] = None
        self.state = PageState(countdown=self.redirect.remaining)
        self._on_change = on_change
        self._navigate = navigate
        self._order_id: Optional[str] = None
        self._payment_reference: Optional[str] = None
        self._wallet_address: Optional[str] = None
        self._closed = False

    # ---------------------------
    # Page actions
    # ---------------------------
    async def open(
        self,
        *,
        order_id: Optional[str] = None,
        payment_reference: Optional[str] = None,
        wallet_address: Optional[str] = None,
    ) -> PageState:
        self._order_id = order_id or None
        self._payment_reference = payment_reference or None
        self._wallet_address = wallet_address or None
        bind_payment_context(order_id=order_id or "", payment_reference=payment_reference or "")

        if not self._order_id and not self._payment_reference:
            self._handle_error(OrderNotFoundError("No order id or payment reference was provided"))
            return self.state

        await self._start_session()
        return self.state

    async def check_again(self) -> PageState:
        """Manual "check again"; restarts polling after a timeout or auth failure."""
        if self._closed:
            return self.state
        session = self.session
        if session is not None and session.state is not SessionState.STOPPED:
            try:
                await session.refresh()
            except RampError as exc:
                self._handle_error(exc)
            return self.state
        if session is not None and session.stop_reason == "not_found":
            return self.state
        if self._order_id or self._payment_reference:
            if session is not None:
                await session.teardown()
            await self._start_session()
        return self.state

    def close_share_prompt(self, reason: ShareCloseReason = ShareCloseReason.COMPLETED) -> None:
        self.share_gate.close(reason)
        self.state.countdown = self.redirect.remaining
        self._notify()

    def skip_sharing(self) -> None:
        self.redirect.skip()
        self.share_gate.close(ShareCloseReason.SKIPPED)
        self._notify()

    def go_to_dashboard(self) -> None:
        self._navigate(self.context.settings.dashboard_destination)

    async def share(self, strategies: Sequence[ShareStrategy]) -> ShareResult:
        snapshot = self.state.snapshot
        if snapshot is None:
            return ShareResult(success=False, message="No order to share yet")
        result = await share_receipt(snapshot.order, strategies, logger=self.logger)
        if result.success:
            self.close_share_prompt(ShareCloseReason.SHARED)
        return result

    async def close(self) -> None:
        """Teardown; must run on every exit path."""
        self._closed = True
        if self.session is not None:
            await self.session.teardown()
        self.share_gate.dispose()
        self.redirect.teardown()
        clear_payment_context()

    # ---------------------------
    # Internals
    # ---------------------------
    async def _start_session(self) -> None:
        ctx = self.context
        self.state.status = PageStatus.LOADING if self.state.snapshot is None else PageStatus.READY
        self._clear_error()
        try:
            credential = await ctx.credentials.get_or_create(self._wallet_address)
        except AuthError as exc:
            self._handle_error(exc)
            return

        reauthenticate: Optional[Reauthenticator] = None
        if ctx.settings.reauth_on_unauthorized:
            wallet = self._wallet_address or credential.wallet_address

            async def _reauthenticate() -> Credential:
                return await ctx.credentials.reauthenticate(wallet)

            reauthenticate = _reauthenticate

        session = PollingSession(
            ctx.client,
            credential,
            payment_reference=self._payment_reference,
            order_id=self._order_id,
            interval_seconds=ctx.settings.poll_interval_seconds,
            max_duration_seconds=ctx.settings.max_poll_duration_seconds,
            reauthenticate=reauthenticate,
            logger=self.logger.getChild("polling"),
        )
        session.on_update(self._handle_snapshot)
        session.on_error(self._handle_error)
        session.on_stop(self._handle_stop)
        self.session = session

        try:
            await session.start()
        except RampError as exc:
            self._handle_error(exc)

    def _handle_snapshot(self, snapshot: PaymentSnapshot) -> None:
        self.state.snapshot = snapshot
        self.state.last_checked_at = snapshot.checked_at
        self.state.status = PageStatus.READY
        self._clear_error()
        self.share_gate.observe(snapshot.status)
        self.state.countdown = self.redirect.remaining
        self._notify()

    def _handle_error(self, error: RampError) -> None:
        if isinstance(error, StatusCheckError) and error.is_transient:
            return
        if isinstance(error, AuthError):
            self.state.status = PageStatus.AUTH_REQUIRED
            self.state.error_kind = "auth"
        elif isinstance(error, OrderNotFoundError):
            self.state.status = PageStatus.NOT_FOUND
            self.state.error_kind = "not_found"
        else:
            # Keep showing the last good snapshot next to the error
            self.state.status = PageStatus.ERROR
            self.state.error_kind = error.kind.value if isinstance(error, StatusCheckError) else "error"
        self.state.error_message = error.message
        self.state.recovery_actions = list(error.context.recovery_actions) or [RecoveryAction.RETRY]
        self.logger.warning("Payment page error (%s): %s", self.state.error_kind, error.message)
        self._notify()

    def _handle_stop(self, reason: str) -> None:
        if reason != "timeout":
            return
        self.state.status = PageStatus.ERROR
        self.state.error_kind = "timeout"
        self.state.error_message = "We stopped checking automatically. Check again or contact support."
        self.state.recovery_actions = [RecoveryAction.RETRY, RecoveryAction.CONTACT_SUPPORT]
        self._notify()

    def _handle_countdown(self, remaining: int) -> None:
        self.state.countdown = remaining
        self._notify()

    def _handle_share_prompt(self, is_open: bool) -> None:
        self.state.share_prompt_open = is_open
        self.state.countdown = self.redirect.remaining
        self._notify()

    def _clear_error(self) -> None:
        self.state.error_message = None
        self.state.error_kind = None
        self.state.recovery_actions = []

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.state)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Page state listener failed: %s", exc, exc_info=True)
