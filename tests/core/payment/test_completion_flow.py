"""
Tests for the receipt share gate and the redirect countdown.
"""

import asyncio
import logging

import pytest

from rampwatch.core.payment import (
    OrderStatus,
    ReceiptShareGate,
    RedirectCoordinator,
    ShareCloseReason,
)


# =============================================================================
# Fixtures
# =============================================================================

def make_redirect(navigated, *, tick_seconds=60.0, base_seconds=10, initial_seconds=15):
    return RedirectCoordinator(
        navigated.append,
        destination="/activity",
        initial_seconds=initial_seconds,
        base_seconds=base_seconds,
        tick_seconds=tick_seconds,
    )


# =============================================================================
# RedirectCoordinator
# =============================================================================

class TestRedirectCoordinator:

    def test_tick_before_completion_is_noop(self):
        navigated = []
        redirect = make_redirect(navigated)

        assert redirect.tick() is False
        assert redirect.remaining == 15

    @pytest.mark.asyncio
    async def test_ticks_down_and_navigates_once_at_zero(self):
        navigated = []
        redirect = make_redirect(navigated)
        ticks = []
        redirect.on_tick(ticks.append)
        redirect.mark_completed()

        assert redirect.tick() is True
        assert redirect.remaining == 14

        redirect.remaining = 1
        assert redirect.tick() is True

        assert ticks == [14, 0]
        assert navigated == ["/activity"]
        assert redirect.tick() is False
        assert navigated == ["/activity"]
        redirect.teardown()

    @pytest.mark.asyncio
    async def test_scheduled_countdown_navigates(self):
        navigated = []
        redirect = make_redirect(navigated, tick_seconds=0.01, initial_seconds=3)

        redirect.mark_completed()
        await asyncio.sleep(0.15)

        assert redirect.remaining == 0
        assert navigated == ["/activity"]
        assert not redirect.is_running

    @pytest.mark.asyncio
    async def test_skip_navigates_immediately_and_disables_countdown(self):
        navigated = []
        redirect = make_redirect(navigated)
        redirect.mark_completed()

        redirect.skip()

        assert navigated == ["/activity"]
        assert redirect.skipped
        assert redirect.tick() is False
        redirect.skip()
        assert navigated == ["/activity"]

    @pytest.mark.asyncio
    async def test_suppressed_countdown_restarts_from_base(self):
        navigated = []
        redirect = make_redirect(navigated)
        redirect.mark_completed()
        assert redirect.is_running

        redirect.suppress()

        assert not redirect.is_running
        assert redirect.remaining == 10
        assert redirect.tick() is False

        redirect.release()
        assert redirect.is_running
        assert redirect.tick() is True
        assert redirect.remaining == 9
        redirect.teardown()

    @pytest.mark.asyncio
    async def test_failing_async_navigation_is_logged(self, caplog):
        calls = []

        async def navigate(destination):
            calls.append(destination)
            raise RuntimeError("router unavailable")

        redirect = RedirectCoordinator(navigate, destination="/activity", base_seconds=10, tick_seconds=60)
        redirect.mark_completed()

        with caplog.at_level(logging.WARNING, logger="rampwatch.core.payment.redirect"):
            redirect.skip()
            await asyncio.sleep(0.01)

        assert calls == ["/activity"]
        assert redirect.navigated
        assert "Navigation to /activity failed" in caplog.text
        assert redirect.tick() is False
        redirect.teardown()

    @pytest.mark.asyncio
    async def test_teardown_cancels_pending_async_navigation(self):
        started = asyncio.Event()
        finished = []

        async def navigate(destination):
            started.set()
            await asyncio.sleep(60)
            finished.append(destination)

        redirect = RedirectCoordinator(navigate, destination="/activity", base_seconds=10, tick_seconds=60)
        redirect.mark_completed()
        redirect.skip()
        await started.wait()

        redirect.teardown()
        await asyncio.sleep(0.01)

        assert finished == []

    @pytest.mark.asyncio
    async def test_teardown_prevents_navigation(self):
        navigated = []
        redirect = make_redirect(navigated, tick_seconds=0.01, initial_seconds=2)
        redirect.mark_completed()

        redirect.teardown()
        await asyncio.sleep(0.05)

        assert navigated == []
        assert redirect.tick() is False


# =============================================================================
# ReceiptShareGate
# =============================================================================

class TestReceiptShareGate:

    @pytest.mark.asyncio
    async def test_opens_after_delay_and_holds_countdown(self):
        navigated = []
        redirect = make_redirect(navigated)
        gate = ReceiptShareGate(redirect, delay_seconds=0.02)
        changes = []
        gate.on_change(changes.append)

        gate.observe(OrderStatus.COMPLETED)

        assert gate.is_pending
        assert not gate.is_open
        assert redirect.suppressed
        assert not redirect.is_running

        await asyncio.sleep(0.06)

        assert gate.is_open
        assert changes == [True]
        assert redirect.tick() is False
        assert navigated == []
        gate.dispose()
        redirect.teardown()

    @pytest.mark.asyncio
    async def test_close_restarts_countdown_from_base(self):
        navigated = []
        redirect = make_redirect(navigated)
        gate = ReceiptShareGate(redirect, delay_seconds=0.01)
        changes = []
        gate.on_change(changes.append)

        gate.observe(OrderStatus.COMPLETED)
        await asyncio.sleep(0.05)

        assert gate.close(ShareCloseReason.COMPLETED) is True

        assert changes == [True, False]
        assert gate.close_reason is ShareCloseReason.COMPLETED
        assert redirect.remaining == 10
        assert redirect.is_running
        assert redirect.tick() is True
        assert redirect.remaining == 9
        gate.dispose()
        redirect.teardown()

    @pytest.mark.asyncio
    async def test_closing_while_pending_never_opens(self):
        navigated = []
        redirect = make_redirect(navigated)
        gate = ReceiptShareGate(redirect, delay_seconds=0.02)
        changes = []
        gate.on_change(changes.append)

        gate.observe(OrderStatus.COMPLETED)
        assert gate.close(ShareCloseReason.SKIPPED) is True
        await asyncio.sleep(0.05)

        assert not gate.is_open
        assert changes == []
        assert redirect.is_running
        redirect.teardown()

    @pytest.mark.asyncio
    async def test_triggers_only_once(self):
        navigated = []
        redirect = make_redirect(navigated)
        gate = ReceiptShareGate(redirect, delay_seconds=0.01)
        changes = []
        gate.on_change(changes.append)

        gate.observe(OrderStatus.COMPLETED)
        await asyncio.sleep(0.03)
        gate.close()
        gate.observe(OrderStatus.COMPLETED)
        await asyncio.sleep(0.03)

        assert changes == [True, False]
        assert not gate.is_open
        assert gate.close() is False
        redirect.teardown()

    @pytest.mark.asyncio
    async def test_ignores_non_completed_statuses(self):
        redirect = make_redirect([])
        gate = ReceiptShareGate(redirect, delay_seconds=0.01)

        for status in (OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.FAILED):
            gate.observe(status)

        assert not gate.has_triggered
        assert not gate.is_pending
        assert redirect.tick() is False

    @pytest.mark.asyncio
    async def test_full_countdown_after_prompt_closes(self):
        navigated = []
        redirect = make_redirect(navigated, tick_seconds=0.01, base_seconds=2)
        gate = ReceiptShareGate(redirect, delay_seconds=0.01)

        gate.observe(OrderStatus.COMPLETED)
        await asyncio.sleep(0.04)
        assert navigated == []

        gate.close(ShareCloseReason.SHARED)
        await asyncio.sleep(0.1)

        assert navigated == ["/activity"]
