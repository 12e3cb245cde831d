"""Cancellable redirect countdown shown after an order completes."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, List, Optional

from ...config import settings

Navigate = Callable[[str], Any]


class RedirectCoordinator:
    """
    Counts down once per tick and navigates away at zero, exactly once.

    The countdown only runs while the order is completed, nothing suppresses
    it, and the user has not skipped. Skipping navigates immediately and
    disables the countdown for good.
    """

    def __init__(
        self,
        navigate: Navigate,
        *,
        destination: Optional[str] = None,
        initial_seconds: Optional[int] = None,
        base_seconds: Optional[int] = None,
        tick_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.destination = destination or settings.redirect_destination
        self.base_seconds = base_seconds if base_seconds is not None else settings.redirect_base_seconds
        self.tick_seconds = tick_seconds or settings.countdown_tick_seconds
        self.remaining: int = initial_seconds if initial_seconds is not None else settings.redirect_initial_seconds
        self.logger = logger or logging.getLogger(__name__)

        self._navigate_callback = navigate
        self._completed = False
        self._suppressed = False
        self._skipped = False
        self._navigated = False
        self._disposed = False
        self._task: asyncio.Task | None = None
        self._navigation_task: asyncio.Future | None = None
        self._tick_listeners: List[Callable[[int], Any]] = []

    def on_tick(self, listener: Callable[[int], Any]) -> None:
        self._tick_listeners.append(listener)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def navigated(self) -> bool:
        return self._navigated

    @property
    def skipped(self) -> bool:
        return self._skipped

    @property
    def suppressed(self) -> bool:
        return self._suppressed

    def mark_completed(self) -> None:
        if self._completed:
            return
        self._completed = True
        self._sync()

    def suppress(self) -> None:
        """Pause the countdown; a paused countdown restarts from the base value."""
        was_running = self.is_running
        self._suppressed = True
        self._cancel_task()
        if was_running:
            self.remaining = self.base_seconds

    def release(self) -> None:
        """Lift suppression and restart from the base value."""
        self._suppressed = False
        self.remaining = self.base_seconds
        self._sync()

    def reset(self) -> None:
        self.remaining = self.base_seconds

    def skip(self) -> None:
        if self._navigated:
            return
        self._skipped = True
        self._cancel_task()
        self.logger.info("Redirect skipped; navigating to %s", self.destination)
        self._navigate()

    def tick(self) -> bool:
        """Advance the countdown by one step. Returns False when it was a no-op."""
        if not self._can_count():
            return False
        self.remaining = max(self.remaining - 1, 0)
        for listener in list(self._tick_listeners):
            try:
                listener(self.remaining)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("Countdown listener failed: %s", exc, exc_info=True)
        if self.remaining == 0:
            self._navigate()
        return True

    def teardown(self) -> None:
        self._disposed = True
        self._cancel_task()
        nav = self._navigation_task
        self._navigation_task = None
        if nav is not None and not nav.done():
            nav.cancel()

    def _can_count(self) -> bool:
        return (
            self._completed
            and not self._suppressed
            and not self._skipped
            and not self._navigated
            and not self._disposed
        )

    def _sync(self) -> None:
        if self._can_count():
            if not self.is_running:
                self._task = asyncio.get_running_loop().create_task(self._run_countdown())
        else:
            self._cancel_task()

    async def _run_countdown(self) -> None:
        try:
            if self.remaining <= 0:
                self._navigate()
                return
            while self._can_count():
                await asyncio.sleep(self.tick_seconds)
                if not self.tick():
                    return
        except asyncio.CancelledError:
            return

    def _navigate(self) -> None:
        if self._navigated or self._disposed:
            return
        self._navigated = True
        self._cancel_task()
        self.logger.info("Navigating to %s", self.destination)
        result = self._navigate_callback(self.destination)
        if inspect.isawaitable(result):
            self._navigation_task = asyncio.ensure_future(result)
            self._navigation_task.add_done_callback(self._navigation_done)

    def _navigation_done(self, task: asyncio.Future) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.warning("Navigation to %s failed: %s", self.destination, exc, exc_info=exc)

    def _cancel_task(self) -> None:
        task = self._task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
        if task is not asyncio.current_task():
            self._task = None
