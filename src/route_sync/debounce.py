"""Trailing debounce on the asyncio event loop."""

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Coalesce bursts of triggers into one callback after a quiet period.

    Each trigger re-arms the timer, so the callback runs once, `delay`
    seconds after the last trigger. Timers are scheduled with call_later on
    the running loop, so the callback always runs on the loop thread. A delay
    of zero or less runs the callback synchronously on every trigger.
    """

    def __init__(self, delay: float, callback: Callable[[], None], loop: asyncio.AbstractEventLoop | None = None):
        self.delay = delay
        self._callback = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        if self.delay <= 0:
            self._callback()
            return
        loop = self._loop or asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def flush(self) -> bool:
        """Run a pending callback now. Returns False if nothing was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        logger.debug("Debounce window settled after %.3fs", self.delay)
        self._callback()
