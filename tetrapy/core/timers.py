"""
One-shot timers on the event loop.
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Timer:
    """
    Restartable one-shot timer.

    Wraps loop.call_later so a timer can be armed, re-armed and cancelled
    by name without tracking handles at every call site. Any object with
    call_later() works as loop, which lets tests drive time by hand.

    Example:

    .. code-block:: python

        timer = Timer(loop, 2.0, on_timeout, name="command")
        timer.start()      # fires in 2 s
        timer.start(0.5)   # re-armed, fires in 0.5 s
        timer.cancel()
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        timeout: float,
        callback: Callable[[], None],
        name: str = "timer"
    ) -> None:
        """
        Initialize timer (not armed).

        Args:
            loop: Event loop providing call_later()
            timeout: Default delay in seconds
            callback: Called without arguments on expiry
            name: Used in log messages
        """
        self.loop = loop
        self.timeout = timeout
        self.name = name
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    def start(self, timeout: Optional[float] = None) -> None:
        """Arm the timer, cancelling a previous run."""
        self.cancel()
        delay = self.timeout if timeout is None else timeout
        self._handle = self.loop.call_later(delay, self._expire)

    def cancel(self) -> None:
        """Disarm the timer. Does nothing if not armed."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def is_active(self) -> bool:
        """Check if the timer is armed."""
        return self._handle is not None

    def _expire(self) -> None:
        self._handle = None
        logger.debug(f"Timer '{self.name}' expired")
        self._callback()
