import asyncio
import logging
import math
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    CANCELLED = "cancelled"
    FIRED = "fired"


class AutoSubmitTimer:
    """
    Single-shot countdown. ``on_tick`` receives the remaining whole seconds,
    ``on_fired`` runs once on natural expiry, ``on_cancelled`` when a running
    countdown is stopped by ``cancel()``. Must be used from the event loop.
    """

    def __init__(
        self,
        on_tick: Optional[Callable[[int], None]] = None,
        on_fired: Optional[Callable[[], None]] = None,
        on_cancelled: Optional[Callable[[], None]] = None,
    ):
        self.on_tick = on_tick
        self.on_fired = on_fired
        self.on_cancelled = on_cancelled
        self.state = TimerState.IDLE
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self.state is TimerState.RUNNING

    def arm(self, duration: float, interval: float = 1.0):
        if interval <= 0:
            raise ValueError("interval must be positive")
        if self._task is not None:
            # re-arm: the previous countdown must be gone before the new one starts
            self._task.cancel()
            self._task = None
        self.state = TimerState.RUNNING
        self._task = asyncio.get_running_loop().create_task(self._countdown(duration, interval))
        logger.debug("Auto-submit armed for %.1fs", duration)

    async def wait(self) -> TimerState:
        """Return once the countdown has fired or been cancelled, following re-arms."""
        while self._task is not None:
            await asyncio.wait({self._task})
        return self.state

    def cancel(self):
        if self.state is not TimerState.RUNNING:
            return
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.state = TimerState.CANCELLED
        logger.debug("Auto-submit cancelled")
        if self.on_cancelled:
            self.on_cancelled()

    async def _countdown(self, duration: float, interval: float):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            if self.on_tick:
                self.on_tick(math.ceil(remaining))
            await asyncio.sleep(min(interval, remaining))

        self._task = None
        self.state = TimerState.FIRED
        logger.debug("Auto-submit fired")
        if self.on_fired:
            self.on_fired()
