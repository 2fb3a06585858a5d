"""Deadline timer for the load phase of a render job."""
import asyncio
from typing import Callable, Optional

from page_renderer.core.logger import get_logger

logger = get_logger(__name__)


class TimeoutGuard:
    """
    One-shot deadline timer.

    `arm()` schedules `on_expire` after `seconds`; `disarm()` cancels it and is
    idempotent. Once disarmed or expired the guard cannot be re-armed.
    """

    def __init__(self, seconds: float, on_expire: Callable[[], None]):
        self.seconds = seconds
        self._on_expire = on_expire
        self._handle: Optional[asyncio.TimerHandle] = None
        self._spent = False
        self._fired = False

    @property
    def armed(self) -> bool:
        return self._handle is not None

    @property
    def expired(self) -> bool:
        return self._fired

    def arm(self) -> None:
        if self._spent:
            raise RuntimeError("TimeoutGuard cannot be re-armed")
        self._spent = True
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.seconds, self._expire)
        logger.debug(f"Timeout guard armed for {self.seconds}s.")

    def disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug("Timeout guard disarmed.")

    def _expire(self) -> None:
        self._handle = None
        self._fired = True
        logger.warning(f"Timeout guard expired after {self.seconds}s.")
        self._on_expire()
