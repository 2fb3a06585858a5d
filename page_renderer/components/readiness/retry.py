"""
Bounded retry loop with constant or capped-exponential backoff.

Used by the text-poll readiness strategy. The loop is explicit so that an
early success or a job completion stops it deterministically.
"""
import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from page_renderer.core.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RetryableError(Exception):
    """Raised by an attempt to request another attempt after backoff."""


class RetriesExhausted(Exception):
    """Every attempt failed. `last_error` holds the final attempt's failure."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]):
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class CancellationToken:
    """Cooperative cancellation flag shared between a job and its retry loop."""

    def __init__(self):
        self._cancelled = asyncio.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    async def sleep(self, seconds: float) -> bool:
        """Sleeps for `seconds` or until cancelled. Returns True if cancelled."""
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True


class BoundedRetry:
    """
    Runs an attempt up to `attempts` times.

    The delay before attempt n+1 is `min(min_timeout * factor ** n, max_timeout)`
    seconds; with `factor=1` it is a fixed interval of `min_timeout`.
    """

    def __init__(
        self,
        attempts: int,
        min_timeout: float,
        max_timeout: float,
        factor: float = 1.0,
        token: Optional[CancellationToken] = None,
    ):
        self.attempts = max(1, attempts)
        self.min_timeout = min_timeout
        self.max_timeout = max(min_timeout, max_timeout)
        self.factor = factor
        self.token = token or CancellationToken()
        self.attempts_made = 0

    def backoff(self, attempt: int) -> float:
        return min(self.min_timeout * (self.factor ** attempt), self.max_timeout)

    async def run(self, attempt: Callable[[int], Awaitable[T]]) -> T:
        """
        Calls `attempt(n)` until it returns without raising `RetryableError`.

        Raises:
            RetriesExhausted: If every attempt failed.
            asyncio.CancelledError: If the token was cancelled.
        """
        last_error: Optional[BaseException] = None
        for n in range(self.attempts):
            if self.token.cancelled:
                raise asyncio.CancelledError()
            self.attempts_made = n + 1
            try:
                return await attempt(n)
            except RetryableError as e:
                last_error = e
                logger.debug(f"Attempt {n + 1}/{self.attempts} failed: {e}")
            if n + 1 < self.attempts and await self.token.sleep(self.backoff(n)):
                raise asyncio.CancelledError()
        raise RetriesExhausted(self.attempts_made, last_error)
