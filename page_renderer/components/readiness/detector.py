"""
Readiness strategies.

Each strategy decides when a loaded page may be captured. Exactly one is
active per job, chosen by `select_readiness_strategy` with the precedence
delay > wait-for-text > target element > DOM ready.
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from page_renderer.components.page_host.base import FoundInPageResult, HostEvent, PageHost
from page_renderer.components.page_host.scripts import (
    DOM_READY_CHANNEL,
    DOM_READY_SCRIPT,
    TARGET_SIZE_CHANNEL,
    target_size_script,
)
from page_renderer.components.readiness.retry import (
    BoundedRetry,
    CancellationToken,
    RetriesExhausted,
    RetryableError,
)
from page_renderer.core.config import Timings
from page_renderer.core.exceptions import ReadinessTimeoutError
from page_renderer.core.logger import get_logger
from page_renderer.models.job import ReadinessKind, RenderJob, Size

logger = get_logger(__name__)

# Lower bound on how long one text-poll attempt waits for its search result.
MIN_SEARCH_WAIT_SECONDS = 1.0


@dataclass(frozen=True)
class ReadinessResult:
    """What readiness detection learned about the page; `target_size` is set in target mode."""
    target_size: Optional[Size] = None


class ReadinessStrategy(ABC):
    """Base class for readiness strategies."""

    def __init__(self, timings: Timings, token: Optional[CancellationToken] = None):
        self.timings = timings
        self.token = token or CancellationToken()

    @abstractmethod
    async def wait(self, job: RenderJob, host: PageHost) -> ReadinessResult:
        """Returns once the page is ready to capture."""

    async def _await_script_message(self, job: RenderJob, host: PageHost, channel: str, script: str) -> Any:
        """
        Injects `script` and waits for its first report on `channel`.

        Later reports on the same channel are ignored. The wait is bounded by
        the job's `timeout_seconds`.

        Raises:
            ReadinessTimeoutError: If no report arrives in time.
        """
        loop = asyncio.get_running_loop()
        report: asyncio.Future = loop.create_future()

        def on_message(message_channel: str, payload: Any = None) -> None:
            if message_channel != channel:
                return
            if report.done():
                logger.debug(f"Ignoring duplicate '{channel}' report from {job.url}.")
                return
            report.set_result(payload)

        host.on(HostEvent.SCRIPT_MESSAGE, on_message)
        try:
            await host.execute_script(script)
            return await asyncio.wait_for(report, timeout=job.timeout_seconds)
        except asyncio.TimeoutError:
            raise ReadinessTimeoutError(
                job.url, f"No '{channel}' report within {job.timeout_seconds}s", context=channel
            )
        finally:
            host.remove_listener(HostEvent.SCRIPT_MESSAGE, on_message)


class FixedDelay(ReadinessStrategy):
    """Waits a fixed number of milliseconds after load completion."""

    async def wait(self, job: RenderJob, host: PageHost) -> ReadinessResult:
        delay_ms = job.readiness_mode.delay_ms
        logger.info(f"Delaying render of {job.url} by {delay_ms}ms")
        await asyncio.sleep(delay_ms / 1000)
        return ReadinessResult()


class TextPoll(ReadinessStrategy):
    """
    Searches the page for `job.wait_for_text` until it appears.

    Makes up to `job.timeout_seconds` attempts spaced by the text-poll
    backoff. Raises `ReadinessTimeoutError` when the budget is spent.
    """

    async def wait(self, job: RenderJob, host: PageHost) -> ReadinessResult:
        text = job.readiness_mode.text
        logger.info(f"Delaying render of {job.url}, waiting for text '{text}' to appear")
        loop = asyncio.get_running_loop()
        pending: Optional[asyncio.Future] = None
        search_wait = max(self.timings.text_poll_max_backoff_ms / 1000, MIN_SEARCH_WAIT_SECONDS)

        def found_in_page(result: FoundInPageResult) -> None:
            if pending is None or pending.done():
                return
            if result.matches == 0 or result.final_update:
                pending.set_result(result)

        async def attempt(n: int) -> FoundInPageResult:
            nonlocal pending
            pending = loop.create_future()
            await host.find_in_page(text)
            try:
                result = await asyncio.wait_for(pending, timeout=search_wait)
            except asyncio.TimeoutError:
                raise RetryableError("no search result")
            if result.matches == 0:
                raise RetryableError("not ready to render")
            return result

        retry = BoundedRetry(
            attempts=job.timeout_seconds,
            min_timeout=self.timings.text_poll_min_backoff_ms / 1000,
            max_timeout=self.timings.text_poll_max_backoff_ms / 1000,
            factor=self.timings.text_poll_factor,
            token=self.token,
        )
        host.on(HostEvent.FOUND_IN_PAGE, found_in_page)
        try:
            result = await retry.run(attempt)
        except RetriesExhausted as e:
            raise ReadinessTimeoutError(
                job.url, f"Text '{text}' not found after {e.attempts} attempts", context=e.last_error
            )
        finally:
            host.remove_listener(HostEvent.FOUND_IN_PAGE, found_in_page)
        await host.stop_find_in_page("clearSelection")
        logger.info(f"Found {result.matches} match(es) for '{text}' on attempt {retry.attempts_made}")
        return ReadinessResult()


class TargetElementSize(ReadinessStrategy):
    """
    Measures `job.target` in the page and sizes the viewport to it.

    A missing element reports `{0, 0}`, which is used as the target size.
    """

    async def wait(self, job: RenderJob, host: PageHost) -> ReadinessResult:
        element_id = job.readiness_mode.element_id
        logger.info(f"Waiting for size of element '{element_id}' on {job.url}")
        payload = await self._await_script_message(
            job, host, TARGET_SIZE_CHANNEL, target_size_script(element_id)
        )
        size = Size(**payload) if payload else Size(width=0, height=0)
        if size.as_tuple() == job.browser_size.as_tuple():
            await asyncio.sleep(self.timings.target_settle_ms / 1000)
        else:
            logger.debug(f"Resizing viewport to target size {size.width}x{size.height}")
            await host.set_size(size.width, size.height)
            await asyncio.sleep(self.timings.resize_settle_ms / 1000)
        return ReadinessResult(target_size=size)


class DefaultDomReady(ReadinessStrategy):
    """Waits for the page to report `document.readyState === "complete"`."""

    async def wait(self, job: RenderJob, host: PageHost) -> ReadinessResult:
        await self._await_script_message(job, host, DOM_READY_CHANNEL, DOM_READY_SCRIPT)
        return ReadinessResult()


_STRATEGIES = {
    ReadinessKind.DELAY: FixedDelay,
    ReadinessKind.WAIT_FOR_TEXT: TextPoll,
    ReadinessKind.TARGET: TargetElementSize,
    ReadinessKind.DOM_READY: DefaultDomReady,
}


def select_readiness_strategy(
    job: RenderJob, timings: Timings, token: Optional[CancellationToken] = None
) -> ReadinessStrategy:
    return _STRATEGIES[job.readiness_mode.kind](timings, token)
