"""
Render job coordination.

`JobCoordinator` owns a job from submission to result: it arms the load
deadline, loads the page, validates the load outcome, waits for the readiness
strategy and dispatches to the capture strategy. The completion callback is
invoked exactly once, after every listener and timer the job registered on the
page host has been removed.
"""
import asyncio
from enum import Enum
from typing import Callable, Dict, FrozenSet, Optional

from page_renderer.components.capture.dispatcher import CaptureDispatcher
from page_renderer.components.page_host.base import HostEvent, LoadOutcome, PageHost
from page_renderer.components.readiness.detector import select_readiness_strategy
from page_renderer.components.readiness.retry import CancellationToken
from page_renderer.core.config import RenderSettings
from page_renderer.core.exceptions import (
    CaptureFailedError,
    CrashedError,
    LoadFailedError,
    RenderJobError,
    TimedOutError,
)
from page_renderer.core.logger import get_logger
from page_renderer.core.timeout_guard import TimeoutGuard
from page_renderer.core.validator import validate_result
from page_renderer.models.job import RenderJob, RenderResult

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
}

DoneCallback = Callable[[Optional[RenderJobError], Optional[bytes]], None]


class JobState(str, Enum):
    LOADING = "loading"
    FINISHED = "finished"
    READINESS_WAIT = "readiness_wait"
    READY = "ready"
    CAPTURING = "capturing"
    SUCCEEDED = "succeeded"
    CAPTURE_FAILED = "capture_failed"
    FAILED = "failed"
    CRASHED = "crashed"
    TIMED_OUT = "timed_out"


_TRANSITIONS: Dict[JobState, FrozenSet[JobState]] = {
    JobState.LOADING: frozenset({JobState.FINISHED, JobState.FAILED, JobState.CRASHED, JobState.TIMED_OUT}),
    JobState.FINISHED: frozenset({JobState.READINESS_WAIT, JobState.FAILED, JobState.CRASHED, JobState.TIMED_OUT}),
    JobState.READINESS_WAIT: frozenset({JobState.READY, JobState.FAILED}),
    JobState.READY: frozenset({JobState.CAPTURING}),
    JobState.CAPTURING: frozenset({JobState.SUCCEEDED, JobState.CAPTURE_FAILED}),
}


def terminal_state_for(error: RenderJobError) -> JobState:
    if isinstance(error, CrashedError):
        return JobState.CRASHED
    if isinstance(error, TimedOutError):
        return JobState.TIMED_OUT
    if isinstance(error, CaptureFailedError):
        return JobState.CAPTURE_FAILED
    return JobState.FAILED


class _JobRun:
    """Per-invocation state. Never shared between jobs."""

    def __init__(self, job: RenderJob, done: DoneCallback):
        self.job = job
        self.state = JobState.LOADING
        self._done = done
        self._completed = False

    def transition(self, state: JobState) -> None:
        if state not in _TRANSITIONS.get(self.state, frozenset()):
            raise RuntimeError(f"Illegal job transition {self.state.value} -> {state.value}")
        logger.debug(f"Job {self.job.url}: {self.state.value} -> {state.value}")
        self.state = state

    def complete(self, error: Optional[RenderJobError], data: Optional[bytes]) -> None:
        if self._completed:
            logger.warning(f"Job {self.job.url} already completed; ignoring second completion.")
            return
        self._completed = True
        if error is not None:
            self.transition(terminal_state_for(error))
            logger.error(f"Render job for {self.job.url} failed: {error}")
            self._done(error, None)
        else:
            self.transition(JobState.SUCCEEDED)
            logger.info(f"Render job for {self.job.url} succeeded ({len(data)} bytes).")
            self._done(None, data)


class JobCoordinator:
    """
    Runs render jobs against a page host, one job per host at a time.

    Attributes:
        settings (RenderSettings): Default timeout, viewport and timings.
        dispatcher (CaptureDispatcher): Capture strategies.
    """

    def __init__(self, settings: Optional[RenderSettings] = None, dispatcher: Optional[CaptureDispatcher] = None):
        self.settings = settings or RenderSettings()
        self.dispatcher = dispatcher or CaptureDispatcher(self.settings.timings)

    def build_job(self, url: str, **options) -> RenderJob:
        """
        Builds a `RenderJob`, filling the timeout and browser size from settings
        when the caller does not provide them. A timeout of 0 also selects the
        settings default.
        """
        options["timeout_seconds"] = options.get("timeout_seconds") or self.settings.timeout_seconds
        options.setdefault("browser_width", self.settings.window_width)
        options.setdefault("browser_height", self.settings.window_height)
        return RenderJob(url=url, **options)

    async def run(self, job: RenderJob, host: PageHost, done: DoneCallback) -> JobState:
        """
        Renders `job` on `host` and reports through `done(error, data)`.

        Returns:
            JobState: The terminal state of the job.
        """
        run = _JobRun(job, done)
        loop = asyncio.get_running_loop()
        finished: asyncio.Future = loop.create_future()
        token = CancellationToken()

        def on_finished(outcome: LoadOutcome) -> None:
            if not finished.done():
                finished.set_result(outcome)

        guard = TimeoutGuard(
            job.timeout_seconds,
            lambda: host.emit_lifecycle(HostEvent.TIMEOUT, f"no load completion within {job.timeout_seconds}s"),
        )

        logger.info(f"Starting {job.type.value} render job for {job.url} "
                    f"(readiness: {job.readiness_mode.kind.value}, timeout: {job.timeout_seconds}s)")
        error: Optional[RenderJobError] = None
        data: Optional[bytes] = None
        host.once(HostEvent.FINISHED, on_finished)
        guard.arm()
        try:
            await host.load(job.url, dict(DEFAULT_HEADERS))
            outcome = await finished
            guard.disarm()
            validate_result(job.url, outcome)
            run.transition(JobState.FINISHED)

            run.transition(JobState.READINESS_WAIT)
            strategy = select_readiness_strategy(job, self.settings.timings, token)
            readiness = await strategy.wait(job, host)
            run.transition(JobState.READY)

            run.transition(JobState.CAPTURING)
            data = await self.dispatcher.capture(job, host, readiness)
        except RenderJobError as e:
            error = e
        except Exception as e:
            logger.error(f"Unexpected error in render job for {job.url}: {e}", exc_info=True)
            if run.state is JobState.CAPTURING:
                error = CaptureFailedError(job.url, f"Capture failed: {e}", context=e)
            else:
                error = LoadFailedError(job.url, f"Page host error: {e}", context=e)
        finally:
            guard.disarm()
            token.cancel()
            host.remove_listener(HostEvent.FINISHED, on_finished)

        run.complete(error, data)
        return run.state

    async def render_result(self, job: RenderJob, host: PageHost) -> RenderResult:
        result = RenderResult()

        def done(error: Optional[RenderJobError], data: Optional[bytes]) -> None:
            result.error = error
            result.data = data

        await self.run(job, host, done)
        return result

    async def render(self, job: RenderJob, host: PageHost) -> bytes:
        """
        Renders `job` and returns the artifact bytes.

        Raises:
            RenderJobError: The job's terminal failure.
        """
        result = await self.render_result(job, host)
        if result.error is not None:
            raise result.error
        return result.data
