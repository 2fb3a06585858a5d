import asyncio
import io

import pytest
from unittest.mock import MagicMock, patch
from PIL import Image

from page_renderer.components.page_host.base import HostEvent
from page_renderer.components.page_host.scripts import REMOVE_PRINT_MEDIA_SCRIPT
from page_renderer.core.config import RenderSettings
from page_renderer.core.coordinator import DEFAULT_HEADERS, JobCoordinator, JobState
from page_renderer.core.exceptions import (
    CaptureFailedError,
    CrashedError,
    ErrorKind,
    LoadFailedError,
    ReadinessTimeoutError,
    TimedOutError,
)
from page_renderer.models.job import Rect, RenderType

from conftest import FAST_TIMINGS, FakePageHost


@pytest.fixture(autouse=True)
def mock_coordinator_logger():
    with patch('page_renderer.core.coordinator.logger', MagicMock()) as mock_log:
        yield mock_log


@pytest.fixture
def coordinator(fast_settings):
    return JobCoordinator(fast_settings)


class DoneRecorder:
    """Completion callback that records every invocation."""

    def __init__(self, host=None):
        self.calls = []
        self.host = host
        self.listeners_at_completion = None

    def __call__(self, error, data):
        if self.host is not None:
            self.listeners_at_completion = self.host.listener_count()
        self.calls.append((error, data))


# --- Load phase ---

@pytest.mark.asyncio
async def test_successful_pdf_job_calls_done_once(coordinator):
    host = FakePageHost()
    done = DoneRecorder(host)
    job = coordinator.build_job("http://example.com", type=RenderType.PDF)

    state = await coordinator.run(job, host, done)

    assert state is JobState.SUCCEEDED
    assert done.calls == [(None, b"%PDF-1.4 fake")]
    assert done.listeners_at_completion == 0
    assert host.calls[0] == ("load", ("http://example.com", DEFAULT_HEADERS))


@pytest.mark.asyncio
async def test_load_failure_reports_load_failed(coordinator):
    host = FakePageHost(load_outcome="fail")
    done = DoneRecorder(host)
    job = coordinator.build_job("http://unreachable.invalid")

    state = await coordinator.run(job, host, done)

    assert state is JobState.FAILED
    assert len(done.calls) == 1
    error, data = done.calls[0]
    assert isinstance(error, LoadFailedError)
    assert error.kind is ErrorKind.LOAD_FAILED
    assert data is None
    assert "ERR_NAME_NOT_RESOLVED" in error.message
    assert "print_to_pdf" not in host.call_names()
    assert done.listeners_at_completion == 0


@pytest.mark.asyncio
async def test_sub_frame_failure_is_ignored(coordinator):
    host = FakePageHost(load_outcome="subframe-fail")
    done = DoneRecorder(host)
    job = coordinator.build_job("http://example.com")

    state = await coordinator.run(job, host, done)

    assert state is JobState.SUCCEEDED
    assert done.calls == [(None, b"%PDF-1.4 fake")]


@pytest.mark.asyncio
async def test_crash_reports_crashed(coordinator):
    host = FakePageHost(load_outcome="crash")
    done = DoneRecorder(host)
    job = coordinator.build_job("http://example.com")

    state = await coordinator.run(job, host, done)

    assert state is JobState.CRASHED
    error, data = done.calls[0]
    assert isinstance(error, CrashedError)
    assert data is None
    assert done.listeners_at_completion == 0


@pytest.mark.asyncio
async def test_never_finishing_page_times_out(coordinator):
    host = FakePageHost(load_outcome=None)
    done = DoneRecorder(host)
    job = coordinator.build_job("http://slow.example.com", timeout_seconds=1)

    loop = asyncio.get_running_loop()
    started = loop.time()
    state = await coordinator.run(job, host, done)

    assert state is JobState.TIMED_OUT
    assert loop.time() - started >= 0.9
    assert len(done.calls) == 1
    error, data = done.calls[0]
    assert isinstance(error, TimedOutError)
    assert error.kind is ErrorKind.TIMED_OUT
    assert data is None
    assert done.listeners_at_completion == 0


@pytest.mark.asyncio
async def test_late_lifecycle_event_after_timeout_is_ignored(coordinator):
    host = FakePageHost(load_outcome=None)
    done = DoneRecorder()
    job = coordinator.build_job("http://slow.example.com", timeout_seconds=1)

    await coordinator.run(job, host, done)
    # The real load completing afterwards must not produce a second outcome.
    host.emit_lifecycle(HostEvent.DID_FINISH_LOAD)
    await asyncio.sleep(0)

    assert len(done.calls) == 1
    assert isinstance(done.calls[0][0], TimedOutError)


@pytest.mark.asyncio
async def test_guard_is_disarmed_before_readiness(coordinator):
    """A readiness wait longer than the deadline must not time the job out."""
    host = FakePageHost()
    done = DoneRecorder()
    job = coordinator.build_job("http://example.com", delay=1200, timeout_seconds=1)

    state = await coordinator.run(job, host, done)

    assert state is JobState.SUCCEEDED
    assert done.calls[0][0] is None


# --- Readiness phase ---

@pytest.mark.asyncio
async def test_fixed_delay_waits_at_least_delay(coordinator):
    host = FakePageHost()
    job = coordinator.build_job("http://example.com", delay=200)

    captured_at = []

    def done(error, data):
        captured_at.append(asyncio.get_running_loop().time())

    await coordinator.run(job, host, done)

    assert captured_at[0] - host.finished_at >= 0.19


@pytest.mark.asyncio
async def test_text_poll_never_matching_reports_readiness_timeout(coordinator):
    host = FakePageHost(find_results=[0])
    done = DoneRecorder(host)
    job = coordinator.build_job("http://example.com", wait_for_text="Ready", timeout_seconds=3)

    state = await coordinator.run(job, host, done)

    assert state is JobState.FAILED
    assert host.call_names().count("find_in_page") == 3
    error, data = done.calls[0]
    assert isinstance(error, ReadinessTimeoutError)
    assert error.kind is ErrorKind.READINESS_TIMEOUT
    assert data is None
    assert done.listeners_at_completion == 0


@pytest.mark.asyncio
async def test_text_poll_ready_on_last_attempt(coordinator):
    host = FakePageHost(find_results=[0, 0, 2])
    done = DoneRecorder(host)
    job = coordinator.build_job("http://example.com", wait_for_text="Ready", timeout_seconds=3)

    state = await coordinator.run(job, host, done)

    assert state is JobState.SUCCEEDED
    assert host.call_names().count("find_in_page") == 3
    assert ("stop_find_in_page", ("clearSelection",)) in host.calls
    assert done.calls == [(None, b"%PDF-1.4 fake")]


@pytest.mark.asyncio
async def test_dom_ready_duplicate_reports_complete_once(coordinator):
    host = FakePageHost(duplicate_reports=3)
    done = DoneRecorder(host)
    job = coordinator.build_job("http://example.com")

    await coordinator.run(job, host, done)

    assert len(done.calls) == 1
    assert done.listeners_at_completion == 0


@pytest.mark.asyncio
async def test_dom_ready_never_reported_is_bounded(coordinator):
    host = FakePageHost(dom_ready=False)
    done = DoneRecorder(host)
    job = coordinator.build_job("http://example.com", timeout_seconds=1)

    state = await coordinator.run(job, host, done)

    assert state is JobState.FAILED
    assert isinstance(done.calls[0][0], ReadinessTimeoutError)
    assert done.listeners_at_completion == 0


# --- Zero timeout selects the settings default ---

@pytest.fixture
def short_default_coordinator():
    return JobCoordinator(RenderSettings(timeout_seconds=1, timings=FAST_TIMINGS))


@pytest.mark.asyncio
async def test_zero_timeout_dom_ready_never_reported_still_completes(short_default_coordinator):
    host = FakePageHost(dom_ready=False)
    done = DoneRecorder(host)
    job = short_default_coordinator.build_job("http://example.com", timeout_seconds=0)

    state = await asyncio.wait_for(short_default_coordinator.run(job, host, done), 3)

    assert job.timeout_seconds == 1
    assert state is JobState.FAILED
    assert len(done.calls) == 1
    assert isinstance(done.calls[0][0], ReadinessTimeoutError)
    assert done.listeners_at_completion == 0


@pytest.mark.asyncio
async def test_zero_timeout_does_not_expire_a_load_that_settles_later(short_default_coordinator):
    host = FakePageHost(load_delay=0.01)
    done = DoneRecorder(host)
    job = short_default_coordinator.build_job("http://example.com", timeout_seconds=0)

    state = await short_default_coordinator.run(job, host, done)

    assert state is JobState.SUCCEEDED
    assert done.calls == [(None, b"%PDF-1.4 fake")]



# --- Capture phase ---

@pytest.mark.asyncio
async def test_pdf_with_remove_print_media_and_micron_page_size(coordinator):
    host = FakePageHost()
    done = DoneRecorder()
    job = coordinator.build_job(
        "http://example.com", type=RenderType.PDF, page_size="800x600", remove_print_media=True
    )

    await coordinator.run(job, host, done)

    names = host.call_names()
    removal = names.index("execute_script", names.index("execute_script") + 1)
    assert host.calls[removal][1] == (REMOVE_PRINT_MEDIA_SCRIPT,)
    assert removal < names.index("print_to_pdf")
    options = host.calls[names.index("print_to_pdf")][1][0]
    assert options["pageSize"] == {"width": 800, "height": 600}
    assert done.calls[0] == (None, b"%PDF-1.4 fake")


@pytest.mark.asyncio
async def test_target_mode_missing_element_uses_zero_size(coordinator):
    host = FakePageHost(target_size=None)
    done = DoneRecorder()
    job = coordinator.build_job("http://example.com", type=RenderType.PNG, target="missing")

    state = await coordinator.run(job, host, done)

    assert state is JobState.SUCCEEDED
    assert ("set_size", (0, 0)) in host.calls
    assert done.calls[0][1] is not None


@pytest.mark.asyncio
async def test_image_with_clipping_rect_resizes_and_clips(coordinator):
    host = FakePageHost()
    done = DoneRecorder()
    rect = Rect(x=10, y=20, width=100, height=50)
    job = coordinator.build_job(
        "http://example.com", type=RenderType.JPEG, clipping_rect=rect,
        browser_width=800, browser_height=600,
    )

    await coordinator.run(job, host, done)

    assert ("set_size", (810, 620)) in host.calls
    assert ("capture_page", (rect,)) in host.calls
    error, data = done.calls[0]
    assert error is None
    with Image.open(io.BytesIO(data)) as img:
        assert img.format == "JPEG"


@pytest.mark.asyncio
async def test_capture_failure_reports_capture_failed(coordinator):
    host = FakePageHost(fail_capture=True)
    done = DoneRecorder(host)
    job = coordinator.build_job("http://example.com", type=RenderType.PNG)

    state = await coordinator.run(job, host, done)

    assert state is JobState.CAPTURE_FAILED
    error, data = done.calls[0]
    assert isinstance(error, CaptureFailedError)
    assert data is None
    assert done.listeners_at_completion == 0


@pytest.mark.asyncio
async def test_host_reused_across_jobs_does_not_accumulate_listeners(coordinator):
    host = FakePageHost()
    for _ in range(3):
        await coordinator.run(coordinator.build_job("http://example.com"), host, DoneRecorder())
    assert host.listener_count() == 0


# --- Convenience wrappers ---

@pytest.mark.asyncio
async def test_render_returns_bytes(coordinator):
    data = await coordinator.render(coordinator.build_job("http://example.com"), FakePageHost())
    assert data == b"%PDF-1.4 fake"


@pytest.mark.asyncio
async def test_render_raises_job_error(coordinator):
    with pytest.raises(CrashedError):
        await coordinator.render(coordinator.build_job("http://example.com"), FakePageHost(load_outcome="crash"))


def test_build_job_uses_settings_defaults():
    coordinator = JobCoordinator(RenderSettings(timeout_seconds=9, window_width=640, window_height=480))
    job = coordinator.build_job("http://example.com")
    assert job.timeout_seconds == 9
    assert (job.browser_width, job.browser_height) == (640, 480)

    job = coordinator.build_job("http://example.com", timeout_seconds=2, browser_width=100)
    assert job.timeout_seconds == 2
    assert job.browser_width == 100

    job = coordinator.build_job("http://example.com", timeout_seconds=0)
    assert job.timeout_seconds == 9
