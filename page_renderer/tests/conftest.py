import asyncio
import io
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
from PIL import Image

from page_renderer.components.page_host.base import (
    CapturedImage,
    FoundInPageResult,
    HostEvent,
    LoadFailure,
    PageHost,
)
from page_renderer.components.page_host.scripts import DOM_READY_CHANNEL, TARGET_SIZE_CHANNEL
from page_renderer.core.config import RenderSettings, Timings
from page_renderer.models.job import Rect


def make_png(width: int = 4, height: int = 3, color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakePageHost(PageHost):
    """
    In-memory page host with scripted behavior.

    Args:
        load_outcome: "finish", "fail", "subframe-fail", "crash" or None (never settles).
        find_results: match counts returned by successive find_in_page calls;
            the last value repeats once the sequence is exhausted.
        target_size: payload reported for the target-size channel.
        duplicate_reports: how many times injected scripts report.
        dom_ready: whether the DOM-ready script reports at all.
        size: initial viewport size.
        fail_capture: raise from capture_page and print_to_pdf.
        load_delay: seconds before the load settles; 0 settles on the next loop turn.
    """

    def __init__(
        self,
        load_outcome: Optional[str] = "finish",
        find_results: Sequence[int] = (1,),
        target_size: Optional[Dict[str, int]] = None,
        duplicate_reports: int = 1,
        dom_ready: bool = True,
        size: Tuple[int, int] = (1024, 768),
        fail_capture: bool = False,
        pdf_bytes: bytes = b"%PDF-1.4 fake",
        load_delay: float = 0,
    ):
        super().__init__()
        self.load_outcome = load_outcome
        self.find_results = list(find_results)
        self.target_size = target_size
        self.duplicate_reports = duplicate_reports
        self.dom_ready = dom_ready
        self.size = size
        self.fail_capture = fail_capture
        self.pdf_bytes = pdf_bytes
        self.load_delay = load_delay
        self.calls: List[Tuple[str, Any]] = []
        self.find_calls = 0
        self.finished_at: Optional[float] = None

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    async def load(self, url: str, extra_headers: Optional[Dict[str, str]] = None) -> None:
        self._record("load", url, extra_headers)
        self.begin_load()
        if self.load_outcome is None:
            return
        loop = asyncio.get_running_loop()
        if self.load_delay > 0:
            loop.call_later(self.load_delay, self._settle)
        else:
            loop.call_soon(self._settle)

    def _settle(self) -> None:
        self.finished_at = asyncio.get_running_loop().time()
        if self.load_outcome == "finish":
            self.emit_lifecycle(HostEvent.DID_FINISH_LOAD)
        elif self.load_outcome == "fail":
            self.emit_lifecycle(HostEvent.DID_FAIL_LOAD, LoadFailure(-105, "ERR_NAME_NOT_RESOLVED", "", True))
        elif self.load_outcome == "subframe-fail":
            self.emit_lifecycle(HostEvent.DID_FAIL_LOAD, LoadFailure(-2, "ERR_FAILED", "", False))
        elif self.load_outcome == "crash":
            self.emit_lifecycle(HostEvent.CRASHED, "killed")

    async def execute_script(self, code: str) -> Any:
        self._record("execute_script", code)
        if TARGET_SIZE_CHANNEL in code:
            for _ in range(self.duplicate_reports):
                self.send_from_page(TARGET_SIZE_CHANNEL, self.target_size)
        elif f'"{DOM_READY_CHANNEL}"' in code and self.dom_ready:
            for _ in range(self.duplicate_reports):
                self.send_from_page(DOM_READY_CHANNEL)
        return 0

    async def find_in_page(self, text: str) -> None:
        self._record("find_in_page", text)
        index = min(self.find_calls, len(self.find_results) - 1)
        self.find_calls += 1
        self.emit(HostEvent.FOUND_IN_PAGE, FoundInPageResult(matches=self.find_results[index], final_update=True))

    async def stop_find_in_page(self, action: str = "clearSelection") -> None:
        self._record("stop_find_in_page", action)

    async def capture_page(self, rect: Optional[Rect] = None) -> CapturedImage:
        self._record("capture_page", rect)
        if self.fail_capture:
            raise RuntimeError("capture exploded")
        return CapturedImage(make_png())

    async def set_size(self, width: int, height: int) -> None:
        self._record("set_size", width, height)
        self.size = (width, height)

    def get_size(self) -> Tuple[int, int]:
        return self.size

    async def print_to_pdf(self, options: Dict[str, Any]) -> bytes:
        self._record("print_to_pdf", options)
        if self.fail_capture:
            raise RuntimeError("printing failed")
        return self.pdf_bytes


FAST_TIMINGS = Timings(
    target_settle_ms=1,
    resize_settle_ms=2,
    capture_settle_ms=1,
    text_poll_min_backoff_ms=1,
    text_poll_max_backoff_ms=2,
)


@pytest.fixture
def fast_timings() -> Timings:
    return FAST_TIMINGS


@pytest.fixture
def fast_settings() -> RenderSettings:
    return RenderSettings(timeout_seconds=5, timings=FAST_TIMINGS)


@pytest.fixture
def fake_host_factory():
    return FakePageHost
