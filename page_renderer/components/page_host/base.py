"""
The page host contract consumed by the render coordinator.

A page host loads a URL, runs injected script, searches for text, resizes its
viewport and captures pixels or a PDF. It reports what happens through
enum-keyed events. The four load lifecycle signals are merged into a single
`FINISHED` outcome that fires at most once per `load()`.
"""
import io
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from PIL import Image

from page_renderer.core.logger import get_logger
from page_renderer.models.job import Rect

logger = get_logger(__name__)

Listener = Callable[..., None]

# Channel name the injected scripts use with `window.pageRendererSend`.
SEND_BINDING = "pageRendererSend"


class HostEvent(str, Enum):
    DID_FINISH_LOAD = "did-finish-load"
    DID_FAIL_LOAD = "did-fail-load"
    CRASHED = "crashed"
    TIMEOUT = "timeout"
    FINISHED = "finished"
    FOUND_IN_PAGE = "found-in-page"
    SCRIPT_MESSAGE = "script-message"


class LoadOutcomeKind(str, Enum):
    DID_FINISH_LOAD = "did-finish-load"
    DID_FAIL_LOAD = "did-fail-load"
    CRASHED = "crashed"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class LoadFailure:
    """Details of a `did-fail-load` signal."""
    error_code: int
    error_description: str
    validated_url: str = ""
    is_main_frame: bool = True


@dataclass(frozen=True)
class LoadOutcome:
    kind: LoadOutcomeKind
    failure: Optional[LoadFailure] = None
    detail: Optional[str] = None


_LIFECYCLE_EVENTS = {
    HostEvent.DID_FINISH_LOAD: LoadOutcomeKind.DID_FINISH_LOAD,
    HostEvent.DID_FAIL_LOAD: LoadOutcomeKind.DID_FAIL_LOAD,
    HostEvent.CRASHED: LoadOutcomeKind.CRASHED,
    HostEvent.TIMEOUT: LoadOutcomeKind.TIMEOUT,
}


def merge_load_outcome(event: HostEvent, payload: Any = None) -> Optional[LoadOutcome]:
    """
    Maps a raw lifecycle event to its `LoadOutcome`.

    Returns None for events that are not lifecycle signals.
    """
    kind = _LIFECYCLE_EVENTS.get(event)
    if kind is None:
        return None
    if kind is LoadOutcomeKind.DID_FAIL_LOAD:
        failure = payload if isinstance(payload, LoadFailure) else LoadFailure(-2, str(payload or "load failed"))
        return LoadOutcome(kind, failure=failure, detail=failure.error_description)
    return LoadOutcome(kind, detail=str(payload) if payload is not None else None)


@dataclass(frozen=True)
class FoundInPageResult:
    matches: int
    final_update: bool = True


class CapturedImage:
    """Raw capture from a page host, encodable as PNG or JPEG."""

    def __init__(self, png_bytes: bytes):
        self._png = png_bytes

    def to_png(self) -> bytes:
        return self._png

    def to_jpeg(self, quality: int = 80) -> bytes:
        with Image.open(io.BytesIO(self._png)) as img:
            buffer = io.BytesIO()
            img.convert("RGB").save(buffer, format="JPEG", quality=quality)
        return buffer.getvalue()

    @property
    def size(self) -> Tuple[int, int]:
        with Image.open(io.BytesIO(self._png)) as img:
            return img.size


@dataclass
class _Registration:
    listener: Listener
    once: bool = False


class PageHost(ABC):
    """
    Abstract page host.

    Subclasses implement the browser operations and report lifecycle signals
    through `emit_lifecycle`. Listeners are registered per `HostEvent`;
    `remove_listener` is idempotent and a removed listener never fires.
    """

    def __init__(self):
        self._listeners: Dict[HostEvent, List[_Registration]] = {}
        self._load_settled = True

    # --- listener registry ---

    def on(self, event: HostEvent, listener: Listener) -> Listener:
        self._listeners.setdefault(event, []).append(_Registration(listener))
        return listener

    def once(self, event: HostEvent, listener: Listener) -> Listener:
        self._listeners.setdefault(event, []).append(_Registration(listener, once=True))
        return listener

    def remove_listener(self, event: HostEvent, listener: Listener) -> None:
        registrations = self._listeners.get(event, [])
        self._listeners[event] = [r for r in registrations if r.listener is not listener]
        if not self._listeners[event]:
            del self._listeners[event]

    def listener_count(self, event: Optional[HostEvent] = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, []))
        return sum(len(r) for r in self._listeners.values())

    def emit(self, event: HostEvent, *args: Any) -> bool:
        registrations = list(self._listeners.get(event, []))
        for registration in registrations:
            if not any(r is registration for r in self._listeners.get(event, [])):
                # Removed by an earlier listener during this dispatch.
                continue
            if registration.once:
                self.remove_listener(event, registration.listener)
            registration.listener(*args)
        return bool(registrations)

    # --- lifecycle ---

    def begin_load(self) -> None:
        """Marks the start of a navigation; the next lifecycle signal settles it."""
        self._load_settled = False

    def emit_lifecycle(self, event: HostEvent, payload: Any = None) -> None:
        """
        Emits a raw lifecycle event and, for the first one after `begin_load`,
        the aggregate `FINISHED` outcome.
        """
        outcome = merge_load_outcome(event, payload)
        if outcome is None:
            raise ValueError(f"{event} is not a lifecycle event")
        self.emit(event, outcome)
        if self._load_settled:
            logger.debug(f"Ignoring late lifecycle event '{event.value}'; load already settled.")
            return
        self._load_settled = True
        self.emit(HostEvent.FINISHED, outcome)

    # --- browser operations ---

    @abstractmethod
    async def load(self, url: str, extra_headers: Optional[Dict[str, str]] = None) -> None:
        """Begins navigation. Completion is reported through lifecycle events."""

    @abstractmethod
    async def execute_script(self, code: str) -> Any:
        """Runs `code` in the loaded page and returns its value."""

    @abstractmethod
    async def find_in_page(self, text: str) -> None:
        """Searches for `text`; results arrive as `FOUND_IN_PAGE` events."""

    @abstractmethod
    async def stop_find_in_page(self, action: str = "clearSelection") -> None:
        ...

    @abstractmethod
    async def capture_page(self, rect: Optional[Rect] = None) -> CapturedImage:
        ...

    @abstractmethod
    async def set_size(self, width: int, height: int) -> None:
        ...

    @abstractmethod
    def get_size(self) -> Tuple[int, int]:
        ...

    @abstractmethod
    async def print_to_pdf(self, options: Dict[str, Union[str, int, bool, dict]]) -> bytes:
        """Exports the page as PDF bytes."""

    def send_from_page(self, channel: str, payload: Any = None) -> None:
        """Side channel entry point for values reported by injected scripts."""
        self.emit(HostEvent.SCRIPT_MESSAGE, channel, payload)
