"""
Render job data model.

A `RenderJob` describes one page to convert and is immutable once built.
Readiness and capture options are plain fields; `readiness_mode` resolves
which of the mutually exclusive readiness strategies is active.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from page_renderer.core.exceptions import RenderJobError

PAGE_SIZE_PATTERN = re.compile(r"([0-9]+)x([0-9]+)")


class RenderType(str, Enum):
    PDF = "pdf"
    PNG = "png"
    JPEG = "jpeg"


class Size(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(ge=0)
    height: int = Field(ge=0)

    def as_tuple(self) -> Tuple[int, int]:
        return self.width, self.height


class Rect(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class ReadinessKind(str, Enum):
    DELAY = "delay"
    WAIT_FOR_TEXT = "wait_for_text"
    TARGET = "target"
    DOM_READY = "dom_ready"


@dataclass(frozen=True)
class ReadinessMode:
    """The single active readiness strategy and its argument."""
    kind: ReadinessKind
    delay_ms: int = 0
    text: Optional[str] = None
    element_id: Optional[str] = None


class RenderJob(BaseModel):
    """
    A single page-to-artifact conversion request.

    Attributes:
        url (str): Page to load.
        type (RenderType): Artifact format.
        delay (int): Milliseconds to wait after load. A positive delay wins
            over every other readiness option.
        wait_for_text (Union[str, bool]): Text that must appear before capture,
            or False to disable text waiting.
        target (Optional[str]): Element id whose box size becomes the viewport.
        timeout_seconds (int): Deadline for load completion, also the text-poll
            attempt budget and the bound on side-channel readiness reports.
        page_size (str): Named PDF page size or `WIDTHxHEIGHT` in microns.
        remove_print_media (bool): Strip `media="print"` stylesheets before export.
        quality (int): JPEG quality.
        clipping_rect (Optional[Rect]): Region to capture.
        browser_width (int), browser_height (int): Viewport for image capture.
    """
    model_config = ConfigDict(frozen=True)

    url: str
    type: RenderType = RenderType.PDF

    delay: int = Field(default=0, ge=0)
    wait_for_text: Union[str, bool] = False
    target: Optional[str] = None
    timeout_seconds: int = Field(default=30, gt=0)

    page_size: str = "A4"
    landscape: bool = False
    print_background: bool = True
    margins_type: int = Field(default=0, ge=0, le=2)
    remove_print_media: bool = False

    quality: int = Field(default=80, ge=1, le=100)
    clipping_rect: Optional[Rect] = None
    browser_width: int = Field(default=1024, gt=0)
    browser_height: int = Field(default=768, gt=0)

    @property
    def render_type(self) -> str:
        return "pdf" if self.type == RenderType.PDF else "image"

    @property
    def readiness_mode(self) -> ReadinessMode:
        if self.delay > 0:
            return ReadinessMode(ReadinessKind.DELAY, delay_ms=self.delay)
        if self.wait_for_text is not False and self.wait_for_text not in ("", True):
            return ReadinessMode(ReadinessKind.WAIT_FOR_TEXT, text=str(self.wait_for_text))
        if self.target:
            return ReadinessMode(ReadinessKind.TARGET, element_id=self.target)
        return ReadinessMode(ReadinessKind.DOM_READY)

    @property
    def browser_size(self) -> Size:
        return Size(width=self.browser_width, height=self.browser_height)


def parse_page_size(page_size: str) -> Union[str, Dict[str, int]]:
    """
    Resolves a PDF page size.

    `"210x297"` becomes `{"width": 210, "height": 297}` (microns); any other
    string, such as `"A4"`, is returned unchanged.
    """
    match = PAGE_SIZE_PATTERN.search(page_size)
    if match:
        return {"width": int(match.group(1)), "height": int(match.group(2))}
    return page_size


@dataclass
class RenderResult:
    """Outcome of one job: artifact bytes on success, the job error otherwise."""
    data: Optional[bytes] = None
    error: Optional[RenderJobError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.data is not None
