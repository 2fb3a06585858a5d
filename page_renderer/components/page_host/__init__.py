"""
Page host component for the Page Renderer service.

Defines the contract the coordinator consumes and its Playwright implementation.
"""
from .base import (
    CapturedImage,
    FoundInPageResult,
    HostEvent,
    LoadFailure,
    LoadOutcome,
    LoadOutcomeKind,
    PageHost,
    merge_load_outcome,
)
from .playwright_host import PlaywrightHostFactory, PlaywrightPageHost

__all__ = [
    "CapturedImage",
    "FoundInPageResult",
    "HostEvent",
    "LoadFailure",
    "LoadOutcome",
    "LoadOutcomeKind",
    "PageHost",
    "merge_load_outcome",
    "PlaywrightHostFactory",
    "PlaywrightPageHost",
]
