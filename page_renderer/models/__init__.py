"""
Models sub-package for the Page Renderer service.

This package contains the render job description and its result types.
"""

from .job import (
    ReadinessKind,
    ReadinessMode,
    Rect,
    RenderJob,
    RenderResult,
    RenderType,
    Size,
    parse_page_size,
)

__all__ = [
    "ReadinessKind",
    "ReadinessMode",
    "Rect",
    "RenderJob",
    "RenderResult",
    "RenderType",
    "Size",
    "parse_page_size",
]
