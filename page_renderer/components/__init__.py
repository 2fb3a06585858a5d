"""
Components sub-package for the Page Renderer service.

This package contains the page host contract and its Playwright
implementation, the readiness strategies and the capture strategies.

The `__all__` variable defines the public API of this sub-package,
making key components directly importable from `page_renderer.components`.
"""

from .capture.dispatcher import CaptureDispatcher
from .page_host.base import PageHost
from .page_host.playwright_host import PlaywrightHostFactory, PlaywrightPageHost
from .readiness.detector import select_readiness_strategy

__all__ = [
    "CaptureDispatcher",
    "PageHost",
    "PlaywrightHostFactory",
    "PlaywrightPageHost",
    "select_readiness_strategy",
]
