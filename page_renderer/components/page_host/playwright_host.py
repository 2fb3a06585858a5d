"""
Playwright-backed page host.

This module provides `PlaywrightPageHost`, which implements the `PageHost`
contract on top of a Playwright `Page`, and `PlaywrightHostFactory`, an
asynchronous context manager that owns the Playwright engine and browser and
creates hosts with the configured default viewport and user agent.
"""
import asyncio
from typing import Any, Dict, Optional, Tuple, Union

from playwright.async_api import Browser, Error as PlaywrightError, Page, Playwright, async_playwright

from page_renderer import __version__
from page_renderer.components.page_host.base import (
    SEND_BINDING,
    CapturedImage,
    FoundInPageResult,
    HostEvent,
    LoadFailure,
    PageHost,
)
from page_renderer.core.config import RenderSettings
from page_renderer.core.exceptions import RendererError
from page_renderer.core.logger import get_logger
from page_renderer.models.job import Rect

logger = get_logger(__name__)

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")

# Chromium's net::ERR_ABORTED; a navigation replaced before it committed.
ERR_ABORTED = -3
ERR_FAILED = -2

COUNT_TEXT_SCRIPT = """
(text) => {
  const body = document.body ? document.body.innerText : "";
  if (!text) return 0;
  return body.split(text).length - 1;
}
"""


class PlaywrightPageHost(PageHost):
    """
    `PageHost` over one Playwright page.

    Navigation runs in a background task so `load()` returns immediately and
    completion is reported through lifecycle events, as the coordinator's
    deadline timer expects. `window.pageRendererSend(channel, payload)` is
    exposed to the page as the side channel for injected scripts.
    """

    def __init__(self, page: Page):
        super().__init__()
        self.page = page
        self._navigation: Optional[asyncio.Task] = None
        self._binding_installed = False
        page.on("crash", self._on_crash)

    def _on_crash(self, *_):
        logger.error(f"Page crashed while loading {self.page.url}")
        self.emit_lifecycle(HostEvent.CRASHED, "renderer process crashed")

    async def _install_binding(self) -> None:
        if self._binding_installed:
            return
        await self.page.expose_binding(
            SEND_BINDING, lambda source, channel, payload=None: self.send_from_page(channel, payload)
        )
        self._binding_installed = True

    async def load(self, url: str, extra_headers: Optional[Dict[str, str]] = None) -> None:
        await self._install_binding()
        if extra_headers:
            await self.page.set_extra_http_headers(extra_headers)
        if self._navigation is not None and not self._navigation.done():
            self._navigation.cancel()
        self.begin_load()
        self._navigation = asyncio.create_task(self._navigate(url))

    async def _navigate(self, url: str) -> None:
        try:
            # The coordinator's deadline governs load time; timeout=0 disables Playwright's.
            await self.page.goto(url, wait_until="load", timeout=0)
        except asyncio.CancelledError:
            raise
        except PlaywrightError as e:
            code = ERR_ABORTED if "ERR_ABORTED" in str(e) else ERR_FAILED
            logger.warning(f"Navigation to {url} failed: {e}")
            self.emit_lifecycle(HostEvent.DID_FAIL_LOAD, LoadFailure(code, str(e), url, True))
            return
        except Exception as e:
            logger.error(f"Unexpected error navigating to {url}: {e}", exc_info=True)
            self.emit_lifecycle(HostEvent.DID_FAIL_LOAD, LoadFailure(ERR_FAILED, str(e), url, True))
            return
        self.emit_lifecycle(HostEvent.DID_FINISH_LOAD)

    async def execute_script(self, code: str) -> Any:
        return await self.page.evaluate(code)

    async def find_in_page(self, text: str) -> None:
        matches = await self.page.evaluate(COUNT_TEXT_SCRIPT, text)
        self.emit(HostEvent.FOUND_IN_PAGE, FoundInPageResult(matches=int(matches or 0), final_update=True))

    async def stop_find_in_page(self, action: str = "clearSelection") -> None:
        if action == "clearSelection":
            await self.page.evaluate("() => { const s = window.getSelection(); if (s) s.removeAllRanges(); }")

    async def capture_page(self, rect: Optional[Rect] = None) -> CapturedImage:
        options: Dict[str, Any] = {"type": "png", "full_page": False}
        if rect is not None:
            options["clip"] = {"x": rect.x, "y": rect.y, "width": rect.width, "height": rect.height}
        return CapturedImage(await self.page.screenshot(**options))

    async def set_size(self, width: int, height: int) -> None:
        await self.page.set_viewport_size({"width": width, "height": height})

    def get_size(self) -> Tuple[int, int]:
        viewport = self.page.viewport_size or {"width": 0, "height": 0}
        return viewport["width"], viewport["height"]

    async def print_to_pdf(self, options: Dict[str, Union[str, int, bool, dict]]) -> bytes:
        page_size = options.get("pageSize", "A4")
        pdf_options: Dict[str, Any] = {
            "landscape": bool(options.get("landscape", False)),
            "print_background": bool(options.get("printBackground", True)),
        }
        if isinstance(page_size, dict):
            # Microns to millimetres.
            pdf_options["width"] = f"{page_size['width'] / 1000}mm"
            pdf_options["height"] = f"{page_size['height'] / 1000}mm"
        else:
            pdf_options["format"] = page_size
        if options.get("marginsType") == 1:
            pdf_options["margin"] = {"top": "0", "right": "0", "bottom": "0", "left": "0"}
        elif options.get("marginsType") == 2:
            pdf_options["margin"] = {"top": "0.4in", "right": "0.4in", "bottom": "0.4in", "left": "0.4in"}
        return await self.page.pdf(**pdf_options)

    async def close(self) -> None:
        if self._navigation is not None and not self._navigation.done():
            self._navigation.cancel()
        await self.page.close()


class PlaywrightHostFactory:
    """
    Asynchronous context manager owning the Playwright engine and browser.

    Attributes:
        settings (RenderSettings): Browser type, default viewport and user agent suffix.
        playwright (Optional[Playwright]): The Playwright engine instance.
        browser (Optional[Browser]): The launched browser instance.
        user_agent (Optional[str]): User agent for new pages, read once at startup.
    """

    def __init__(self, settings: Optional[RenderSettings] = None):
        self.settings = settings or RenderSettings()
        if self.settings.browser_type not in SUPPORTED_BROWSERS:
            logger.error(f"Unsupported browser type configured: {self.settings.browser_type}")
            raise RendererError(
                f"Unsupported browser type: {self.settings.browser_type}. Must be 'chromium', 'firefox', or 'webkit'."
            )
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.user_agent: Optional[str] = None

    async def __aenter__(self) -> 'PlaywrightHostFactory':
        logger.debug(f"Starting Playwright and launching {self.settings.browser_type} browser.")
        try:
            self.playwright = await async_playwright().start()
            self.browser = await getattr(self.playwright, self.settings.browser_type).launch()
            self.user_agent = await self._read_user_agent()
            logger.info(f"{self.settings.browser_type} browser launched successfully.")
        except Exception as e:
            logger.error(f"Failed to initialize Playwright or launch browser {self.settings.browser_type}: {e}", exc_info=True)
            if self.playwright:
                try:
                    await self.playwright.stop()
                except Exception as stop_e:
                    logger.error(f"Error stopping Playwright during startup cleanup: {stop_e}", exc_info=True)
                self.playwright = None
                self.browser = None
            raise RendererError(f"Failed to initialize Playwright or launch browser {self.settings.browser_type}: {e}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.browser:
            try:
                await self.browser.close()
                logger.info("Browser closed successfully.")
            except Exception as e:
                logger.error(f"Error closing browser: {e}", exc_info=True)
        if self.playwright:
            try:
                await self.playwright.stop()
            except Exception as e:
                logger.error(f"Error stopping Playwright: {e}", exc_info=True)
        self.browser = None
        self.user_agent = None
        self.playwright = None

    async def create_host(self) -> PlaywrightPageHost:
        """
        Opens a new page sized to the default window and wraps it in a host.

        Raises:
            RendererError: If the factory was not entered with `async with`.
        """
        if not self.browser:
            raise RendererError("Browser is not initialized. Use 'async with PlaywrightHostFactory()'.")
        page = await self.browser.new_page(
            viewport={"width": self.settings.window_width, "height": self.settings.window_height},
            user_agent=self.user_agent,
        )
        return PlaywrightPageHost(page)

    async def _read_user_agent(self) -> str:
        """Reads the browser's default user agent once and appends the service suffix."""
        suffix = self.settings.user_agent_suffix or f"page-renderer/{__version__}"
        blank = await self.browser.new_page()
        try:
            base = await blank.evaluate("() => navigator.userAgent")
        finally:
            await blank.close()
        return f"{base} {suffix}"
