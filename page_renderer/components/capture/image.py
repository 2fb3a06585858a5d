"""Image capture strategy."""
import asyncio
from typing import Optional

from page_renderer.components.page_host.base import CapturedImage, PageHost
from page_renderer.core.config import Timings
from page_renderer.core.exceptions import CaptureFailedError
from page_renderer.core.logger import get_logger
from page_renderer.models.job import RenderJob, RenderType, Size

logger = get_logger(__name__)


class ImageCapture:
    """
    Captures the viewport as PNG or JPEG.

    Three modes, in order of precedence:
      - target: the viewport is sized to the resolved target element size.
      - clipping rect: the viewport is grown by the rect's offset so the
        clipped region is not stretched, then only the rect is captured.
      - plain: the viewport is sized to the job's browser size.
    """

    def __init__(self, timings: Timings):
        self.timings = timings

    async def capture(self, job: RenderJob, host: PageHost, target_size: Optional[Size] = None) -> bytes:
        try:
            image = await self._capture(job, host, target_size)
            if job.type == RenderType.PNG:
                return image.to_png()
            return image.to_jpeg(job.quality)
        except CaptureFailedError:
            raise
        except Exception as e:
            logger.error(f"Image capture failed for {job.url}: {e}", exc_info=True)
            raise CaptureFailedError(job.url, f"Image capture failed: {e}", context=e)

    async def _capture(self, job: RenderJob, host: PageHost, target_size: Optional[Size]) -> CapturedImage:
        if job.target and target_size is not None:
            if target_size.as_tuple() == tuple(host.get_size()):
                await self._settle(self.timings.target_settle_ms)
            else:
                await host.set_size(target_size.width, target_size.height)
                await self._settle(self.timings.resize_settle_ms)
            return await host.capture_page()

        rect = job.clipping_rect
        if rect is not None:
            await host.set_size(job.browser_width + rect.x, job.browser_height + rect.y)
            await self._settle(self.timings.capture_settle_ms)
            return await host.capture_page(rect)

        await host.set_size(job.browser_width, job.browser_height)
        await self._settle(self.timings.capture_settle_ms)
        return await host.capture_page()

    @staticmethod
    async def _settle(delay_ms: int) -> None:
        await asyncio.sleep(delay_ms / 1000)
