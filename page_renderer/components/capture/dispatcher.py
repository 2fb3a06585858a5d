"""Routes a ready page to the PDF or image capture strategy."""
from typing import Optional

from page_renderer.components.capture.image import ImageCapture
from page_renderer.components.capture.pdf import PdfCapture
from page_renderer.components.page_host.base import PageHost
from page_renderer.components.readiness.detector import ReadinessResult
from page_renderer.core.config import Timings
from page_renderer.models.job import RenderJob


class CaptureDispatcher:
    def __init__(self, timings: Optional[Timings] = None):
        timings = timings or Timings()
        self.pdf = PdfCapture()
        self.image = ImageCapture(timings)

    async def capture(self, job: RenderJob, host: PageHost, readiness: Optional[ReadinessResult] = None) -> bytes:
        if job.render_type == "pdf":
            return await self.pdf.capture(job, host)
        target_size = readiness.target_size if readiness is not None else None
        return await self.image.capture(job, host, target_size)
