"""PDF capture strategy."""
from typing import Any, Dict

from page_renderer.components.page_host.base import PageHost
from page_renderer.components.page_host.scripts import REMOVE_PRINT_MEDIA_SCRIPT
from page_renderer.core.exceptions import CaptureFailedError
from page_renderer.core.logger import get_logger
from page_renderer.models.job import RenderJob, parse_page_size

logger = get_logger(__name__)


def pdf_options(job: RenderJob) -> Dict[str, Any]:
    """Export options for `job`, with `NxN` page sizes resolved to microns."""
    return {
        "pageSize": parse_page_size(job.page_size),
        "landscape": job.landscape,
        "printBackground": job.print_background,
        "marginsType": job.margins_type,
    }


class PdfCapture:
    """Exports the page through the host's PDF export."""

    async def capture(self, job: RenderJob, host: PageHost) -> bytes:
        """
        Returns the PDF bytes for `job`.

        Print-media stylesheets are removed first when `remove_print_media` is
        set; the removal is awaited so it cannot race the export.

        Raises:
            CaptureFailedError: If the removal script or the export fails.
        """
        try:
            if job.remove_print_media:
                removed = await host.execute_script(REMOVE_PRINT_MEDIA_SCRIPT)
                logger.debug(f"Removed {removed} print stylesheet(s) from {job.url}")
            options = pdf_options(job)
            logger.debug(f"Exporting PDF for {job.url} with options {options}")
            return await host.print_to_pdf(options)
        except CaptureFailedError:
            raise
        except Exception as e:
            logger.error(f"PDF export failed for {job.url}: {e}", exc_info=True)
            raise CaptureFailedError(job.url, f"PDF export failed: {e}", context=e)
