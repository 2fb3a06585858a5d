"""
Render service used by the API routes.

`RenderService` pairs a `PlaywrightHostFactory` with a `JobCoordinator`. Each
job gets its own page host, closed when the job completes.
"""
from typing import Optional

from page_renderer.components.page_host.playwright_host import PlaywrightHostFactory
from page_renderer.core.config import RenderSettings
from page_renderer.core.coordinator import JobCoordinator
from page_renderer.core.logger import get_logger
from page_renderer.models.job import RenderJob

logger = get_logger(__name__)


class RenderService:
    def __init__(self, settings: RenderSettings, factory: Optional[PlaywrightHostFactory] = None):
        self.settings = settings
        self.factory = factory or PlaywrightHostFactory(settings)
        self.coordinator = JobCoordinator(settings)

    async def start(self) -> None:
        await self.factory.__aenter__()

    async def stop(self) -> None:
        await self.factory.__aexit__(None, None, None)

    def build_job(self, url: str, **options) -> RenderJob:
        return self.coordinator.build_job(url, **options)

    async def render(self, job: RenderJob) -> bytes:
        """
        Renders `job` on a fresh page host.

        Raises:
            RendererError: If the browser is not available.
            RenderJobError: If the job fails.
        """
        host = await self.factory.create_host()
        try:
            return await self.coordinator.render(job, host)
        finally:
            try:
                await host.close()
            except Exception as e:
                logger.error(f"Error closing page host for {job.url}: {e}", exc_info=True)
