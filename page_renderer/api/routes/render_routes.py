"""
API routes for render operations.

Each route converts a page to one artifact type. POST accepts a JSON
`RenderRequest`; GET accepts the common options as query parameters.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from page_renderer.api.models import ErrorResponse, RenderRequest
from page_renderer.api.service import RenderService
from page_renderer.core.exceptions import ErrorKind, RendererError, RenderJobError
from page_renderer.core.logger import get_logger
from page_renderer.models.job import RenderType

logger = get_logger(__name__)

router = APIRouter()

MEDIA_TYPES = {
    RenderType.PDF: "application/pdf",
    RenderType.PNG: "image/png",
    RenderType.JPEG: "image/jpeg",
}

ERROR_RESPONSES = {
    code: {"model": ErrorResponse}
    for code in (status.HTTP_500_INTERNAL_SERVER_ERROR, status.HTTP_502_BAD_GATEWAY, status.HTTP_504_GATEWAY_TIMEOUT)
}

ERROR_STATUS = {
    ErrorKind.TIMED_OUT: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorKind.READINESS_TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorKind.LOAD_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.CRASHED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.CAPTURE_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_render_service(request: Request) -> RenderService:
    """Returns the service started by the application lifespan."""
    service = getattr(request.app.state, "render_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Render service is not running.",
        )
    return service


def _text_option(value: Optional[str]):
    """Query strings cannot carry a boolean; `false` and empty disable text waiting."""
    if value is None or value.strip().lower() in ("", "false"):
        return False
    return value


async def _render(render_type: RenderType, body: RenderRequest, service: RenderService) -> Response:
    job = service.build_job(str(body.url), type=render_type, **body.job_options())
    try:
        data = await service.render(job)
    except RenderJobError as e:
        logger.error(f"Render job failed for {job.url}: {e.message}")
        return JSONResponse(
            status_code=ERROR_STATUS.get(e.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
            content=ErrorResponse(detail=e.message, error=e.kind.value, url=job.url).model_dump(),
        )
    except RendererError as e:
        logger.error(f"Renderer unavailable for {job.url}: {e.message}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Rendering component not ready. Ensure browser binaries are installed ('playwright install'). "
                   f"Original error: {e.message}",
        )
    return Response(content=data, media_type=MEDIA_TYPES[render_type])


@router.post(
    "/{render_type}",
    response_class=Response,
    responses=ERROR_RESPONSES,
    summary="Render a page",
    description="Loads the URL, waits for the requested readiness condition and returns the PDF or image bytes.",
)
async def render_post(
    render_type: RenderType,
    body: RenderRequest,
    service: RenderService = Depends(get_render_service),
):
    return await _render(render_type, body, service)


@router.get("/{render_type}", response_class=Response, responses=ERROR_RESPONSES, summary="Render a page (query parameters)")
async def render_get(
    render_type: RenderType,
    url: str,
    delay: int = Query(0, ge=0),
    wait_for_text: Optional[str] = None,
    target: Optional[str] = None,
    timeout: Optional[int] = Query(None, ge=0),
    page_size: str = "A4",
    landscape: bool = False,
    remove_print_media: bool = False,
    quality: int = Query(80, ge=1, le=100),
    browser_width: Optional[int] = Query(None, gt=0),
    browser_height: Optional[int] = Query(None, gt=0),
    service: RenderService = Depends(get_render_service),
):
    try:
        body = RenderRequest(
            url=url,
            delay=delay,
            wait_for_text=_text_option(wait_for_text),
            target=target,
            timeout=timeout,
            page_size=page_size,
            landscape=landscape,
            remove_print_media=remove_print_media,
            quality=quality,
            browser_width=browser_width,
            browser_height=browser_height,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.errors(include_url=False, include_context=False))
    return await _render(render_type, body, service)
