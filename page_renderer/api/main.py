"""
Main application file for the Page Renderer API.

This file initializes the FastAPI application, sets up logging, starts the
render service (browser) for the lifetime of the app, registers global
exception handlers and includes the API routers.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from page_renderer import __version__
from page_renderer.api.routes import render_router
from page_renderer.api.service import RenderService
from page_renderer.core.config import RenderSettings, config_manager
from page_renderer.core.exceptions import PageRendererError, RendererError
from page_renderer.core.logger import get_logger, setup_logging

# --- Logging Setup ---
setup_logging(config_manager)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Launches the browser on startup and closes it on shutdown.

    A browser that fails to launch leaves `app.state.render_service` unset, so
    render routes answer 503 instead of the app failing to start.
    """
    service = RenderService(RenderSettings.from_config(config_manager))
    try:
        await service.start()
        app.state.render_service = service
        logger.info("Render service started.")
    except RendererError as e:
        logger.error(f"Render service unavailable: {e.message}")
        app.state.render_service = None
    yield
    if app.state.render_service is not None:
        await service.stop()
        logger.info("Render service stopped.")


# --- FastAPI Application Initialization ---
app = FastAPI(
    title="Page Renderer API",
    description="Converts web pages to PDF documents or PNG/JPEG images once they are ready.",
    version=__version__,
    lifespan=lifespan,
)

# --- Global Exception Handlers ---

@app.exception_handler(PageRendererError)
async def page_renderer_exception_handler(request: Request, exc: PageRendererError):
    """
    Handles custom exceptions derived from `PageRendererError` that escaped the routes.

    Returns:
        JSONResponse: A standardized JSON error response with HTTP 500.
    """
    logger.error(
        f"PageRendererError caught: {exc.__class__.__name__} - {exc.message} "
        f"for request: {request.method} {request.url}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"An application error occurred: {exc.message}"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Returns HTTP 422 with the validation failures."""
    logger.warning(f"RequestValidationError caught for: {request.method} {request.url}. Errors: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Request validation failed", "errors": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all returning HTTP 500 without exposing the exception text."""
    logger.critical(
        f"Unhandled exception caught: {exc.__class__.__name__} - {exc} "
        f"for request: {request.method} {request.url}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected server error occurred."},
    )


# --- API Router Inclusion ---
app.include_router(
    render_router,
    prefix="/api/v1/render",
    tags=["Render Operations"],
)


# --- Root Endpoint ---
@app.get("/", tags=["General"], summary="API Root Endpoint")
async def read_root():
    """Basic service information; usable as a health check."""
    return {
        "message": "Page Renderer API",
        "version": app.version,
        "renderer_ready": getattr(app.state, "render_service", None) is not None,
        "documentation_url": app.docs_url,
    }


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Uvicorn server directly for local development...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
