"""
API Routes sub-package for the Page Renderer service.

The router from `render_routes.py` is re-exported here for inclusion
in the main FastAPI application setup (`api/main.py`).
"""

from .render_routes import router as render_router

__all__ = [
    "render_router",
]
