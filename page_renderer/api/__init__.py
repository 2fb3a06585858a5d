"""
API sub-package for the Page Renderer service.

This package contains the FastAPI application, its routes, request models
and the render service that backs them. Import `api.main` or the routers
from `api.routes` directly.
"""

__all__ = []
