"""
Capture component for the Page Renderer service.

Turns a ready page into PDF or image bytes.
"""
from .dispatcher import CaptureDispatcher
from .image import ImageCapture
from .pdf import PdfCapture

__all__ = [
    "CaptureDispatcher",
    "ImageCapture",
    "PdfCapture",
]
