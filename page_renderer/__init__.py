"""
Page Renderer: converts web pages to PDF documents or PNG/JPEG images once
they reach a well-defined ready state.
"""

__version__ = "0.1.0"
