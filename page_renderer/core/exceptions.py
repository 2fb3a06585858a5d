"""
Custom exception classes for the Page Renderer service.
"""
from enum import Enum
from typing import Any, Optional


class PageRendererError(Exception):
    """
    Base class for all custom exceptions in the Page Renderer service.

    Attributes:
        message (str): A human-readable description of the error.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


# --- Configuration Related Exceptions ---
class ConfigurationError(PageRendererError):
    """
    Raised for errors related to application configuration, such as invalid
    values for timeouts or window dimensions.
    """
    def __init__(self, message: str):
        super().__init__(message)


# --- Component Related Exceptions ---
class ComponentError(PageRendererError):
    """
    A general base class for errors originating from within a specific component
    (e.g., PageHost, Readiness, Capture).

    Attributes:
        component_name (str): Name of the component where the error originated.
    """
    def __init__(self, component_name: str, message: str):
        full_message = f"Error in component '{component_name}': {message}"
        super().__init__(full_message)
        self.component_name = component_name


class RendererError(ComponentError):
    """Raised when the browser backing a page host cannot be started or used."""
    def __init__(self, message: str):
        super().__init__(component_name="Renderer", message=message)


# --- Render Job Exceptions ---
class ErrorKind(str, Enum):
    """Terminal failure kinds a render job can report."""
    LOAD_FAILED = "load_failed"
    CRASHED = "crashed"
    TIMED_OUT = "timed_out"
    READINESS_TIMEOUT = "readiness_timeout"
    CAPTURE_FAILED = "capture_failed"


class RenderJobError(ComponentError):
    """
    Base class for failures delivered through a job's completion callback.

    Attributes:
        kind (ErrorKind): The failure kind.
        url (str): The URL of the job that failed.
        context (Any): The originating page event or exception, if any.
    """
    kind: ErrorKind = ErrorKind.LOAD_FAILED
    component: str = "JobCoordinator"

    def __init__(self, url: str, message: str, context: Optional[Any] = None):
        super().__init__(component_name=self.component, message=f"{message} (url: {url})")
        self.url = url
        self.context = context


class LoadFailedError(RenderJobError):
    """The page host reported that the main frame failed to load."""
    kind = ErrorKind.LOAD_FAILED


class CrashedError(RenderJobError):
    """The page host's renderer process crashed."""
    kind = ErrorKind.CRASHED


class TimedOutError(RenderJobError):
    """The page never signaled load completion before the deadline."""
    kind = ErrorKind.TIMED_OUT


class ReadinessTimeoutError(RenderJobError):
    """The readiness strategy exhausted its budget before the page became ready."""
    kind = ErrorKind.READINESS_TIMEOUT
    component = "Readiness"


class CaptureFailedError(RenderJobError):
    """The page host's capture or PDF export call failed."""
    kind = ErrorKind.CAPTURE_FAILED
    component = "Capture"
