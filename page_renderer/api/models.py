from typing import Optional, Union

from pydantic import BaseModel, Field, HttpUrl

from page_renderer.models.job import Rect

# --- Request Models ---

class RenderRequest(BaseModel):
    """
    Request model for the render endpoints. The artifact type comes from the
    route; omitted timeout and browser size fall back to `RenderSettings`.
    """
    url: HttpUrl

    delay: int = Field(default=0, ge=0)
    wait_for_text: Union[str, bool] = False
    target: Optional[str] = None
    timeout: Optional[int] = Field(default=None, ge=0)

    page_size: str = "A4"
    landscape: bool = False
    print_background: bool = True
    margins_type: int = Field(default=0, ge=0, le=2)
    remove_print_media: bool = False

    quality: int = Field(default=80, ge=1, le=100)
    clipping_rect: Optional[Rect] = None
    browser_width: Optional[int] = Field(default=None, gt=0)
    browser_height: Optional[int] = Field(default=None, gt=0)

    def job_options(self) -> dict:
        """Keyword arguments for `JobCoordinator.build_job`, without unset defaults."""
        options = self.model_dump(exclude={"url", "timeout"}, exclude_none=True)
        if self.timeout is not None:
            options["timeout_seconds"] = self.timeout
        return options


# --- Response Models ---

class ErrorResponse(BaseModel):
    """Body returned when a render job fails."""
    detail: str
    error: Optional[str] = None
    url: Optional[str] = None
