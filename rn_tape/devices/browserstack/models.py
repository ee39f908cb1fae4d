"""Pydantic models for BrowserStack API responses."""

from pydantic import BaseModel


class UploadResponse(BaseModel):
    """Response from the app upload API."""

    app_url: str | None = None
    custom_id: str | None = None
    shareable_id: str | None = None
    error: str | None = None
