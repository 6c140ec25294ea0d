"""Pydantic documents for projects, images, and app settings (serialised as JSON in the key/value store)."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from captioner.ai.schema import AnalysisResult, ProjectSettings, ProviderName


class ImageStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    error = "error"


class ImageItem(BaseModel):
    """
    One uploaded image and its analysis state.

    The item exclusively owns preview_path; use ProjectManager.delete_image so the
    preview is released before the entry is removed.
    """

    model_config = ConfigDict(populate_by_name=True)

    source_path: str = Field(alias="sourcePath")
    filename: str
    mime_type: str = Field(default="image/jpeg", alias="mimeType")
    size: int = 0
    preview_path: str | None = Field(default=None, alias="previewPath")
    status: ImageStatus = ImageStatus.pending
    output: AnalysisResult | None = None
    error: str | None = None


class Project(BaseModel):
    """A named collection of images and their analysis state."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="createdAt",
    )
    images: list[ImageItem] = Field(default_factory=list)

    def snapshot(self) -> "Project":
        """Return a deep copy safe to hand to observers."""
        return self.model_copy(deep=True)


class APIKeys(BaseModel):
    gemini: str | None = None
    openai: str | None = None


class AppSettings(BaseModel):
    """Active provider and per-provider API keys."""

    model_config = ConfigDict(populate_by_name=True)

    api_provider: ProviderName = Field(default=ProviderName.gemini, alias="apiProvider")
    api_keys: APIKeys = Field(default_factory=APIKeys, alias="apiKeys")

    def active_api_key(self) -> str | None:
        """Return the key for the active provider. The mock provider needs none."""
        if self.api_provider == ProviderName.mock:
            return "mock"
        return getattr(self.api_keys, self.api_provider.value)


__all__ = [
    "APIKeys",
    "AppSettings",
    "ImageItem",
    "ImageStatus",
    "Project",
    "ProjectSettings",
]
