"""Data model: SQLModel key/value table and the pydantic documents stored in it."""

from captioner.models.entities import KeyValue
from captioner.models.project import (
    APIKeys,
    AppSettings,
    ImageItem,
    ImageStatus,
    Project,
    ProjectSettings,
)

__all__ = [
    "APIKeys",
    "AppSettings",
    "ImageItem",
    "ImageStatus",
    "KeyValue",
    "Project",
    "ProjectSettings",
]
