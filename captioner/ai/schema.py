"""Pydantic data contracts for vision providers: provider names, analysis parameters, and results."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MAX_DESCRIPTION_CHARACTERS = 200
DEFAULT_KEYWORD_COUNT = 30
KEYWORD_COUNT_CHOICES = (5, 10, 20, 30, 50)


class ProviderName(str, Enum):
    """Tagged union of supported vision providers."""

    gemini = "gemini"
    openai = "openai"
    mock = "mock"


class ProjectSettings(BaseModel):
    """
    Per-project analysis parameters supplied to every provider call.

    Serialised with the camelCase keys of the stored document
    (maxDescriptionCharacters, keywordCount).
    """

    model_config = ConfigDict(populate_by_name=True)

    max_description_characters: int = Field(
        default=DEFAULT_MAX_DESCRIPTION_CHARACTERS, gt=0, alias="maxDescriptionCharacters"
    )
    keyword_count: int = Field(default=DEFAULT_KEYWORD_COUNT, gt=0, alias="keywordCount")


class AnalysisResult(BaseModel):
    """Result of running a vision provider on an image."""

    description: str = ""
    keywords: list[str] = Field(default_factory=list)
