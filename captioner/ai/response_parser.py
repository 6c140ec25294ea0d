"""Prompt template and response normalisation shared by all vision providers."""

import re

from captioner.ai.schema import AnalysisResult, ProjectSettings

PROMPT_TEMPLATE = (
    "Describe the image in detail, suitable for a stock image description, and keep it under "
    "{max_chars} characters. Provide {keyword_count} single-word keywords separated by commas."
)

_NUMBERING = re.compile(r"\d+\.\s*")
_KEYWORDS_PREFIX = re.compile(r"keywords?:?\s*", re.IGNORECASE)
_PARENTHETICAL = re.compile(r"\([^)]*\)")
_SEPARATORS = re.compile(r"[,\n]+")


def build_prompt(settings: ProjectSettings) -> str:
    """Return the combined description + keywords prompt for these settings."""
    return PROMPT_TEMPLATE.format(
        max_chars=settings.max_description_characters,
        keyword_count=settings.keyword_count,
    )


def parse_keywords(text: str) -> list[str]:
    """
    Parse free-form keyword text.

    Strips list numbering, a "keyword(s):" prefix and parenthetical notes, splits on
    commas/newlines, then trims, lower-cases and de-duplicates (first occurrence wins).
    """
    clean = _NUMBERING.sub("", text)
    clean = _KEYWORDS_PREFIX.sub("", clean)
    clean = _PARENTHETICAL.sub("", clean)
    parts = (k.strip().lower() for k in _SEPARATORS.split(clean))
    return list(dict.fromkeys(k for k in parts if k))


def fit_keywords(keywords: list[str], count: int) -> list[str]:
    """Pad with empty strings or truncate so exactly count keywords remain."""
    return (keywords + [""] * count)[:count]


def parse_response_text(text: str, settings: ProjectSettings) -> AnalysisResult:
    """
    Split a combined response: first line is the description (truncated to the
    character limit), remaining lines are keyword source text.
    """
    lines = text.strip().split("\n")
    description = lines[0].strip()[: settings.max_description_characters]
    keywords: list[str] = []
    if len(lines) > 1:
        keywords = parse_keywords("\n".join(lines[1:]))
    return AnalysisResult(
        description=description,
        keywords=fit_keywords(keywords, settings.keyword_count),
    )
