"""Tests for prompt building and provider reply parsing."""

import pytest

from captioner.ai.response_parser import build_prompt, fit_keywords, parse_keywords, parse_response_text
from captioner.ai.schema import ProjectSettings

pytestmark = [pytest.mark.fast]


def test_parse_keywords_strips_numbering_prefix_and_parentheticals():
    assert parse_keywords("1. Cat (animal)\nkeywords: Cat, Dog, dog") == ["cat", "dog"]


def test_parse_keywords_dedupes_preserving_first_seen_order():
    assert parse_keywords("Beach, sunset, beach, Ocean, SUNSET") == ["beach", "sunset", "ocean"]


def test_parse_keywords_handles_numbered_lines_and_blank_entries():
    text = "Keyword: \n1. mountain\n2. snow (white)\n\n3. , sky"
    assert parse_keywords(text) == ["mountain", "snow", "sky"]


def test_parse_keywords_empty_text_returns_empty_list():
    assert parse_keywords("") == []


@pytest.mark.parametrize(
    "keywords,count,expected",
    [
        (["a", "b"], 4, ["a", "b", "", ""]),
        (["a", "b", "c"], 2, ["a", "b"]),
        (["a"], 1, ["a"]),
    ],
)
def test_fit_keywords_pads_or_truncates(keywords, count, expected):
    assert fit_keywords(keywords, count) == expected


def test_build_prompt_includes_limits():
    prompt = build_prompt(ProjectSettings(max_description_characters=120, keyword_count=10))
    assert "keep it under 120 characters" in prompt
    assert "Provide 10 single-word keywords separated by commas." in prompt
    assert prompt.startswith("Describe the image in detail, suitable for a stock image description")


def test_parse_response_text_splits_description_and_keywords():
    settings = ProjectSettings(max_description_characters=200, keyword_count=3)
    result = parse_response_text("  A red barn in a field.\nKeywords: barn, field, farm, rural  ", settings)

    assert result.description == "A red barn in a field."
    assert result.keywords == ["barn", "field", "farm"]


def test_parse_response_text_truncates_description():
    settings = ProjectSettings(max_description_characters=5, keyword_count=2)
    result = parse_response_text("Abcdefghij\nx, y", settings)

    assert result.description == "Abcde"
    assert result.keywords == ["x", "y"]


def test_parse_response_text_single_line_pads_keywords():
    settings = ProjectSettings(max_description_characters=100, keyword_count=3)
    result = parse_response_text("Only a description", settings)

    assert result.description == "Only a description"
    assert result.keywords == ["", "", ""]


def test_project_settings_accepts_stored_camel_case_keys():
    settings = ProjectSettings.model_validate({"maxDescriptionCharacters": 80, "keywordCount": 20})
    assert settings.max_description_characters == 80
    assert settings.keyword_count == 20
    assert settings.model_dump(by_alias=True) == {"maxDescriptionCharacters": 80, "keywordCount": 20}


def test_project_settings_rejects_non_positive_values():
    with pytest.raises(ValueError):
        ProjectSettings(keyword_count=0)
