"""Tests for the vision provider factory (get_vision_provider)."""

import pytest

from captioner.ai.factory import get_vision_provider
from captioner.ai.schema import ProviderName
from captioner.ai.vision_base import BaseVisionProvider, MockVisionProvider
from captioner.core.config import get_config


@pytest.mark.fast
def test_get_vision_provider_mock_returns_mock_provider():
    provider = get_vision_provider("mock", "ignored")
    assert isinstance(provider, MockVisionProvider)
    assert isinstance(provider, BaseVisionProvider)
    assert provider.name == "mock"


@pytest.mark.fast
def test_get_vision_provider_gemini_uses_config(tmp_path):
    cfg_path = tmp_path / "captioner.yml"
    cfg_path.write_text("gemini_base_url: https://gemini.test/v1\nrequest_timeout_seconds: 7\nthumbnail_size: 256\n")
    get_config(cfg_path)
    from captioner.ai.vision_gemini import GeminiProvider

    provider = get_vision_provider(ProviderName.gemini, "g-key")

    assert isinstance(provider, GeminiProvider)
    assert provider.name == "gemini"
    assert provider._base_url == "https://gemini.test/v1"
    assert provider._timeout == 7
    assert provider._thumbnail_edge == 256
    assert provider._api_key == "g-key"


@pytest.mark.fast
def test_get_vision_provider_openai_uses_configured_model(tmp_path):
    cfg_path = tmp_path / "captioner.yml"
    cfg_path.write_text("openai_model: gpt-4o-mini\n")
    get_config(cfg_path)
    from captioner.ai.vision_openai import OpenAIProvider

    provider = get_vision_provider("openai", "o-key")

    assert isinstance(provider, OpenAIProvider)
    assert provider._model == "gpt-4o-mini"


@pytest.mark.fast
def test_get_vision_provider_unknown_raises():
    with pytest.raises(ValueError, match=r"Unknown vision provider: unknown"):
        get_vision_provider("unknown", "key")
