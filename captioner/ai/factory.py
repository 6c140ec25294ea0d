"""Factory for vision providers. Adapters are imported lazily so requests is only loaded when needed."""

from captioner.ai.schema import ProviderName
from captioner.ai.vision_base import BaseVisionProvider
from captioner.core.config import get_config


def get_vision_provider(provider_name: ProviderName | str, api_key: str) -> BaseVisionProvider:
    """Return a vision provider by name, configured from get_config()."""
    try:
        provider = ProviderName(provider_name)
    except ValueError:
        raise ValueError(f"Unknown vision provider: {provider_name}") from None

    if provider == ProviderName.mock:
        from captioner.ai.vision_base import MockVisionProvider

        return MockVisionProvider()

    cfg = get_config()
    if provider == ProviderName.gemini:
        from captioner.ai.vision_gemini import GeminiProvider

        return GeminiProvider(
            api_key,
            base_url=cfg.gemini_base_url,
            timeout=cfg.request_timeout_seconds,
            thumbnail_edge=cfg.thumbnail_size,
        )
    from captioner.ai.vision_openai import OpenAIProvider

    return OpenAIProvider(
        api_key,
        base_url=cfg.openai_base_url,
        model=cfg.openai_model,
        timeout=cfg.request_timeout_seconds,
        thumbnail_edge=cfg.thumbnail_size,
    )
