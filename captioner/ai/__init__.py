"""AI module: data contracts and vision provider abstraction."""

from captioner.ai.schema import AnalysisResult, ProjectSettings, ProviderName
from captioner.ai.vision_base import BaseVisionProvider, MockVisionProvider
from captioner.ai.factory import get_vision_provider

__all__ = [
    "AnalysisResult",
    "BaseVisionProvider",
    "MockVisionProvider",
    "ProjectSettings",
    "ProviderName",
    "get_vision_provider",
]
