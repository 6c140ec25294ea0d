"""Abstract base and mock implementation for vision providers."""

import base64
import logging
from abc import ABC, abstractmethod

from captioner.ai.response_parser import build_prompt, parse_response_text
from captioner.ai.schema import AnalysisResult, ProjectSettings
from captioner.core.errors import ProviderError
from captioner.core.storage import make_thumbnail

_log = logging.getLogger(__name__)

DEFAULT_THUMBNAIL_EDGE = 400


class BaseVisionProvider(ABC):
    """
    Abstract base for image captioning providers.

    analyze() downsizes the image, builds the combined prompt, calls the service through
    _complete(), and normalises the reply. Any failure is raised as ProviderError.
    """

    name: str = "base"

    def __init__(self, thumbnail_edge: int = DEFAULT_THUMBNAIL_EDGE) -> None:
        self._thumbnail_edge = thumbnail_edge

    def _encode_image(self, image_bytes: bytes) -> tuple[str, str]:
        """Downscale to a JPEG thumbnail; return (base64 data, mime type)."""
        thumb, mime_type = make_thumbnail(image_bytes, self._thumbnail_edge)
        return base64.b64encode(thumb).decode(), mime_type

    def close(self) -> None:
        """Release transport resources. The provider is not used after this."""

    @abstractmethod
    def _complete(self, prompt: str, image_b64: str, mime_type: str) -> str:
        """Send prompt + image to the service and return the raw reply text."""
        ...

    def analyze(self, image_bytes: bytes, mime_type: str, settings: ProjectSettings) -> AnalysisResult:
        """Analyze one image; return description and exactly settings.keyword_count keywords."""
        try:
            image_b64, upload_mime = self._encode_image(image_bytes)
        except (OSError, ValueError) as e:
            raise ProviderError(f"Failed to process image ({mime_type}): {e}") from e
        prompt = build_prompt(settings)
        text = self._complete(prompt, image_b64, upload_mime)
        _log.debug("%s reply: %r", self.name, text[:200])
        return parse_response_text(text, settings)


class MockVisionProvider(BaseVisionProvider):
    """Offline provider for tests and dry runs. Does not decode the image."""

    name = "mock"

    def _encode_image(self, image_bytes: bytes) -> tuple[str, str]:
        return base64.b64encode(image_bytes[:64]).decode(), "image/jpeg"

    def _complete(self, prompt: str, image_b64: str, mime_type: str) -> str:
        return "A placeholder description.\nKeywords: mock, test, placeholder"
