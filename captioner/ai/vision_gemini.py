"""Vision provider for the Gemini generateContent REST API.

The API key travels as the `key` query parameter. The base URL defaults to
gemini-1.5-flash and can be changed with `gemini_base_url` in captioner.yml.
"""

import requests

from captioner.ai.vision_base import DEFAULT_THUMBNAIL_EDGE, BaseVisionProvider
from captioner.core.config import GEMINI_BASE_URL
from captioner.core.errors import ProviderError


def _extract_text(data: object) -> str:
    """Return candidates[0].content.parts[0].text. Raises ProviderError when the shape is wrong."""
    try:
        text = data["candidates"][0]["content"]["parts"][0].get("text")  # type: ignore[index]
    except (KeyError, IndexError, TypeError, AttributeError):
        text = None
    if not isinstance(text, str):
        raise ProviderError("Gemini API returned no candidates[0].content.parts[0].text")
    return text.strip()


class GeminiProvider(BaseVisionProvider):
    """Calls Gemini with one combined prompt and an inline base64 image."""

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = 120.0,
        thumbnail_edge: int = DEFAULT_THUMBNAIL_EDGE,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(thumbnail_edge)
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._session = session or requests.Session()

    def _redact(self, text: str) -> str:
        return text.replace(self._api_key, "***") if self._api_key else text

    def close(self) -> None:
        self._session.close()

    def _post(self, json_payload: dict) -> dict:
        """POST JSON to the generateContent endpoint and return the parsed response."""
        try:
            resp = self._session.post(
                self._base_url,
                params={"key": self._api_key},
                json=json_payload,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            # the request URL carries the key: redact it and suppress the chained cause
            raise ProviderError(f"Gemini API call failed: {self._redact(str(e))}") from None
        if not resp.ok:
            raise ProviderError(f"Gemini API call failed: {resp.status_code} {resp.reason}")
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(f"Gemini API returned invalid JSON: {e}") from e

    def _complete(self, prompt: str, image_b64: str, mime_type: str) -> str:
        payload = {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {"inline_data": {"mime_type": mime_type, "data": image_b64}},
                    ]
                }
            ]
        }
        return _extract_text(self._post(payload))
