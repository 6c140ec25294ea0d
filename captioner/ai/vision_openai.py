"""Vision provider for the OpenAI chat completions REST API (bearer-token auth)."""

import requests

from captioner.ai.vision_base import DEFAULT_THUMBNAIL_EDGE, BaseVisionProvider
from captioner.core.config import OPENAI_BASE_URL, OPENAI_MODEL
from captioner.core.errors import ProviderError

MAX_TOKENS = 500


def _extract_text(data: object) -> str:
    """Return choices[0].message.content. Raises ProviderError when the shape is wrong."""
    try:
        text = data["choices"][0]["message"].get("content")  # type: ignore[index]
    except (KeyError, IndexError, TypeError, AttributeError):
        text = None
    if not isinstance(text, str):
        raise ProviderError("OpenAI API returned no choices[0].message.content")
    return text.strip()


class OpenAIProvider(BaseVisionProvider):
    """Calls a chat completions model with the prompt and a data-URL image part."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = OPENAI_BASE_URL,
        model: str = OPENAI_MODEL,
        timeout: float = 120.0,
        thumbnail_edge: int = DEFAULT_THUMBNAIL_EDGE,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(thumbnail_edge)
        self._api_key = api_key
        self._base_url = base_url
        self._model = model
        self._timeout = timeout
        self._session = session or requests.Session()

    def _redact(self, text: str) -> str:
        return text.replace(self._api_key, "***") if self._api_key else text

    def close(self) -> None:
        self._session.close()

    def _post(self, json_payload: dict) -> dict:
        try:
            resp = self._session.post(
                self._base_url,
                json=json_payload,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self._api_key}",
                },
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(f"OpenAI API call failed: {self._redact(str(e))}") from None
        if not resp.ok:
            raise ProviderError(f"OpenAI API call failed: {resp.status_code} {resp.reason}")
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(f"OpenAI API returned invalid JSON: {e}") from e

    def _complete(self, prompt: str, image_b64: str, mime_type: str) -> str:
        payload = {
            "model": self._model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{mime_type};base64,{image_b64}"},
                        },
                    ],
                }
            ],
            "max_tokens": MAX_TOKENS,
        }
        return _extract_text(self._post(payload))
