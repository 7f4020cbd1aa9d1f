from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import requests

from news_tldr.core.config import (
    GEMINI_API_BASE,
    GEMINI_MAX_OUTPUT_TOKENS,
    GEMINI_MODEL,
    GEMINI_TIMEOUT_SEC,
    GEMINI_TOP_P,
    get_gemini_api_key,
)
from news_tldr.core.constants import TERSE_STYLES
from news_tldr.core.errors import ConfigurationError, GenerationError

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "GEMINI_API_KEY missing. Set it in the environment or a .env file."


def _extract_gemini_text(payload: dict[str, Any]) -> str:
    # Gemini REST: candidates[0].content.parts[*].text
    try:
        parts = payload["candidates"][0]["content"]["parts"]
        return "".join(p.get("text", "") for p in parts).strip()
    except Exception:
        return ""


def temperature_for(style: str) -> float:
    return 0.3 if style in TERSE_STYLES else 0.5


class GeminiClient:
    """Single-shot text generation over the Gemini REST API; no retries here."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: str = GEMINI_MODEL,
        api_base: str = GEMINI_API_BASE,
        timeout_sec: float = GEMINI_TIMEOUT_SEC,
        max_output_tokens: int = GEMINI_MAX_OUTPUT_TOKENS,
        top_p: float = GEMINI_TOP_P,
        post: Callable[..., Any] = requests.post,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self._api_base = api_base.rstrip("/")
        self._timeout_sec = timeout_sec
        self._max_output_tokens = max_output_tokens
        self._top_p = top_p
        self._post = post

    @property
    def api_key(self) -> str:
        return self._api_key if self._api_key is not None else get_gemini_api_key()

    @property
    def has_key(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        if not self.has_key:
            raise ConfigurationError(MISSING_KEY_MESSAGE)

    def generate(self, prompt: str, style: str) -> str:
        self.ensure_configured()
        url = f"{self._api_base}/models/{self.model}:generateContent"
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature_for(style),
                "topP": self._top_p,
                "maxOutputTokens": self._max_output_tokens,
            },
        }
        try:
            resp = self._post(
                url,
                headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key},
                json=body,
                timeout=self._timeout_sec,
            )
        except requests.exceptions.Timeout as exc:
            raise GenerationError(f"Gemini request timed out: {exc}") from exc
        except requests.exceptions.RequestException as exc:
            raise GenerationError(f"Gemini request failed: {exc}") from exc

        if resp.status_code != 200:
            # Body is kept whole: 429 responses carry the retry delay hint.
            raise GenerationError(f"{resp.status_code} {resp.text}", status=resp.status_code)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise GenerationError(f"Gemini returned non-JSON body: {exc}") from exc
        text = _extract_gemini_text(payload)
        if not text:
            raise GenerationError("Empty response from LLM")
        return text
