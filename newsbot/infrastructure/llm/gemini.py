from typing import Optional

import httpx
from loguru import logger

from ...config_loader import GeminiConfig
from ...domain.digest.models import GeneratedText
from ...domain.ports import TextGenerator
from ...errors import ConfigError, TextGenerationError


class GeminiTextGenerator(TextGenerator):
    """Google Gemini ``generateContent``，单次调用，不重试"""

    def __init__(self, config: GeminiConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    async def generate(self, prompt: str, model: str) -> GeneratedText:
        if not self.config.api_key:
            raise ConfigError("GEMINI_API_KEY is required to generate digests")

        url = f"{self.config.api_base.rstrip('/')}/models/{model}:generateContent"
        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

        logger.info(f"[Gemini] generateContent model={model} prompt_chars={len(prompt)}")
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout, transport=self._transport) as client:
                resp = await client.post(
                    url,
                    json=payload,
                    headers={"x-goog-api-key": self.config.api_key},
                )
        except httpx.HTTPError as exc:
            raise TextGenerationError(f"Gemini request failed: {exc}") from exc

        if resp.status_code < 200 or resp.status_code >= 300:
            raise TextGenerationError(f"Gemini returned HTTP {resp.status_code}: {resp.text[:300]}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise TextGenerationError("Gemini returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise TextGenerationError("Gemini returned an unexpected payload")

        parts = []
        for candidate in data.get("candidates") or []:
            content = candidate.get("content") or {}
            for part in content.get("parts") or []:
                text = part.get("text")
                if isinstance(text, str):
                    parts.append(text)
            if parts:
                break

        text = "".join(parts)
        if not text.strip():
            raise TextGenerationError("Gemini response contained no text")

        logger.info(f"[Gemini] received {len(text)} chars")
        return GeneratedText(text=text, model=data.get("modelVersion") or model)
