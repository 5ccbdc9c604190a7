"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from orchestra.models import GenInput, GenResult
from orchestra.providers.base import ConfiguredProvider, ProviderAPIError, ProviderError

logger = logging.getLogger(__name__)


class GeminiProvider(ConfiguredProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__(config)
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    async def generate(self, input: GenInput) -> GenResult:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=input.prompt,
                    config=genai_types.GenerateContentConfig(
                        system_instruction=input.system,
                        max_output_tokens=self._max_tokens(input),
                        temperature=self._temperature(input),
                    ),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise self._timeout_error() from exc
        except Exception as exc:
            raise ProviderAPIError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not response.text:
            raise ProviderAPIError(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini: %.2fs, %s tokens", latency, token_count)

        return self._result(response.text, latency, token_count)
