"""Anthropic Claude provider using anthropic SDK with native async."""

import asyncio
import logging
import os
import time
from typing import Any

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from orchestra.models import GenInput, GenResult
from orchestra.providers.base import ConfiguredProvider, ProviderAPIError, ProviderError

logger = logging.getLogger(__name__)


class AnthropicProvider(ConfiguredProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__(config)
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    async def generate(self, input: GenInput) -> GenResult:
        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "max_tokens": self._max_tokens(input),
            "temperature": self._temperature(input),
            "messages": [{"role": "user", "content": input.prompt}],
        }
        if input.system:
            kwargs["system"] = input.system

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(**kwargs),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise self._timeout_error() from exc
        except Exception as exc:
            raise ProviderAPIError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not response.content:
            raise ProviderAPIError(self._config.name, "Empty response content")

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise ProviderAPIError(self._config.name, "No text blocks in response")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.info("Anthropic: %.2fs, %s tokens", latency, token_count)

        return self._result("\n".join(text_blocks), latency, token_count)
