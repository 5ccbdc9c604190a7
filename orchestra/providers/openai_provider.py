"""OpenAI provider using openai SDK with native async."""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from orchestra.models import GenInput, GenResult
from orchestra.providers.base import ConfiguredProvider, ProviderAPIError, ProviderError

logger = logging.getLogger(__name__)


def chat_messages(input: GenInput) -> list[dict[str, str]]:
    """Chat-completions message list shared by OpenAI-compatible providers."""
    messages: list[dict[str, str]] = []
    if input.system:
        messages.append({"role": "system", "content": input.system})
    messages.append({"role": "user", "content": input.prompt})
    return messages


class OpenAIProvider(ConfiguredProvider):
    """OpenAI provider via openai SDK."""

    _label = "OpenAI"

    def __init__(self, config: ModelConfig) -> None:
        super().__init__(config)
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = self._make_client(api_key, config)

    def _make_client(self, api_key: str, config: ModelConfig) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key)

    async def generate(self, input: GenInput) -> GenResult:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=chat_messages(input),
                    max_tokens=self._max_tokens(input),
                    temperature=self._temperature(input),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise self._timeout_error() from exc
        except Exception as exc:
            raise ProviderAPIError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderAPIError(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("%s: %.2fs, %s tokens", self._label, latency, token_count)

        return self._result(choice.message.content, latency, token_count)
