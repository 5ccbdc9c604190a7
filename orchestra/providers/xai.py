"""xAI Grok provider using openai SDK (OpenAI-compatible API)."""

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from orchestra.providers.base import ProviderError
from orchestra.providers.openai_provider import OpenAIProvider


class XAIProvider(OpenAIProvider):
    """xAI Grok provider via OpenAI-compatible API."""

    _label = "xAI"

    def _make_client(self, api_key: str, config: ModelConfig) -> AsyncOpenAI:
        if not config.base_url:
            raise ProviderError(config.name, "base_url is required for xAI provider")
        return AsyncOpenAI(api_key=api_key, base_url=config.base_url)
