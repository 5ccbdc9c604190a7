"""DeepSeek provider using openai SDK (OpenAI-compatible API)."""

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from orchestra.providers.openai_provider import OpenAIProvider

_DEFAULT_BASE_URL = "https://api.deepseek.com"


class DeepSeekProvider(OpenAIProvider):
    """DeepSeek chat/coder models via OpenAI-compatible API."""

    _label = "DeepSeek"

    def _make_client(self, api_key: str, config: ModelConfig) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key, base_url=config.base_url or _DEFAULT_BASE_URL)
