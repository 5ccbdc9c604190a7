"""Provider registry: provider id -> AIProvider, built once at startup."""

import logging
from collections.abc import Iterable, Iterator

from config.config_loader import AppConfig
from orchestra.providers.anthropic import AnthropicProvider
from orchestra.providers.base import AIProvider
from orchestra.providers.deepseek import DeepSeekProvider
from orchestra.providers.gemini import GeminiProvider
from orchestra.providers.openai_provider import OpenAIProvider
from orchestra.providers.xai import XAIProvider

logger = logging.getLogger(__name__)

# Keyed by the ``sdk`` field of a settings.yaml model entry.
PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "google-genai": GeminiProvider,
    "xai": XAIProvider,
    "deepseek": DeepSeekProvider,
}


class ProviderRegistry:
    """Static lookup table of adapters.

    Lookups never filter or raise on unknown ids beyond ``KeyError`` from
    ``__getitem__``; dropping unknown ids is the orchestrator's job.
    """

    def __init__(self, providers: Iterable[AIProvider] = ()) -> None:
        self._providers: dict[str, AIProvider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: AIProvider) -> None:
        name = provider.name()
        if name in self._providers:
            logger.warning("Provider '%s' registered twice; replacing", name)
        self._providers[name] = provider

    def get(self, provider_id: str) -> AIProvider | None:
        return self._providers.get(provider_id)

    def ids(self) -> list[str]:
        return list(self._providers)

    def as_dict(self) -> dict[str, AIProvider]:
        return dict(self._providers)

    def __getitem__(self, provider_id: str) -> AIProvider:
        return self._providers[provider_id]

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers

    def __iter__(self) -> Iterator[str]:
        return iter(self._providers)

    def __len__(self) -> int:
        return len(self._providers)


def build_registry(config: AppConfig) -> ProviderRegistry:
    """Instantiate every available provider. Failures are logged and skipped."""
    registry = ProviderRegistry()
    for name in sorted(config.available_providers):
        model_cfg = config.models[name]
        provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
        if provider_cls is None:
            logger.warning("Provider '%s' uses unknown sdk '%s', skipping", name, model_cfg.sdk)
            continue
        try:
            registry.register(provider_cls(model_cfg))
        except Exception as exc:
            logger.warning("Failed to instantiate provider '%s': %s", name, exc)
    return registry
