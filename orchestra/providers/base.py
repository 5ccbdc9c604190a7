"""Abstract base for all AI model providers."""

from abc import ABC, abstractmethod

from config.config_loader import ModelConfig
from orchestra.errors import ProviderAPIError, ProviderError, ProviderTimeoutError
from orchestra.models import STATUS_OK, GenInput, GenResult

__all__ = [
    "AIProvider",
    "ConfiguredProvider",
    "ProviderAPIError",
    "ProviderError",
    "ProviderTimeoutError",
]


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the registry id (e.g. 'openai', 'anthropic')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(self, input: GenInput) -> GenResult:
        """Generate a response for the given input.

        Args:
            input: Prompt, optional system prompt and sampling overrides.

        Returns:
            GenResult with status "ok" and a nonzero response_time_ms.

        Raises:
            ProviderError: On API failure, timeout, or invalid response.
        """
        ...

    def cost_for(self, tokens_used: int) -> float:
        """USD estimate for a call; providers without pricing report 0."""
        return 0.0


class ConfiguredProvider(AIProvider):
    """Shared plumbing for SDK-backed providers driven by a ModelConfig."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def cost_for(self, tokens_used: int) -> float:
        return tokens_used / 1000 * self._config.cost_per_1k_tokens

    def _temperature(self, input: GenInput) -> float:
        return input.temperature if input.temperature is not None else self._config.temperature

    def _max_tokens(self, input: GenInput) -> int:
        return input.max_tokens or self._config.max_tokens

    def _timeout_error(self) -> ProviderTimeoutError:
        return ProviderTimeoutError(self._config.name, int(self._config.timeout_sec * 1000))

    def _result(self, text: str, latency_sec: float, token_count: int | None) -> GenResult:
        # Providers that omit usage get the usual ~4 chars/token estimate.
        tokens = token_count if token_count is not None else -(-len(text) // 4)
        return GenResult(
            provider=self._config.name,
            model=self._config.model,
            kind="text",
            status=STATUS_OK,
            text=text,
            response_time_ms=max(1, round(latency_sec * 1000)),
            tokens_used=tokens,
            cost=self.cost_for(tokens),
        )
