"""Shared pytest fixtures."""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig
from orchestra.models import STATUS_OK, GenInput, GenResult, ModelResponse, OrchestrationResult
from orchestra.providers.base import AIProvider
from orchestra.providers.registry import ProviderRegistry


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="test",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        max_parallel=2,
        provider_timeout_sec=5.0,
        default_models=["openai", "anthropic"],
        history_path=tmp_path / "history.json",
        output_dir=tmp_path / "output",
    )


@pytest.fixture
def sample_app_config(sample_defaults_config: DefaultsConfig) -> AppConfig:
    model_cfg = ModelConfig(
        name="anthropic",
        sdk="anthropic",
        model="claude-3-5-sonnet-20241022",
        api_key_env="ANTHROPIC_API_KEY",
        timeout_sec=60,
        max_tokens=4096,
    )
    return AppConfig(
        defaults=sample_defaults_config,
        models={"anthropic": model_cfg},
        available_providers={"anthropic"},
    )


@pytest.fixture
def sample_input() -> GenInput:
    return GenInput(prompt="Should we use YAML or JSON for config?")


class MockProvider(AIProvider):
    """Test double AIProvider.

    ``delay`` is awaited before answering; ``error`` (an exception instance)
    is raised instead of answering.
    """

    def __init__(
        self,
        provider_name: str = "mock",
        response_content: str = "Mock response",
        delay: float = 0.0,
        error: Exception | None = None,
        model: str = "mock-model",
        response_time_ms: int = 100,
        cost: float = 0.0,
    ) -> None:
        self._name = provider_name
        self._response_content = response_content
        self._delay = delay
        self._error = error
        self._model = model
        self._response_time_ms = response_time_ms
        self._cost = cost
        # Shadow the class method with an AsyncMock at the instance level so
        # tests can assert on calls. ABC check passes because generate is
        # defined in the class body below.
        self.generate = AsyncMock(side_effect=self._respond)  # type: ignore[assignment]

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return self._model

    async def _respond(self, input: GenInput) -> GenResult:
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return GenResult(
            provider=self._name,
            model=self._model,
            kind="text",
            status=STATUS_OK,
            text=self._response_content,
            response_time_ms=self._response_time_ms,
            tokens_used=10,
            cost=self._cost,
        )

    async def generate(self, input: GenInput) -> GenResult:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return await self._respond(input)


def make_registry(*providers: AIProvider) -> ProviderRegistry:
    return ProviderRegistry(providers)


def make_response(
    model_id: str,
    quality: float = 80.0,
    response_time_ms: int = 1000,
    cost: float = 0.01,
    error: str | None = None,
    content: str = "answer",
) -> ModelResponse:
    return ModelResponse(
        model_id=model_id,
        model=f"{model_id}-model",
        content=content if error is None else "",
        quality_score=quality,
        response_time_ms=response_time_ms,
        tokens_used=10,
        cost=cost,
        timestamp=datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc),
        error=error,
    )


def make_orchestration_result(
    result_id: str = "orch-1",
    responses: list[ModelResponse] | None = None,
    selected_index: int = 0,
    prompt: str = "Build a login screen",
) -> OrchestrationResult:
    responses = responses if responses is not None else [make_response("openai")]
    return OrchestrationResult(
        id=result_id,
        prompt=prompt,
        models=[r.model_id for r in responses],
        responses=responses,
        selected_response=responses[selected_index],
        total_cost=sum(r.cost for r in responses),
        total_time_ms=1234,
        created_at=datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def two_mock_providers() -> list[MockProvider]:
    return [MockProvider("provider_a", "Response from A"), MockProvider("provider_b", "Response from B")]
