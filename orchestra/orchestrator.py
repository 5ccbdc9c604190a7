"""Fan a request out to several providers, then score and reach consensus.

A round moves through dispatching -> awaiting -> scoring -> consensus ->
completed. Only an empty valid-provider set stops it before dispatch; any
provider failure or timeout becomes an error-status GenResult instead.
"""

import asyncio
import dataclasses
import logging
import time

from orchestra.consensus import build_hybrid_consensus
from orchestra.errors import NoValidProvidersError, ProviderAPIError, ProviderError, ProviderTimeoutError
from orchestra.limiter import ConcurrencyLimiter
from orchestra.models import (
    STATUS_ERROR,
    GenInput,
    GenResult,
    OrchestratorOutcome,
    ScoredResult,
    TaskType,
)
from orchestra.providers.base import AIProvider
from orchestra.providers.registry import ProviderRegistry
from orchestra.scoring import score_result, score_results

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_TIMEOUT_SEC = 30.0


def _elapsed_ms(start: float) -> int:
    return max(1, round((time.monotonic() - start) * 1000))


def error_result(provider: AIProvider, message: str, response_time_ms: int, kind: str) -> GenResult:
    return GenResult(
        provider=provider.name(),
        model=provider.model_string(),
        kind=kind,
        status=STATUS_ERROR,
        text="",
        error=message,
        response_time_ms=response_time_ms,
        tokens_used=0,
        cost=0.0,
    )


class Orchestrator:
    """Runs one provider call per requested id under a shared limiter."""

    def __init__(
        self,
        registry: ProviderRegistry,
        limiter: ConcurrencyLimiter | None = None,
        timeout_sec: float = DEFAULT_PROVIDER_TIMEOUT_SEC,
    ) -> None:
        self._registry = registry
        self._limiter = limiter or ConcurrencyLimiter()
        self._timeout_sec = timeout_sec

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def limiter(self) -> ConcurrencyLimiter:
        return self._limiter

    @property
    def timeout_ms(self) -> int:
        return round(self._timeout_sec * 1000)

    def resolve(self, provider_ids: list[str]) -> list[AIProvider]:
        """Registered providers for ``provider_ids``, deduplicated, order kept.

        Raises:
            NoValidProvidersError: If none of the ids is registered.
        """
        valid: list[AIProvider] = []
        for provider_id in dict.fromkeys(provider_ids):
            provider = self._registry.get(provider_id)
            if provider is None:
                logger.warning("Unknown provider '%s', dropping", provider_id)
                continue
            valid.append(provider)
        if not valid:
            raise NoValidProvidersError(provider_ids, self._registry.ids())
        return valid

    async def _call(self, provider: AIProvider, input: GenInput, kind: str) -> GenResult:
        """One settled provider call. Never raises."""
        async with self._limiter:
            start = time.monotonic()
            try:
                # wait_for cancels the losing call; its late result is never seen.
                result = await asyncio.wait_for(provider.generate(input), timeout=self._timeout_sec)
            except TimeoutError:
                message = f"{provider.name()} timeout after {self.timeout_ms}ms"
                logger.warning("Provider %s", message)
                return error_result(provider, message, self.timeout_ms, kind)
            except Exception as exc:
                logger.warning("Provider %s failed: %s", provider.name(), exc)
                return error_result(provider, str(exc), _elapsed_ms(start), kind)

        if not result.ok:
            return dataclasses.replace(result, kind=kind, text="", cost=0.0)
        logger.info("Provider %s completed in %dms", provider.name(), result.response_time_ms)
        return dataclasses.replace(result, kind=kind)

    async def run(
        self,
        provider_ids: list[str],
        input: GenInput,
        task_type: TaskType | str = TaskType.TEXT,
    ) -> OrchestratorOutcome:
        """Run every valid provider once and return scored results plus consensus.

        Raises:
            NoValidProvidersError: If no requested id is registered.
        """
        task_type = TaskType(task_type)
        providers = self.resolve(provider_ids)

        logger.info("Dispatching %d provider(s): %s", len(providers), [p.name() for p in providers])

        collected: list[GenResult] = []

        async def settle(provider: AIProvider) -> None:
            collected.append(await self._call(provider, input, task_type.value))

        await asyncio.gather(*(settle(p) for p in providers))

        failed = sum(1 for r in collected if not r.ok)
        logger.info("Received %d result(s), %d failed; scoring", len(collected), failed)

        scored = score_results(collected, task_type)
        consensus = build_hybrid_consensus(scored, requested=len(providers))

        logger.info(
            "Consensus: winner=%s agreement=%.0f%% confidence=%.0f%%",
            consensus.winner.provider if consensus.winner else None,
            consensus.agreement * 100,
            consensus.confidence * 100,
        )
        return OrchestratorOutcome(results=scored, consensus=consensus)

    async def run_single(
        self,
        provider_id: str,
        input: GenInput,
        task_type: TaskType | str = TaskType.TEXT,
    ) -> ScoredResult:
        """Call one provider and score it. Unlike ``run``, failures raise.

        Raises:
            NoValidProvidersError: If ``provider_id`` is not registered.
            ProviderError: If the call fails or times out.
        """
        task_type = TaskType(task_type)
        provider = self.resolve([provider_id])[0]

        async with self._limiter:
            try:
                result = await asyncio.wait_for(provider.generate(input), timeout=self._timeout_sec)
            except TimeoutError as exc:
                raise ProviderTimeoutError(provider.name(), self.timeout_ms) from exc
            except ProviderError:
                raise
            except Exception as exc:
                raise ProviderAPIError(provider.name(), f"Unexpected error: {exc}") from exc

        if not result.ok:
            raise ProviderAPIError(provider.name(), result.error or "error status")

        scored = score_result(dataclasses.replace(result, kind=task_type.value), task_type)
        logger.info("Provider %s scored %.0f", provider.name(), scored.score)
        return scored


async def run_orchestrator(
    orchestrator: Orchestrator,
    provider_ids: list[str],
    input: GenInput,
    task_type: TaskType | str = TaskType.TEXT,
) -> OrchestratorOutcome:
    """Module-level form of ``orchestrator.run(provider_ids, input, task_type)``.

    Raises:
        NoValidProvidersError: If no requested id is registered.
    """
    return await orchestrator.run(provider_ids, input, task_type)
