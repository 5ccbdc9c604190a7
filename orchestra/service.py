"""Orchestration service: request validation, consensus path, sequential fallback."""

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr

from orchestra.errors import (
    ConsensusBuildError,
    NoValidProvidersError,
    OrchestraError,
    OrchestrationFailedError,
    ProviderError,
    ValidationError,
)
from orchestra.history import HistoryStore
from orchestra.models import (
    ConsensusResult,
    ConsensusSummary,
    GenInput,
    ModelResponse,
    OrchestrationResult,
    PolicyCheck,
    ScoredResult,
    SelectionStrategy,
    TaskType,
    utc_now,
)
from orchestra.orchestrator import Orchestrator
from orchestra.policy import MIN_ENFORCED_TIER, enforce_no_demo
from orchestra.selection import select_best_response

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 5000
MAX_MODELS = 10
MIN_COMPARE_MODELS = 2


class OrchestrationRequest(BaseModel):
    """One generation request. Accepts the camelCase wire keys or field names."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: StrictStr = Field(min_length=1, max_length=MAX_PROMPT_CHARS)
    models: list[StrictStr] = Field(min_length=1, max_length=MAX_MODELS)
    selection_strategy: SelectionStrategy = Field(alias="selectionStrategy")
    context: dict[str, Any] | None = None
    system_prompt: StrictStr | None = Field(default=None, alias="systemPrompt")
    tier: StrictInt | None = Field(default=None, ge=1, le=5)
    enforce_policy_check: StrictBool = Field(default=False, alias="enforcePolicyCheck")
    task_type: TaskType = Field(default=TaskType.CODE, alias="taskType")


@dataclass
class ComparisonResult:
    prompt: str
    responses: list[ModelResponse]
    consensus: ConsensusResult
    created_at: datetime = field(default_factory=utc_now)


def parse_request(raw: Any) -> OrchestrationRequest:
    """Validate a raw request mapping (camelCase keys) into an OrchestrationRequest.

    Raises:
        ValidationError: On any shape violation; the message names each bad field.
    """
    try:
        return OrchestrationRequest.model_validate(raw)
    except pydantic.ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'request'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationError(f"Invalid request: {problems}") from exc


def build_prompt(prompt: str, context: dict[str, Any] | None) -> str:
    """Prefix the prompt with serialized context when present."""
    if not context:
        return prompt
    return f"CONTEXT:\n{json.dumps(context, indent=2, sort_keys=True, default=str)}\n\n{prompt}"


def to_model_response(result: ScoredResult) -> ModelResponse:
    return ModelResponse(
        model_id=result.provider,
        model=result.model,
        content=result.text if result.ok else "",
        quality_score=result.score,
        response_time_ms=result.response_time_ms,
        tokens_used=result.tokens_used,
        cost=result.cost if result.ok else 0.0,
        timestamp=utc_now(),
        error=None if result.ok else (result.error or "error"),
    )


class OrchestrationService:
    """Produces exactly one OrchestrationResult per request."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        history: HistoryStore | None = None,
        known_providers: list[str] | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._history = history
        self._known_providers = known_providers

    @property
    def history(self) -> HistoryStore | None:
        return self._history

    async def orchestrate(self, request: OrchestrationRequest | dict[str, Any]) -> OrchestrationResult:
        """Run one round.

        Raises:
            ValidationError: Malformed request or no registered provider.
            OrchestrationFailedError: Every attempted provider returned an error.
        """
        if not isinstance(request, OrchestrationRequest):
            request = parse_request(request)

        start = time.monotonic()
        registry = self._orchestrator.registry
        valid_ids = [m for m in dict.fromkeys(request.models) if m in registry]
        if not valid_ids:
            raise NoValidProvidersError(request.models, registry.ids())

        gen_input = GenInput(
            prompt=build_prompt(request.prompt, request.context),
            system=request.system_prompt,
        )

        if len(request.models) >= 2 and request.selection_strategy is SelectionStrategy.QUALITY:
            logger.info("Using multi-model consensus mode with %d providers", len(valid_ids))
            try:
                result = await self._consensus_path(request, valid_ids, gen_input, start)
            except OrchestraError as exc:
                logger.warning("Consensus path gave no decision, falling back to sequential: %s", exc)
            except Exception:
                logger.exception("Consensus path failed unexpectedly, falling back to sequential")
            else:
                return self._finish(request, result)

        logger.info("Using sequential generation mode")
        result = await self._sequential_path(request, valid_ids, gen_input, start)
        return self._finish(request, result)

    async def _consensus_path(
        self,
        request: OrchestrationRequest,
        valid_ids: list[str],
        gen_input: GenInput,
        start: float,
    ) -> OrchestrationResult:
        outcome = await self._orchestrator.run(valid_ids, gen_input, request.task_type)
        responses = [to_model_response(r) for r in outcome.results]

        consensus = outcome.consensus
        if consensus.winner is None:
            raise ConsensusBuildError("no provider produced a usable result")

        selected = next(r for r in responses if r.model_id == consensus.winner.provider)
        logger.info(
            "Winner: %s/%s, agreement %.1f%%",
            consensus.winner.provider,
            consensus.winner.model,
            consensus.agreement * 100,
        )
        return self._result(
            request,
            responses,
            selected,
            total_cost=sum(r.cost for r in responses),
            start=start,
            path="consensus",
            consensus=ConsensusSummary(
                winner=consensus.winner.provider,
                agreement=consensus.agreement,
                confidence=consensus.confidence,
                reasoning=consensus.reasoning,
            ),
        )

    async def _sequential_path(
        self,
        request: OrchestrationRequest,
        valid_ids: list[str],
        gen_input: GenInput,
        start: float,
    ) -> OrchestrationResult:
        responses: list[ModelResponse] = []
        last_error = ""
        for provider_id in valid_ids:
            call_start = time.monotonic()
            logger.info("Generating with %s...", provider_id)
            try:
                scored = await self._orchestrator.run_single(provider_id, gen_input, request.task_type)
            except ProviderError as exc:
                last_error = str(exc)
                logger.warning("%s failed: %s", provider_id, exc)
                provider = self._orchestrator.registry[provider_id]
                responses.append(ModelResponse(
                    model_id=provider_id,
                    model=provider.model_string(),
                    content="",
                    quality_score=0.0,
                    response_time_ms=max(1, round((time.monotonic() - call_start) * 1000)),
                    tokens_used=0,
                    cost=0.0,
                    timestamp=utc_now(),
                    error=last_error,
                ))
                continue
            response = to_model_response(scored)
            responses.append(response)
            logger.info(
                "%s completed: quality %.0f, %dms, $%.4f",
                provider_id, response.quality_score, response.response_time_ms, response.cost,
            )

        if all(r.error is not None for r in responses):
            raise OrchestrationFailedError(last_error or "unknown error", valid_ids)

        selected = select_best_response(responses, request.selection_strategy)
        return self._result(
            request,
            responses,
            selected,
            total_cost=sum(r.cost for r in responses),
            start=start,
            path="sequential",
        )

    def _result(
        self,
        request: OrchestrationRequest,
        responses: list[ModelResponse],
        selected: ModelResponse,
        total_cost: float,
        start: float,
        path: str,
        consensus: ConsensusSummary | None = None,
    ) -> OrchestrationResult:
        return OrchestrationResult(
            id=f"orch-{uuid.uuid4().hex[:16]}",
            prompt=request.prompt,
            models=list(request.models),
            responses=responses,
            selected_response=selected,
            total_cost=total_cost,
            total_time_ms=round((time.monotonic() - start) * 1000),
            created_at=utc_now(),
            strategy=request.selection_strategy.value,
            path=path,
            consensus=consensus,
        )

    def _policy_check(self, request: OrchestrationRequest, selected: ModelResponse) -> PolicyCheck | None:
        if not request.enforce_policy_check or request.tier is None or request.tier < MIN_ENFORCED_TIER:
            return None
        logger.info("Running policy check for tier %d", request.tier)
        check = enforce_no_demo(selected.content, request.tier)
        if check.allowed:
            logger.info("Policy check passed: %s", check.message)
        else:
            logger.warning("Policy violation in %s output: %s", selected.model_id, check.message)
        return check

    def _finish(self, request: OrchestrationRequest, result: OrchestrationResult) -> OrchestrationResult:
        result.policy_check = self._policy_check(request, result.selected_response)
        logger.info(
            "Complete: selected %s with quality %.0f (%s path)",
            result.selected_response.model_id,
            result.selected_response.quality_score,
            result.path,
        )
        if self._history is not None:
            try:
                self._history.add(result)
            except OSError as exc:
                # A finished round is returned even when history cannot be written.
                logger.error("Could not record round %s in history: %s", result.id, exc)
        return result

    async def compare_models(
        self,
        prompt: str,
        provider_ids: list[str],
        task_type: TaskType | str = TaskType.TEXT,
    ) -> ComparisonResult:
        """Run the same prompt on several providers and return every response.

        Raises:
            ValidationError: Fewer than two or more than ten providers, or bad prompt.
        """
        if not prompt or len(prompt) > MAX_PROMPT_CHARS:
            raise ValidationError(f"prompt must be 1..{MAX_PROMPT_CHARS} characters")
        if not MIN_COMPARE_MODELS <= len(provider_ids) <= MAX_MODELS:
            raise ValidationError(f"compare needs between {MIN_COMPARE_MODELS} and {MAX_MODELS} providers")
        outcome = await self._orchestrator.run(provider_ids, GenInput(prompt=prompt), task_type)
        return ComparisonResult(
            prompt=prompt,
            responses=[to_model_response(r) for r in outcome.results],
            consensus=outcome.consensus,
        )

    async def single(
        self,
        provider_id: str,
        input: GenInput,
        task_type: TaskType | str = TaskType.TEXT,
    ) -> ScoredResult:
        return await self._orchestrator.run_single(provider_id, input, task_type)

    def provider_status(self) -> dict[str, Any]:
        configured = self._orchestrator.registry.ids()
        known = self._known_providers if self._known_providers is not None else configured
        return {
            "all": list(known),
            "configured": configured,
            "count": len(configured),
        }
