"""Dataclasses shared across the orchestration pipeline.

Wire helpers (``to_dict``/``from_dict``) use camelCase keys and ISO-8601 dates so
persisted history and JSON output share one format.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class TaskType(str, Enum):
    CODE = "code"
    TEXT = "text"


class SelectionStrategy(str, Enum):
    QUALITY = "quality"
    SPEED = "speed"
    COST = "cost"
    BALANCED = "balanced"


STATUS_OK = "ok"
STATUS_ERROR = "error"


@dataclass(frozen=True)
class GenInput:
    prompt: str
    system: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass
class GenResult:
    provider: str          # registry id, e.g. "openai", "anthropic"
    model: str             # actual model string used
    kind: str              # "text" or "code"
    status: str            # "ok" or "error"
    text: str = ""
    error: str | None = None
    response_time_ms: int = 0
    tokens_used: int = 0
    cost: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def key(self) -> tuple[str, str]:
        return self.provider, self.model


@dataclass
class ScoredResult(GenResult):
    score: float = 0.0     # 0..100
    reasoning: str = ""

    @classmethod
    def from_result(cls, result: GenResult, score: float, reasoning: str = "") -> "ScoredResult":
        values = {f.name: getattr(result, f.name) for f in fields(GenResult)}
        return cls(**values, score=score, reasoning=reasoning)


@dataclass
class ConsensusResult:
    winner: ScoredResult | None
    agreement: float       # 0..1
    confidence: float      # 0..1
    reasoning: str

    @property
    def text(self) -> str:
        return self.winner.text if self.winner else ""


@dataclass
class ModelResponse:
    model_id: str          # provider id
    model: str
    content: str
    quality_score: float
    response_time_ms: int
    tokens_used: int
    cost: float
    timestamp: datetime
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "modelId": self.model_id,
            "model": self.model,
            "content": self.content,
            "qualityScore": self.quality_score,
            "responseTime": self.response_time_ms,
            "tokensUsed": self.tokens_used,
            "cost": self.cost,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModelResponse":
        return cls(
            model_id=str(data["modelId"]),
            model=str(data.get("model", data["modelId"])),
            content=str(data.get("content", "")),
            quality_score=float(data.get("qualityScore", 0)),
            response_time_ms=int(data.get("responseTime", 0)),
            tokens_used=int(data.get("tokensUsed", 0)),
            cost=float(data.get("cost", 0.0)),
            timestamp=parse_timestamp(data["timestamp"]),
            error=data.get("error"),
        )


@dataclass
class ConsensusSummary:
    winner: str | None     # provider id of the consensus winner
    agreement: float
    confidence: float
    reasoning: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "winner": self.winner,
            "agreement": self.agreement,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConsensusSummary":
        return cls(
            winner=data.get("winner"),
            agreement=float(data.get("agreement", 0.0)),
            confidence=float(data.get("confidence", 0.0)),
            reasoning=str(data.get("reasoning", "")),
        )


@dataclass
class PolicyFinding:
    line: int              # 1-based
    text: str
    rule: str
    severity: str          # "high", "medium" or "low"

    def to_dict(self) -> dict[str, Any]:
        return {"line": self.line, "text": self.text, "rule": self.rule, "severity": self.severity}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PolicyFinding":
        return cls(
            line=int(data["line"]),
            text=str(data.get("text", "")),
            rule=str(data.get("rule", "")),
            severity=str(data.get("severity", "low")),
        )


@dataclass
class PolicyCheck:
    tier: int
    allowed: bool
    message: str
    offending_lines: int = 0
    confidence: float = 1.0
    requires_regeneration: bool = False
    findings: list[PolicyFinding] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier": self.tier,
            "allowed": self.allowed,
            "message": self.message,
            "offendingLines": self.offending_lines,
            "confidence": self.confidence,
            "requiresRegeneration": self.requires_regeneration,
            "findings": [f.to_dict() for f in self.findings],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PolicyCheck":
        return cls(
            tier=int(data["tier"]),
            allowed=bool(data["allowed"]),
            message=str(data.get("message", "")),
            offending_lines=int(data.get("offendingLines", 0)),
            confidence=float(data.get("confidence", 1.0)),
            requires_regeneration=bool(data.get("requiresRegeneration", False)),
            findings=[PolicyFinding.from_dict(f) for f in data.get("findings", [])],
        )


@dataclass
class OrchestrationResult:
    id: str
    prompt: str
    models: list[str]
    responses: list[ModelResponse]
    selected_response: ModelResponse
    total_cost: float
    total_time_ms: int
    created_at: datetime
    strategy: str = SelectionStrategy.QUALITY.value
    path: str = "sequential"               # "consensus" or "sequential"
    consensus: ConsensusSummary | None = None
    policy_check: PolicyCheck | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "prompt": self.prompt,
            "models": list(self.models),
            "responses": [r.to_dict() for r in self.responses],
            "selectedResponse": self.selected_response.to_dict(),
            "totalCost": self.total_cost,
            "totalTime": self.total_time_ms,
            "createdAt": self.created_at.isoformat(),
            "strategy": self.strategy,
            "path": self.path,
        }
        if self.consensus is not None:
            data["consensus"] = self.consensus.to_dict()
        if self.policy_check is not None:
            data["policyCheck"] = self.policy_check.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrchestrationResult":
        responses = [ModelResponse.from_dict(r) for r in data.get("responses", [])]
        selected_raw = data["selectedResponse"]
        # Keep selected_response identical to its member of responses.
        selected = next(
            (r for r in responses if r.model_id == selected_raw.get("modelId")),
            None,
        )
        if selected is None:
            selected = ModelResponse.from_dict(selected_raw)
            responses.append(selected)
        consensus_raw = data.get("consensus")
        policy_raw = data.get("policyCheck")
        return cls(
            id=str(data["id"]),
            prompt=str(data["prompt"]),
            models=list(data.get("models", [])),
            responses=responses,
            selected_response=selected,
            total_cost=float(data.get("totalCost", 0.0)),
            total_time_ms=int(data.get("totalTime", 0)),
            created_at=parse_timestamp(data["createdAt"]),
            strategy=str(data.get("strategy", SelectionStrategy.QUALITY.value)),
            path=str(data.get("path", "sequential")),
            consensus=ConsensusSummary.from_dict(consensus_raw) if consensus_raw else None,
            policy_check=PolicyCheck.from_dict(policy_raw) if policy_raw else None,
        )


@dataclass
class ModelStats:
    total_requests: int = 0
    successful_requests: int = 0
    avg_quality: float = 0.0
    avg_response_time: float = 0.0
    total_cost: float = 0.0
    times_selected: int = 0

    def record(self, quality: float, response_time_ms: float, cost: float, ok: bool = True) -> None:
        """Fold one observation in with an online running mean."""
        self.total_requests += 1
        n = self.total_requests
        self.avg_quality += (quality - self.avg_quality) / n
        self.avg_response_time += (response_time_ms - self.avg_response_time) / n
        self.total_cost += cost
        if ok:
            self.successful_requests += 1

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRequests": self.total_requests,
            "avgQuality": self.avg_quality,
            "avgResponseTime": self.avg_response_time,
            "totalCost": self.total_cost,
            "timesSelected": self.times_selected,
            "successRate": self.success_rate,
        }


@dataclass
class OrchestratorOutcome:
    results: list[ScoredResult]
    consensus: ConsensusResult


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | int | float | datetime) -> datetime:
    """Rehydrate an ISO-8601 string (or epoch milliseconds) to a datetime."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
