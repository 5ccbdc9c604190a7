"""Reduce a scored result set to one winner, an agreement fraction and a confidence."""

import logging

from orchestra.errors import ConsensusBuildError
from orchestra.models import ConsensusResult, ScoredResult

logger = logging.getLogger(__name__)

# Two outputs are "similar" when both thresholds hold.
TOKEN_OVERLAP_THRESHOLD = 0.3
LENGTH_RATIO_THRESHOLD = 0.5

_SCORE_WEIGHT = 0.5
_AGREEMENT_WEIGHT = 0.3
_COVERAGE_WEIGHT = 0.2


def token_overlap(text1: str, text2: str) -> float:
    """Jaccard overlap of lowercased whitespace tokens."""
    words1 = set(text1.lower().split())
    words2 = set(text2.lower().split())
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def length_ratio(text1: str, text2: str) -> float:
    longest = max(len(text1), len(text2))
    if longest == 0:
        return 0.0
    return min(len(text1), len(text2)) / longest


def is_similar(a: ScoredResult, b: ScoredResult) -> bool:
    if not (_contributes(a) and _contributes(b)):
        return False
    if a is b:
        return True
    return (
        length_ratio(a.text, b.text) >= LENGTH_RATIO_THRESHOLD
        and token_overlap(a.text, b.text) >= TOKEN_OVERLAP_THRESHOLD
    )


def _contributes(result: ScoredResult) -> bool:
    return result.ok and bool(result.text)


def _rank_key(result: ScoredResult) -> tuple[float, int, str]:
    # Highest score, then fastest, then provider id.
    return -result.score, result.response_time_ms, result.provider


def pick_winner(scored: list[ScoredResult]) -> ScoredResult | None:
    contributors = [r for r in scored if _contributes(r)]
    if not contributors:
        return None
    return min(contributors, key=_rank_key)


def build_hybrid_consensus(scored: list[ScoredResult], requested: int | None = None) -> ConsensusResult:
    """Pick a winner and measure how much the rest of the set agrees with it.

    Args:
        scored: Every result of the round, errors included.
        requested: Number of providers asked. Defaults to ``len(scored)``.

    Returns:
        ConsensusResult. With no contributing result the winner is None and
        confidence is 0.

    Raises:
        ConsensusBuildError: If two results share a (provider, model) key.
    """
    seen: set[tuple[str, str]] = set()
    for result in scored:
        if result.key in seen:
            raise ConsensusBuildError(f"Duplicate result for {result.provider}:{result.model}")
        seen.add(result.key)

    total = max(requested if requested is not None else len(scored), len(scored))
    contributors = [r for r in scored if _contributes(r)]

    if not contributors:
        return ConsensusResult(
            winner=None,
            agreement=0.0,
            confidence=0.0,
            reasoning=f"No valid results from {total} provider(s)",
        )

    winner = pick_winner(contributors)

    if len(contributors) == 1:
        return ConsensusResult(
            winner=winner,
            agreement=1.0,
            confidence=round(winner.score / 100, 4),
            reasoning=f"Single contributor {winner.provider} of {total}; score {winner.score:.0f}",
        )

    similar = [r for r in scored if is_similar(winner, r)]
    agreement = len(similar) / len(scored)
    mean_score = sum(r.score for r in contributors) / len(contributors)
    coverage = len(contributors) / total if total else 0.0
    confidence = (
        _SCORE_WEIGHT * mean_score / 100
        + _AGREEMENT_WEIGHT * agreement
        + _COVERAGE_WEIGHT * coverage
    )
    confidence = max(0.0, min(1.0, confidence))

    reasoning = "; ".join([
        f"Winner: {winner.provider} ({winner.score:.0f})",
        f"Agreement: {len(similar)}/{len(scored)}",
        f"Mean score: {mean_score:.1f}",
        f"Contributors: {len(contributors)}/{total}",
        f"Providers agreeing: {', '.join(sorted(r.provider for r in similar))}",
    ])
    logger.debug("Consensus: %s", reasoning)

    return ConsensusResult(
        winner=winner,
        agreement=round(agreement, 4),
        confidence=round(confidence, 4),
        reasoning=reasoning,
    )
