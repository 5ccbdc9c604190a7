"""Selection strategies for the sequential fallback path."""

from collections.abc import Callable

from orchestra.models import ModelResponse, SelectionStrategy


def balanced_score(response: ModelResponse) -> float:
    """Weighted blend of quality, speed and cost. Higher is better."""
    response_time = max(response.response_time_ms, 1)
    return (
        response.quality_score * 0.6
        + (10000 / response_time) * 0.3
        + (1 / (response.cost + 0.001)) * 0.1
    )


# Each key returns a value to maximise.
_STRATEGY_KEYS: dict[SelectionStrategy, Callable[[ModelResponse], float]] = {
    SelectionStrategy.QUALITY: lambda r: r.quality_score,
    SelectionStrategy.SPEED: lambda r: -r.response_time_ms,
    SelectionStrategy.COST: lambda r: -r.cost,
    SelectionStrategy.BALANCED: balanced_score,
}


def select_best_response(
    responses: list[ModelResponse],
    strategy: SelectionStrategy | str,
) -> ModelResponse:
    """Pick one response according to ``strategy``.

    Only responses with a positive quality score are candidates. When none
    qualifies the first response is returned. Ties keep the earliest candidate.

    Raises:
        ValueError: If ``responses`` is empty or the strategy is unknown.
    """
    if not responses:
        raise ValueError("responses must not be empty")
    key = _STRATEGY_KEYS[SelectionStrategy(strategy)]

    valid = [r for r in responses if r.quality_score > 0]
    if not valid:
        return responses[0]

    best = valid[0]
    best_value = key(best)
    for candidate in valid[1:]:
        value = key(candidate)
        if value > best_value:
            best, best_value = candidate, value
    return best
