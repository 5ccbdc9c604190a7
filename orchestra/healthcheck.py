"""Provider health checks: ping each API before running a round."""

import asyncio
import logging

from orchestra.models import GenInput
from orchestra.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_INPUT = GenInput(prompt="Reply with the word OK only.", max_tokens=8)
_TIMEOUT_SEC = 15.0


async def _check_one(name: str, provider: AIProvider) -> tuple[str, bool, str]:
    """Ping a single provider. Returns (name, ok, error_message).

    An adapter that answers with an error-status GenResult fails the check
    just like one that raises.
    """
    try:
        result = await asyncio.wait_for(provider.generate(_PING_INPUT), timeout=_TIMEOUT_SEC)
    except TimeoutError:
        return name, False, f"no answer within {_TIMEOUT_SEC:g}s"
    except Exception as exc:
        logger.debug("Health check for %s failed: %s", name, exc)
        return name, False, str(exc)

    if not result.ok:
        return name, False, result.error or f"{name} returned status {result.status}"
    logger.debug("Health check for %s (%s) passed in %dms", name, result.model, result.response_time_ms)
    return name, True, ""


async def run_health_checks(
    providers: dict[str, AIProvider],
) -> dict[str, tuple[bool, str]]:
    """Ping all providers in parallel.

    Returns:
        Dict mapping provider name -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(n, p) for n, p in providers.items()))
    return {name: (ok, err) for name, ok, err in results}
