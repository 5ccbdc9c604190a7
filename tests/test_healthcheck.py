"""Unit tests for orchestra/healthcheck.py: no real API calls."""

import asyncio
from unittest.mock import AsyncMock

from orchestra.healthcheck import run_health_checks
from orchestra.models import STATUS_ERROR, STATUS_OK, GenResult
from orchestra.providers.base import ProviderError

from tests.conftest import MockProvider


def _ok_response(name: str) -> GenResult:
    return GenResult(
        provider=name,
        model="mock-model",
        kind="text",
        status=STATUS_OK,
        text="OK",
        response_time_ms=100,
        tokens_used=1,
    )


async def test_all_providers_pass():
    """All providers succeed -> all marked ok, no errors."""
    providers = {
        "anthropic": MockProvider("anthropic"),
        "gemini": MockProvider("gemini"),
    }
    providers["anthropic"].generate = AsyncMock(return_value=_ok_response("anthropic"))
    providers["gemini"].generate = AsyncMock(return_value=_ok_response("gemini"))

    results = await run_health_checks(providers)

    assert results["anthropic"] == (True, "")
    assert results["gemini"] == (True, "")


async def test_ping_sends_short_capped_prompt():
    """The ping is one GenInput with a token cap and no system prompt."""
    provider = MockProvider("openai")
    await run_health_checks({"openai": provider})

    provider.generate.assert_awaited_once()
    sent = provider.generate.await_args.args[0]
    assert sent.prompt == "Reply with the word OK only."
    assert sent.max_tokens == 8
    assert sent.system is None


async def test_error_status_counts_as_failure():
    """An adapter that answers with status=error fails the check without raising."""
    provider = MockProvider("gemini")
    provider.generate = AsyncMock(return_value=GenResult(
        provider="gemini", model="mock-model", kind="text", status=STATUS_ERROR, error="quota exhausted",
    ))

    results = await run_health_checks({"gemini": provider})

    assert results["gemini"] == (False, "quota exhausted")


async def test_error_status_without_message():
    provider = MockProvider("gemini")
    provider.generate = AsyncMock(return_value=GenResult(
        provider="gemini", model="mock-model", kind="text", status=STATUS_ERROR,
    ))

    ok, err = (await run_health_checks({"gemini": provider}))["gemini"]

    assert ok is False
    assert err == "gemini returned status error"


async def test_one_provider_fails():
    """A provider that raises returns ok=False with the error message."""
    providers = {
        "anthropic": MockProvider("anthropic"),
        "xai": MockProvider("xai", error=ProviderError("xai", "403 Forbidden")),
    }

    results = await run_health_checks(providers)

    assert results["anthropic"] == (True, "")
    ok, err = results["xai"]
    assert ok is False
    assert "403" in err


async def test_all_providers_fail():
    """All fail -> all marked False."""
    providers = {
        "openai": MockProvider("openai"),
        "deepseek": MockProvider("deepseek"),
    }
    for name, p in providers.items():
        p.generate = AsyncMock(side_effect=Exception(f"{name} down"))

    results = await run_health_checks(providers)

    for name in providers:
        ok, err = results[name]
        assert ok is False
        assert name in err


async def test_empty_providers():
    """Empty provider dict returns empty results."""
    results = await run_health_checks({})
    assert results == {}


async def test_timeout_counts_as_failure(monkeypatch):
    """A provider that hangs past the timeout is marked as failed."""
    providers = {"slow": MockProvider("slow")}

    async def hang(*args, **kwargs):
        await asyncio.sleep(9999)

    providers["slow"].generate = AsyncMock(side_effect=hang)

    # Patch the timeout to 0.05s so the test runs fast
    import orchestra.healthcheck as hc
    monkeypatch.setattr(hc, "_TIMEOUT_SEC", 0.05)

    results = await run_health_checks(providers)

    ok, err = results["slow"]
    assert ok is False
    assert "0.05" in err
