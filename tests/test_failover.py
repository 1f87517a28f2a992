"""
Tests for ordered provider failover.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from btcwallet.backends.failover import FailoverExhausted, FailoverSuccess, try_providers, unwrap
from btcwallet.errors import AllProvidersFailed
from btcwallet.models import ProviderEndpoint

PROVIDERS = [
    ProviderEndpoint(url="https://one.example"),
    ProviderEndpoint(url="https://two.example"),
    ProviderEndpoint(url="https://three.example"),
]


@pytest.mark.asyncio
async def test_first_success_wins_without_touching_later_providers():
    attempt = AsyncMock(return_value="ok")

    result = await try_providers(PROVIDERS, attempt, 1.0, "op")

    assert isinstance(result, FailoverSuccess)
    assert result.value == "ok"
    assert result.provider_index == 0
    assert result.failures == []
    attempt.assert_awaited_once_with(PROVIDERS[0])


@pytest.mark.asyncio
async def test_third_provider_succeeds_after_two_failures():
    attempt = AsyncMock(side_effect=[ConnectionError("refused"), ValueError("bad body"), 42])

    result = await try_providers(PROVIDERS, attempt, 1.0, "op")

    assert isinstance(result, FailoverSuccess)
    assert result.value == 42
    assert result.provider_index == 2
    assert result.provider == PROVIDERS[2]
    assert attempt.await_count == 3
    assert [c.args[0] for c in attempt.await_args_list] == PROVIDERS
    assert [f.provider for f in result.failures] == ["https://one.example", "https://two.example"]
    assert [f.exception_type for f in result.failures] == ["ConnectionError", "ValueError"]
    assert result.failures[1].error == "bad body"


@pytest.mark.asyncio
async def test_exhausted_keeps_every_failure():
    attempt = AsyncMock(side_effect=RuntimeError("down"))

    result = await try_providers(PROVIDERS, attempt, 1.0, "op")

    assert isinstance(result, FailoverExhausted)
    assert len(result.failures) == 3
    assert attempt.await_count == 3


@pytest.mark.asyncio
async def test_timeout_is_a_provider_failure():
    async def attempt(provider):
        if provider is PROVIDERS[0]:
            await asyncio.sleep(10)
        return provider.url

    result = await try_providers(PROVIDERS, attempt, 0.05, "op")

    assert isinstance(result, FailoverSuccess)
    assert result.provider_index == 1
    assert result.failures[0].exception_type == "TimeoutError"


@pytest.mark.asyncio
async def test_each_call_restarts_at_first_provider():
    calls = []

    async def attempt(provider):
        calls.append(provider.url)
        if provider is PROVIDERS[0]:
            raise ConnectionError("flaky")
        return provider.url

    await try_providers(PROVIDERS, attempt, 1.0, "op")
    await try_providers(PROVIDERS, attempt, 1.0, "op")

    assert calls == [
        "https://one.example",
        "https://two.example",
        "https://one.example",
        "https://two.example",
    ]


@pytest.mark.asyncio
async def test_empty_provider_list_is_exhausted():
    result = await try_providers([], AsyncMock(), 1.0, "op")
    assert isinstance(result, FailoverExhausted)
    assert result.failures == []


class TestUnwrap:
    def test_success(self):
        result = FailoverSuccess(value=7, provider_index=0, provider=PROVIDERS[0])
        assert unwrap(result, "op") == 7

    def test_exhausted_raises(self):
        with pytest.raises(AllProvidersFailed) as exc_info:
            unwrap(FailoverExhausted(failures=[]), "get_balance")
        assert exc_info.value.provider_count == 0
        assert "no providers configured" in str(exc_info.value)
