"""
Ordered provider failover.

Providers are tried strictly one at a time in list order. The first
well-formed response wins; every failure before it is kept so callers (and
AllProvidersFailed) can report exactly which provider failed and how.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from loguru import logger

from btcwallet.errors import AllProvidersFailed, ProviderFailure
from btcwallet.models import ProviderEndpoint

T = TypeVar("T")


@dataclass(frozen=True)
class FailoverSuccess(Generic[T]):
    value: T
    provider_index: int
    provider: ProviderEndpoint
    failures: list[ProviderFailure] = field(default_factory=list)


@dataclass(frozen=True)
class FailoverExhausted:
    failures: list[ProviderFailure] = field(default_factory=list)


FailoverResult = FailoverSuccess[T] | FailoverExhausted


async def try_providers(
    providers: Sequence[ProviderEndpoint],
    attempt: Callable[[ProviderEndpoint], Awaitable[T]],
    timeout: float | None,
    operation: str,
) -> FailoverResult:
    """
    Run attempt against each provider in order until one succeeds.

    Each attempt is bounded by timeout; a timeout counts as that provider's
    failure. A provider is never retried within the same call.
    """
    failures: list[ProviderFailure] = []

    for index, provider in enumerate(providers):
        try:
            if timeout is None:
                value = await attempt(provider)
            else:
                value = await asyncio.wait_for(attempt(provider), timeout=timeout)
        except asyncio.TimeoutError:
            failure = ProviderFailure(
                provider=provider.url,
                error=f"timed out after {timeout}s",
                exception_type="TimeoutError",
            )
        except Exception as e:
            failure = ProviderFailure(
                provider=provider.url, error=str(e), exception_type=type(e).__name__
            )
        else:
            if failures:
                logger.info(
                    f"{operation}: succeeded on {provider.url} after {len(failures)} failure(s)"
                )
            return FailoverSuccess(
                value=value, provider_index=index, provider=provider, failures=failures
            )

        logger.warning(f"{operation}: provider failed: {failure}")
        failures.append(failure)

    return FailoverExhausted(failures=failures)


def unwrap(result: FailoverResult, operation: str) -> T:
    """Return the winning value or raise AllProvidersFailed."""
    if isinstance(result, FailoverExhausted):
        raise AllProvidersFailed(operation, result.failures)
    return result.value
