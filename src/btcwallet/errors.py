"""
Wallet error kinds.

Every error carries the structured data a caller needs to render a message
(amounts, addresses, provider failures) in addition to its string form.
"""

from __future__ import annotations

from dataclasses import dataclass


class WalletError(Exception):
    """Base class for all wallet engine errors."""


class InvalidPhrase(WalletError):
    def __init__(self, message: str = "Invalid recovery phrase"):
        super().__init__(message)


class InvalidAddress(WalletError):
    def __init__(self, address: str, network: str, reason: str = ""):
        self.address = address
        self.network = network
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Invalid {network} address {address!r}{detail}")


class InsufficientFunds(WalletError):
    def __init__(self, needed: int, have: int):
        self.needed = needed
        self.have = have
        super().__init__(f"Insufficient funds: need {needed} sats, have {have} sats")

    @property
    def shortfall(self) -> int:
        return self.needed - self.have


class DerivationFailure(WalletError):
    """Key material for a path could not be re-derived. Indicates a bug, not user error."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Derivation failed for {path}: {reason}")


class BroadcastRejected(WalletError):
    """A provider explicitly refused a transaction (non-2xx response)."""

    def __init__(self, provider: str, status_code: int, body: str):
        self.provider = provider
        self.status_code = status_code
        self.body = body
        super().__init__(f"Broadcast rejected by {provider} (HTTP {status_code}): {body}")


@dataclass(frozen=True)
class ProviderFailure:
    """One failed provider attempt inside a failover run."""

    provider: str
    error: str
    exception_type: str = "Exception"

    def __str__(self) -> str:
        return f"{self.provider}: {self.exception_type}: {self.error}"


class AllProvidersFailed(WalletError):
    def __init__(self, operation: str, failures: list[ProviderFailure]):
        self.operation = operation
        self.failures = list(failures)
        if not self.failures:
            message = f"{operation}: no providers configured"
        else:
            summary = "; ".join(str(f) for f in self.failures)
            message = f"{operation}: all {len(self.failures)} providers failed ({summary})"
        super().__init__(message)

    @property
    def provider_count(self) -> int:
        return len(self.failures)
