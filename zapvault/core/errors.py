"""Exception types for the zap vault.

``ZeroAmountError`` and ``RoutingError`` are input rejections the caller can
correct and retry; ``ZapVault.execute()`` reports them as tagged results.
``ExternalFacilityError`` and ``SequencingInvariantViolation`` always propagate.
"""

from __future__ import annotations


class ZapVaultError(Exception):
    """Base class for all zap vault errors."""


class ZeroAmountError(ZapVaultError):
    """Raised when an operation is asked to move a zero amount."""


class RoutingError(ZapVaultError):
    """Raised when no pool variant connects an input asset to a required leg token."""

    def __init__(self, asset_in: str, asset_out: str) -> None:
        self.asset_in = asset_in
        self.asset_out = asset_out
        super().__init__(f"no route found: {asset_in} -> {asset_out}")


class ExternalFacilityError(ZapVaultError):
    """Raised when the staking, routing or transfer facility rejects a call."""


class SequencingInvariantViolation(ZapVaultError):
    """Raised when pending reward computes negative (accrual/mutation ordering defect)."""

    def __init__(self, user: str, pool: str, pending: int) -> None:
        self.user = user
        self.pool = pool
        self.pending = pending
        super().__init__(f"negative pending reward for {user} in {pool}: {pending}")
