"""
Collaborator interfaces consumed by the converter and the vault.

Implementations live outside the core (see `zapvault.venue` for the in-memory
reference venue). Caller identity is passed explicitly where the facility
needs to know who is acting.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ..state.balances import Amount, AssetId, Owner, PoolId

if TYPE_CHECKING:
    from .routing import Route


@dataclass(frozen=True)
class ZapParams:
    """Target pair plus minimum amounts for the two swap legs and the liquidity add."""

    token_a: AssetId
    token_b: AssetId
    stable: bool
    registry_id: str
    min_out_a: Amount
    min_out_b: Amount
    min_add_a: Amount
    min_add_b: Amount

    def __post_init__(self) -> None:
        for name, v in (
            ("min_out_a", self.min_out_a),
            ("min_out_b", self.min_out_b),
            ("min_add_a", self.min_add_a),
            ("min_add_b", self.min_add_b),
        ):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")


class Pool:
    """A two-token liquidity venue."""

    pool_id: PoolId

    def token0(self) -> AssetId:
        raise NotImplementedError

    def token1(self) -> AssetId:
        raise NotImplementedError

    def stable(self) -> bool:
        raise NotImplementedError


class StakingFacility:
    """Gauge that custodies liquidity shares and accrues a reward token."""

    def deposit(self, owner: Owner, amount: Amount) -> None:
        raise NotImplementedError

    def withdraw(self, owner: Owner, amount: Amount) -> None:
        raise NotImplementedError

    def get_reward(self, recipient: Owner) -> Amount:
        """Transfer all reward earned by `recipient` to it; return the amount."""
        raise NotImplementedError

    def balance_of(self, owner: Owner) -> Amount:
        raise NotImplementedError

    def staking_token(self) -> AssetId:
        raise NotImplementedError

    def reward_token(self) -> AssetId:
        raise NotImplementedError


class PoolRegistry:
    """Factory view used to discover pairs and resolve pool handles."""

    def get_pool(self, token_a: AssetId, token_b: AssetId, stable: bool) -> Optional[PoolId]:
        raise NotImplementedError

    def pool(self, pool_id: PoolId) -> Pool:
        raise NotImplementedError


class RoutingFacility:
    """Router able to quote and execute a swap-and-add-liquidity zap."""

    def generate_zap_params(
        self,
        token_a: AssetId,
        token_b: AssetId,
        stable: bool,
        registry_id: str,
        amount_in_a: Amount,
        amount_in_b: Amount,
        route_a: "Route",
        route_b: "Route",
    ) -> ZapParams:
        """Return nominal (unprotected) expected outputs for a zap."""
        raise NotImplementedError

    def zap_in(
        self,
        sender: Owner,
        token_in: AssetId,
        amount_in_a: Amount,
        amount_in_b: Amount,
        params: ZapParams,
        route_a: "Route",
        route_b: "Route",
        recipient: Owner,
        stake: bool,
    ) -> Amount:
        """Swap both legs, add liquidity and return the shares produced."""
        raise NotImplementedError


class ValueTransfer:
    """Atomic asset transfer between owners."""

    def transfer(self, asset: AssetId, sender: Owner, recipient: Owner, amount: Amount) -> None:
        raise NotImplementedError

    def balance_of(self, owner: Owner, asset: AssetId) -> Amount:
        raise NotImplementedError
