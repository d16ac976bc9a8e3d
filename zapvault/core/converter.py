"""
Single-asset to liquidity conversion ("zap").

Given an input asset and a target pool:
1. If the asset is the pool's staking token, stake it as-is (no routing, no slippage).
2. Otherwise split the amount into two legs (the first leg absorbs an odd unit),
   route each leg to one of the pool's tokens, quote the zap, protect every
   minimum with the slippage policy, execute the swap-and-add in one router
   call, and stake the produced shares.

The converter never touches the ledger; attributing shares to a user is the
caller's job. It assumes `amount > 0`.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Mapping, Optional, Tuple

from ..state.balances import Amount, AssetId, Owner, PoolId
from .interfaces import Pool, PoolRegistry, RoutingFacility, StakingFacility, ZapParams
from .routing import Route, discover_route
from .slippage import SlippagePolicy, apply_slippage, split_amount

logger = logging.getLogger(__name__)


def protect_zap_params(
    quote: ZapParams,
    *,
    route_a: Route,
    route_b: Route,
    pool_stable: bool,
    policy: SlippagePolicy,
) -> ZapParams:
    """
    Reduce every nominal minimum by the tolerance of the venue it passes through.

    Swap minimums use their leg's route variant; an empty route performs no swap
    and keeps its nominal amount. Liquidity-add minimums use the target pool's variant.
    """

    def _leg_min(nominal: Amount, route: Route) -> Amount:
        if route.is_empty:
            return nominal
        return apply_slippage(nominal, policy.bps_for(route.stable))

    add_bps = policy.bps_for(pool_stable)
    return replace(
        quote,
        min_out_a=_leg_min(quote.min_out_a, route_a),
        min_out_b=_leg_min(quote.min_out_b, route_b),
        min_add_a=apply_slippage(quote.min_add_a, add_bps),
        min_add_b=apply_slippage(quote.min_add_b, add_bps),
    )


class Converter:
    """Turns one asset into staked liquidity shares of a target pool."""

    def __init__(
        self,
        *,
        registry: PoolRegistry,
        router: RoutingFacility,
        gauges: Mapping[PoolId, StakingFacility],
        account: Owner,
        registry_id: str,
        policy: Optional[SlippagePolicy] = None,
    ) -> None:
        self._registry = registry
        self._router = router
        self._gauges = dict(gauges)
        self._account = account
        self._registry_id = registry_id
        self._policy = policy if policy is not None else SlippagePolicy()

    @property
    def account(self) -> Owner:
        return self._account

    def gauge_for(self, pool_id: PoolId) -> StakingFacility:
        try:
            return self._gauges[pool_id]
        except KeyError:
            raise KeyError(f"no staking facility configured for pool {pool_id}") from None

    def _plan(self, pool: Pool, asset: AssetId, amount: Amount) -> Tuple[Amount, Amount, Route, Route, ZapParams]:
        token_a, token_b = pool.token0(), pool.token1()
        half_a, half_b = split_amount(amount)

        route_a = discover_route(self._registry, asset_in=asset, asset_out=token_a, registry_id=self._registry_id)
        route_b = discover_route(self._registry, asset_in=asset, asset_out=token_b, registry_id=self._registry_id)

        quote = self._router.generate_zap_params(
            token_a,
            token_b,
            pool.stable(),
            self._registry_id,
            half_a,
            half_b,
            route_a,
            route_b,
        )
        return half_a, half_b, route_a, route_b, quote

    def can_convert(self, pool: Pool, asset: AssetId, amount: Amount) -> bool:
        """
        Whether `amount` of `asset` is large enough to add liquidity on both sides.

        Quotes the zap without executing it. A leg that would swap to nothing
        makes the amount unconvertible.
        """
        if amount <= 0:
            return False
        if asset == self.gauge_for(pool.pool_id).staking_token():
            return True
        half_a, half_b, _, _, quote = self._plan(pool, asset, amount)
        return half_b > 0 and quote.min_add_a > 0 and quote.min_add_b > 0

    def zap_in(self, pool: Pool, asset: AssetId, amount: Amount) -> Amount:
        """Convert `amount` of `asset` held by the vault into staked shares of `pool`."""
        gauge = self.gauge_for(pool.pool_id)

        if asset == gauge.staking_token():
            gauge.deposit(self._account, amount)
            logger.info(
                "Staking token deposited directly",
                extra={"event": "zap.passthrough", "pool": pool.pool_id, "amount": amount},
            )
            return amount

        half_a, half_b, route_a, route_b, quote = self._plan(pool, asset, amount)
        params = protect_zap_params(
            quote,
            route_a=route_a,
            route_b=route_b,
            pool_stable=pool.stable(),
            policy=self._policy,
        )
        logger.debug(
            "Zap quoted",
            extra={
                "event": "zap.quote",
                "pool": pool.pool_id,
                "asset": asset,
                "halves": (half_a, half_b),
                "quote": quote,
                "protected": params,
            },
        )

        shares = self._router.zap_in(
            self._account,
            asset,
            half_a,
            half_b,
            params,
            route_a,
            route_b,
            self._account,
            False,
        )
        gauge.deposit(self._account, shares)

        logger.info(
            "Asset zapped into pool",
            extra={
                "event": "zap.in",
                "pool": pool.pool_id,
                "asset": asset,
                "amount": amount,
                "shares": shares,
            },
        )
        return shares
