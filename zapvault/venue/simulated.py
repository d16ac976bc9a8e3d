"""
In-memory reference venue.

`SimulatedVenue` holds token balances, two-token pools, gauges and a router,
and exposes each of them through the collaborator interfaces the vault
consumes:

- `venue.registry`   -> PoolRegistry
- `venue.router`     -> RoutingFacility
- `venue.gauge(pid)` -> StakingFacility
- `venue`            -> ValueTransfer

Every facility failure raises ExternalFacilityError. `snapshot()`/`restore()`
make the whole venue transactional, and the router's zap is all-or-nothing on
its own.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..core.errors import ExternalFacilityError
from ..core.interfaces import Pool, PoolRegistry, RoutingFacility, StakingFacility, ValueTransfer, ZapParams
from ..core.routing import Route
from ..state.balances import Amount, AssetId, BalanceTable, Owner, PoolId
from .amm import MIN_LP_LOCK, compute_lp_mint, optimal_liquidity, swap_exact_in

logger = logging.getLogger(__name__)

GAUGE_SCALE = 10**18
DEAD_ADDRESS = "0xdead"
ROUTER_ADDRESS = "router"

DEFAULT_STABLE_FEE_BPS = 5
DEFAULT_VOLATILE_FEE_BPS = 30


def pool_id_for(token_a: AssetId, token_b: AssetId, stable: bool) -> PoolId:
    t0, t1 = sorted((token_a, token_b))
    return f"{'sAMM' if stable else 'vAMM'}-{t0}/{t1}"


def gauge_address(pool_id: PoolId) -> Owner:
    return f"gauge:{pool_id}"


@dataclass
class VenuePool(Pool):
    """Two-token pool; its id doubles as the id of its liquidity share token."""

    pool_id: PoolId
    token0_id: AssetId
    token1_id: AssetId
    is_stable: bool
    fee_bps: int
    reserve0: Amount = 0
    reserve1: Amount = 0
    lp_supply: Amount = 0

    def token0(self) -> AssetId:
        return self.token0_id

    def token1(self) -> AssetId:
        return self.token1_id

    def stable(self) -> bool:
        return self.is_stable

    def _directed_reserves(self, asset_in: AssetId) -> Tuple[Amount, Amount, bool]:
        if asset_in == self.token0_id:
            return self.reserve0, self.reserve1, True
        if asset_in == self.token1_id:
            return self.reserve1, self.reserve0, False
        raise ExternalFacilityError(f"{asset_in} is not traded by pool {self.pool_id}")

    def other_token(self, asset: AssetId) -> AssetId:
        return self.token1_id if asset == self.token0_id else self.token0_id

    def get_amount_out(self, asset_in: AssetId, amount_in: Amount) -> Amount:
        if amount_in == 0:
            return 0
        rin, rout, _ = self._directed_reserves(asset_in)
        try:
            amount_out, _ = swap_exact_in(rin, rout, amount_in, self.fee_bps, stable=self.is_stable)
        except ValueError as exc:
            raise ExternalFacilityError(f"{self.pool_id}: {exc}") from exc
        return amount_out

    def apply_swap(self, asset_in: AssetId, amount_in: Amount) -> Amount:
        if amount_in == 0:
            return 0
        rin, rout, zero_for_one = self._directed_reserves(asset_in)
        try:
            amount_out, (new_in, new_out) = swap_exact_in(rin, rout, amount_in, self.fee_bps, stable=self.is_stable)
        except ValueError as exc:
            raise ExternalFacilityError(f"{self.pool_id}: {exc}") from exc
        if zero_for_one:
            self.reserve0, self.reserve1 = new_in, new_out
        else:
            self.reserve1, self.reserve0 = new_in, new_out
        return amount_out

    def quote_add_liquidity(self, amount0_desired: Amount, amount1_desired: Amount) -> Tuple[Amount, Amount]:
        return optimal_liquidity(self.reserve0, self.reserve1, amount0_desired, amount1_desired)


@dataclass
class GaugeState:
    pool_id: PoolId
    reward_token: AssetId
    total_staked: Amount = 0
    stakes: Dict[Owner, Amount] = field(default_factory=dict)
    reward_per_token: int = 0
    reward_per_token_paid: Dict[Owner, int] = field(default_factory=dict)
    rewards: Dict[Owner, Amount] = field(default_factory=dict)
    # Reward notified while nothing was staked; distributed with the next notification.
    queued: Amount = 0


class SimulatedRegistry(PoolRegistry):
    def __init__(self, venue: "SimulatedVenue") -> None:
        self._venue = venue

    @property
    def registry_id(self) -> str:
        return self._venue.factory_id

    def get_pool(self, token_a: AssetId, token_b: AssetId, stable: bool) -> Optional[PoolId]:
        pid = pool_id_for(token_a, token_b, stable)
        return pid if pid in self._venue.pools else None

    def pool(self, pool_id: PoolId) -> Pool:
        try:
            return self._venue.pools[pool_id]
        except KeyError:
            raise ExternalFacilityError(f"unknown pool: {pool_id}") from None


class SimulatedGauge(StakingFacility):
    def __init__(self, venue: "SimulatedVenue", pool_id: PoolId) -> None:
        self._venue = venue
        self._pool_id = pool_id

    @property
    def address(self) -> Owner:
        return gauge_address(self._pool_id)

    @property
    def _state(self) -> GaugeState:
        return self._venue.gauge_states[self._pool_id]

    def _checkpoint(self, owner: Owner) -> None:
        s = self._state
        s.rewards[owner] = self.earned(owner)
        s.reward_per_token_paid[owner] = s.reward_per_token

    def earned(self, owner: Owner) -> Amount:
        s = self._state
        stake = s.stakes.get(owner, 0)
        paid = s.reward_per_token_paid.get(owner, 0)
        return s.rewards.get(owner, 0) + (stake * (s.reward_per_token - paid)) // GAUGE_SCALE

    def notify_reward(self, amount: Amount) -> None:
        """Fund the gauge with `amount` reward tokens and distribute them to current stakers."""
        if amount <= 0:
            raise ExternalFacilityError(f"reward amount must be positive: {amount}")
        s = self._state
        self._venue.mint(self.address, s.reward_token, amount)
        if s.total_staked == 0:
            s.queued += amount
            return
        s.reward_per_token += ((amount + s.queued) * GAUGE_SCALE) // s.total_staked
        s.queued = 0

    def deposit(self, owner: Owner, amount: Amount) -> None:
        if amount <= 0:
            raise ExternalFacilityError(f"gauge deposit must be positive: {amount}")
        self._checkpoint(owner)
        self._venue.transfer(self._pool_id, owner, self.address, amount)
        s = self._state
        s.stakes[owner] = s.stakes.get(owner, 0) + amount
        s.total_staked += amount

    def withdraw(self, owner: Owner, amount: Amount) -> None:
        if amount <= 0:
            raise ExternalFacilityError(f"gauge withdraw must be positive: {amount}")
        s = self._state
        if s.stakes.get(owner, 0) < amount:
            raise ExternalFacilityError(f"insufficient stake for {owner}: {s.stakes.get(owner, 0)} < {amount}")
        self._checkpoint(owner)
        s.stakes[owner] -= amount
        s.total_staked -= amount
        self._venue.transfer(self._pool_id, self.address, owner, amount)

    def get_reward(self, recipient: Owner) -> Amount:
        self._checkpoint(recipient)
        s = self._state
        amount = s.rewards.pop(recipient, 0)
        if amount > 0:
            self._venue.transfer(s.reward_token, self.address, recipient, amount)
        return amount

    def balance_of(self, owner: Owner) -> Amount:
        return self._state.stakes.get(owner, 0)

    def staking_token(self) -> AssetId:
        return self._pool_id

    def reward_token(self) -> AssetId:
        return self._state.reward_token


class SimulatedRouter(RoutingFacility):
    def __init__(self, venue: "SimulatedVenue") -> None:
        self._venue = venue

    def _hop_pool(self, hop: Any) -> VenuePool:
        if hop.factory != self._venue.factory_id:
            raise ExternalFacilityError(f"unknown factory: {hop.factory}")
        pid = hop.pool_id or pool_id_for(hop.from_token, hop.to_token, hop.stable)
        pool = self._venue.pools.get(pid)
        if pool is None:
            raise ExternalFacilityError(f"route hop has no pool: {hop.from_token} -> {hop.to_token}")
        return pool

    def _target_pool(self, token_a: AssetId, token_b: AssetId, stable: bool, registry_id: str) -> VenuePool:
        if registry_id != self._venue.factory_id:
            raise ExternalFacilityError(f"unknown factory: {registry_id}")
        pool = self._venue.pools.get(pool_id_for(token_a, token_b, stable))
        if pool is None:
            raise ExternalFacilityError(f"no pool for {token_a}/{token_b} (stable={stable})")
        return pool

    def get_amounts_out(self, amount_in: Amount, route: Route) -> List[Amount]:
        amounts = [amount_in]
        for hop in route.hops:
            amounts.append(self._hop_pool(hop).get_amount_out(hop.from_token, amounts[-1]))
        return amounts

    def _leg_token_out(self, token_in: AssetId, route: Route) -> AssetId:
        return route.hops[-1].to_token if route.hops else token_in

    def _by_pool_order(self, pool: VenuePool, token_a: AssetId, amount_a: Amount, amount_b: Amount) -> Tuple[Amount, Amount]:
        return (amount_a, amount_b) if token_a == pool.token0_id else (amount_b, amount_a)

    def generate_zap_params(
        self,
        token_a: AssetId,
        token_b: AssetId,
        stable: bool,
        registry_id: str,
        amount_in_a: Amount,
        amount_in_b: Amount,
        route_a: Route,
        route_b: Route,
    ) -> ZapParams:
        pool = self._target_pool(token_a, token_b, stable, registry_id)
        out_a = self.get_amounts_out(amount_in_a, route_a)[-1]
        out_b = self.get_amounts_out(amount_in_b, route_b)[-1]

        desired0, desired1 = self._by_pool_order(pool, token_a, out_a, out_b)
        used0, used1 = pool.quote_add_liquidity(desired0, desired1)
        add_a, add_b = self._by_pool_order(pool, token_a, used0, used1)

        return ZapParams(
            token_a=token_a,
            token_b=token_b,
            stable=stable,
            registry_id=registry_id,
            min_out_a=out_a,
            min_out_b=out_b,
            min_add_a=add_a,
            min_add_b=add_b,
        )

    def _execute_leg(self, token_in: AssetId, amount_in: Amount, route: Route) -> Amount:
        amount = amount_in
        for hop in route.hops:
            pool = self._hop_pool(hop)
            out = pool.apply_swap(hop.from_token, amount)
            self._venue.transfer(hop.from_token, ROUTER_ADDRESS, pool.pool_id, amount)
            self._venue.transfer(hop.to_token, pool.pool_id, ROUTER_ADDRESS, out)
            amount = out
        return amount

    def zap_in(
        self,
        sender: Owner,
        token_in: AssetId,
        amount_in_a: Amount,
        amount_in_b: Amount,
        params: ZapParams,
        route_a: Route,
        route_b: Route,
        recipient: Owner,
        stake: bool,
    ) -> Amount:
        if self._leg_token_out(token_in, route_a) != params.token_a:
            raise ExternalFacilityError("route A does not end in token A")
        if self._leg_token_out(token_in, route_b) != params.token_b:
            raise ExternalFacilityError("route B does not end in token B")
        pool = self._target_pool(params.token_a, params.token_b, params.stable, params.registry_id)

        snapshot = self._venue.snapshot()
        try:
            self._venue.transfer(token_in, sender, ROUTER_ADDRESS, amount_in_a + amount_in_b)

            out_a = self._execute_leg(token_in, amount_in_a, route_a)
            if out_a < params.min_out_a:
                raise ExternalFacilityError(f"insufficient output amount A: {out_a} < {params.min_out_a}")
            out_b = self._execute_leg(token_in, amount_in_b, route_b)
            if out_b < params.min_out_b:
                raise ExternalFacilityError(f"insufficient output amount B: {out_b} < {params.min_out_b}")

            desired0, desired1 = self._by_pool_order(pool, params.token_a, out_a, out_b)
            used0, used1 = pool.quote_add_liquidity(desired0, desired1)
            used_a, used_b = self._by_pool_order(pool, params.token_a, used0, used1)
            if used_a < params.min_add_a:
                raise ExternalFacilityError(f"insufficient amount A: {used_a} < {params.min_add_a}")
            if used_b < params.min_add_b:
                raise ExternalFacilityError(f"insufficient amount B: {used_b} < {params.min_add_b}")

            try:
                liquidity = compute_lp_mint(pool.reserve0, pool.reserve1, used0, used1, pool.lp_supply)
            except ValueError as exc:
                raise ExternalFacilityError(f"{pool.pool_id}: {exc}") from exc

            self._venue.transfer(pool.token0_id, ROUTER_ADDRESS, pool.pool_id, used0)
            self._venue.transfer(pool.token1_id, ROUTER_ADDRESS, pool.pool_id, used1)
            pool.reserve0 += used0
            pool.reserve1 += used1
            pool.lp_supply += liquidity
            self._venue.mint(recipient, pool.pool_id, liquidity)

            self._venue.transfer(params.token_a, ROUTER_ADDRESS, recipient, out_a - used_a)
            self._venue.transfer(params.token_b, ROUTER_ADDRESS, recipient, out_b - used_b)

            if stake:
                self._venue.gauge(pool.pool_id).deposit(recipient, liquidity)
        except BaseException:
            self._venue.restore(snapshot)
            raise

        logger.debug(
            "Router zap executed",
            extra={
                "event": "router.zap_in",
                "pool": pool.pool_id,
                "token_in": token_in,
                "outs": (out_a, out_b),
                "used": (used_a, used_b),
                "liquidity": liquidity,
            },
        )
        return liquidity


class SimulatedVenue(ValueTransfer):
    """Container for all reference-venue state plus its facility views."""

    def __init__(
        self,
        *,
        factory_id: str = "default-factory",
        stable_fee_bps: int = DEFAULT_STABLE_FEE_BPS,
        volatile_fee_bps: int = DEFAULT_VOLATILE_FEE_BPS,
    ) -> None:
        self.factory_id = factory_id
        self.stable_fee_bps = stable_fee_bps
        self.volatile_fee_bps = volatile_fee_bps
        self.balances = BalanceTable()
        self.pools: Dict[PoolId, VenuePool] = {}
        self.gauge_states: Dict[PoolId, GaugeState] = {}
        self.registry = SimulatedRegistry(self)
        self.router = SimulatedRouter(self)

    # -- value transfer -------------------------------------------------

    def mint(self, owner: Owner, asset: AssetId, amount: Amount) -> None:
        if amount < 0:
            raise ExternalFacilityError(f"mint amount must be non-negative: {amount}")
        self.balances.add(owner, asset, amount)

    def transfer(self, asset: AssetId, sender: Owner, recipient: Owner, amount: Amount) -> None:
        try:
            self.balances.move(asset, sender, recipient, amount)
        except ValueError as exc:
            raise ExternalFacilityError(f"transfer failed: {exc}") from exc

    def balance_of(self, owner: Owner, asset: AssetId) -> Amount:
        return self.balances.get(owner, asset)

    # -- pools and gauges -----------------------------------------------

    def create_pool(
        self,
        provider: Owner,
        token_a: AssetId,
        token_b: AssetId,
        *,
        stable: bool,
        amount_a: Amount,
        amount_b: Amount,
    ) -> PoolId:
        """Create a pool seeded with liquidity from `provider`; returns its id."""
        if token_a == token_b:
            raise ExternalFacilityError("pool tokens must differ")
        pid = pool_id_for(token_a, token_b, stable)
        if pid in self.pools:
            raise ExternalFacilityError(f"pool already exists: {pid}")
        if token_a > token_b:
            token_a, token_b = token_b, token_a
            amount_a, amount_b = amount_b, amount_a

        try:
            liquidity = compute_lp_mint(0, 0, amount_a, amount_b, 0)
        except ValueError as exc:
            raise ExternalFacilityError(str(exc)) from exc

        self.transfer(token_a, provider, pid, amount_a)
        self.transfer(token_b, provider, pid, amount_b)
        self.pools[pid] = VenuePool(
            pool_id=pid,
            token0_id=token_a,
            token1_id=token_b,
            is_stable=stable,
            fee_bps=self.stable_fee_bps if stable else self.volatile_fee_bps,
            reserve0=amount_a,
            reserve1=amount_b,
            lp_supply=liquidity + MIN_LP_LOCK,
        )
        self.mint(DEAD_ADDRESS, pid, MIN_LP_LOCK)
        self.mint(provider, pid, liquidity)
        return pid

    def create_gauge(self, pool_id: PoolId, reward_token: AssetId) -> SimulatedGauge:
        if pool_id not in self.pools:
            raise ExternalFacilityError(f"unknown pool: {pool_id}")
        if pool_id in self.gauge_states:
            raise ExternalFacilityError(f"gauge already exists for {pool_id}")
        self.gauge_states[pool_id] = GaugeState(pool_id=pool_id, reward_token=reward_token)
        return SimulatedGauge(self, pool_id)

    def gauge(self, pool_id: PoolId) -> SimulatedGauge:
        if pool_id not in self.gauge_states:
            raise ExternalFacilityError(f"no gauge for {pool_id}")
        return SimulatedGauge(self, pool_id)

    def gauges(self) -> Dict[PoolId, SimulatedGauge]:
        return {pid: SimulatedGauge(self, pid) for pid in self.gauge_states}

    # -- transactions -----------------------------------------------------

    def snapshot(self) -> Tuple[BalanceTable, Dict[PoolId, VenuePool], Dict[PoolId, GaugeState]]:
        return self.balances.copy(), copy.deepcopy(self.pools), copy.deepcopy(self.gauge_states)

    def restore(self, snapshot: Tuple[BalanceTable, Dict[PoolId, VenuePool], Dict[PoolId, GaugeState]]) -> None:
        balances, pools, gauge_states = snapshot
        self.balances = balances.copy()
        self.pools.clear()
        self.pools.update(copy.deepcopy(pools))
        self.gauge_states.clear()
        self.gauge_states.update(copy.deepcopy(gauge_states))
