"""
Route discovery for zap legs.

A leg is routed in a single hop through whichever pool variant the registry
knows for (asset_in, leg_token):
- a stable-variant pool is preferred,
- otherwise a volatile-variant pool,
- otherwise the leg cannot be routed and RoutingError is raised.

A leg whose token already equals the input asset needs no swap and gets an
empty route.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ..state.balances import AssetId, PoolId
from .errors import RoutingError
from .interfaces import PoolRegistry


@dataclass(frozen=True)
class RouteHop:
    from_token: AssetId
    to_token: AssetId
    stable: bool
    factory: str
    pool_id: Optional[PoolId] = None

    def as_tuple(self) -> Tuple[AssetId, AssetId, bool, str]:
        return (self.from_token, self.to_token, bool(self.stable), self.factory)


@dataclass(frozen=True)
class Route:
    hops: Tuple[RouteHop, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.hops

    @property
    def stable(self) -> bool:
        """True when any hop trades through a stable-variant pool."""
        return any(h.stable for h in self.hops)

    def as_tuples(self) -> Tuple[Tuple[AssetId, AssetId, bool, str], ...]:
        return tuple(h.as_tuple() for h in self.hops)


def discover_route(
    registry: PoolRegistry,
    *,
    asset_in: AssetId,
    asset_out: AssetId,
    registry_id: str,
) -> Route:
    """Pick the single-hop route from `asset_in` to `asset_out`, stable first."""
    if asset_in == asset_out:
        return Route()

    for stable in (True, False):
        pool_id = registry.get_pool(asset_in, asset_out, stable)
        if pool_id is not None:
            return Route(hops=(RouteHop(asset_in, asset_out, stable, registry_id, pool_id),))

    raise RoutingError(asset_in, asset_out)
