from __future__ import annotations

from typing import Dict, Optional, Tuple

import pytest

from zapvault.core.errors import RoutingError
from zapvault.core.interfaces import PoolRegistry
from zapvault.core.routing import Route, RouteHop, discover_route


class _Registry(PoolRegistry):
    def __init__(self, pairs: Dict[Tuple[str, str, bool], str]) -> None:
        self._pairs = {}
        for (a, b, stable), pid in pairs.items():
            self._pairs[(a, b, stable)] = pid
            self._pairs[(b, a, stable)] = pid
        self.queries = []

    def get_pool(self, token_a: str, token_b: str, stable: bool) -> Optional[str]:
        self.queries.append((token_a, token_b, stable))
        return self._pairs.get((token_a, token_b, stable))


def test_stable_variant_is_preferred() -> None:
    registry = _Registry({("DAI", "USDC", True): "s1", ("DAI", "USDC", False): "v1"})
    route = discover_route(registry, asset_in="DAI", asset_out="USDC", registry_id="f")
    assert route == Route(hops=(RouteHop("DAI", "USDC", True, "f", "s1"),))
    assert route.stable
    assert registry.queries == [("DAI", "USDC", True)]


def test_volatile_variant_is_fallback() -> None:
    registry = _Registry({("WETH", "DAI", False): "v1"})
    route = discover_route(registry, asset_in="DAI", asset_out="WETH", registry_id="f")
    assert route.hops[0].stable is False
    assert route.hops[0].pool_id == "v1"
    assert not route.stable
    assert registry.queries == [("DAI", "WETH", True), ("DAI", "WETH", False)]


def test_no_variant_raises_routing_error() -> None:
    registry = _Registry({})
    with pytest.raises(RoutingError) as excinfo:
        discover_route(registry, asset_in="XYZ", asset_out="USDC", registry_id="f")
    assert excinfo.value.asset_in == "XYZ"
    assert excinfo.value.asset_out == "USDC"


def test_same_token_needs_no_swap() -> None:
    registry = _Registry({})
    route = discover_route(registry, asset_in="USDC", asset_out="USDC", registry_id="f")
    assert route.is_empty
    assert not route.stable
    assert registry.queries == []


def test_route_tuples() -> None:
    hop = RouteHop("A", "B", True, "factory")
    assert hop.as_tuple() == ("A", "B", True, "factory")
    assert Route(hops=(hop,)).as_tuples() == (("A", "B", True, "factory"),)
