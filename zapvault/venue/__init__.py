"""
In-memory reference venue (pools, registry, router, gauges, transfers)
"""

from .amm import MIN_LP_LOCK, compute_lp_mint, optimal_liquidity, swap_exact_in
from .simulated import (
    GaugeState,
    SimulatedGauge,
    SimulatedRegistry,
    SimulatedRouter,
    SimulatedVenue,
    VenuePool,
    gauge_address,
    pool_id_for,
)

__all__ = [
    "MIN_LP_LOCK",
    "compute_lp_mint",
    "optimal_liquidity",
    "swap_exact_in",
    "GaugeState",
    "SimulatedGauge",
    "SimulatedRegistry",
    "SimulatedRouter",
    "SimulatedVenue",
    "VenuePool",
    "gauge_address",
    "pool_id_for",
]
