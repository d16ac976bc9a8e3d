"""
Core zap vault algorithms
"""

from .converter import Converter, protect_zap_params
from .errors import (
    ExternalFacilityError,
    RoutingError,
    SequencingInvariantViolation,
    ZapVaultError,
    ZeroAmountError,
)
from .interfaces import Pool, PoolRegistry, RoutingFacility, StakingFacility, ValueTransfer, ZapParams
from .ledger import SCALE, RewardLedger
from .routing import Route, RouteHop, discover_route
from .slippage import (
    BPS_DENOM,
    STABLE_SLIPPAGE_BPS,
    VOLATILE_SLIPPAGE_BPS,
    SlippagePolicy,
    apply_slippage,
    split_amount,
)

__all__ = [
    "Converter",
    "protect_zap_params",
    "ExternalFacilityError",
    "RoutingError",
    "SequencingInvariantViolation",
    "ZapVaultError",
    "ZeroAmountError",
    "Pool",
    "PoolRegistry",
    "RoutingFacility",
    "StakingFacility",
    "ValueTransfer",
    "ZapParams",
    "SCALE",
    "RewardLedger",
    "Route",
    "RouteHop",
    "discover_route",
    "BPS_DENOM",
    "STABLE_SLIPPAGE_BPS",
    "VOLATILE_SLIPPAGE_BPS",
    "SlippagePolicy",
    "apply_slippage",
    "split_amount",
]
