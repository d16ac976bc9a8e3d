"""
Integer slippage protection (deterministic, floor rounding).

Minimums are always rounded down, so the protection is never looser than the
nominal tolerance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..state.balances import Amount


BPS_DENOM = 10_000

STABLE_SLIPPAGE_BPS = 300
VOLATILE_SLIPPAGE_BPS = 50


@dataclass(frozen=True)
class SlippagePolicy:
    stable_bps: int = STABLE_SLIPPAGE_BPS
    volatile_bps: int = VOLATILE_SLIPPAGE_BPS

    def __post_init__(self) -> None:
        for name, v in (("stable_bps", self.stable_bps), ("volatile_bps", self.volatile_bps)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if not (0 <= v <= BPS_DENOM):
                raise ValueError(f"{name} must be in [0, {BPS_DENOM}]: {v}")

    def bps_for(self, stable: bool) -> int:
        return self.stable_bps if stable else self.volatile_bps


def apply_slippage(quote: Amount, bps: int) -> Amount:
    """
    Reduce a nominal quote by `bps` basis points.

        min_out = floor(quote * (10_000 - bps) / 10_000)
    """
    if not isinstance(quote, int) or isinstance(quote, bool) or quote < 0:
        raise ValueError(f"quote must be a non-negative int, got {quote!r}")
    if not (0 <= bps <= BPS_DENOM):
        raise ValueError(f"bps must be in [0, {BPS_DENOM}]: {bps}")
    return (quote * (BPS_DENOM - bps)) // BPS_DENOM


def split_amount(amount: Amount) -> Tuple[Amount, Amount]:
    """
    Split an input amount into two legs.

    The second leg is floor(amount / 2); the first leg absorbs the odd unit.
    """
    if amount < 0:
        raise ValueError(f"amount must be non-negative: {amount}")
    second = amount // 2
    return amount - second, second
