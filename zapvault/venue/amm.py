"""
Pool math for the reference venue (integer-only, deterministic rounding).

Two curve variants:
- volatile: constant product  K(x,y) = x*y
- stable:   K(x,y) = x^3*y + x*y^3

Exact-in semantics for both:
  fee = ceil(amount_in * fee_bps / 10_000)   (fee stays in the pool)
  x'  = x + (amount_in - fee)
  y'  = minimal integer with K(x', y') >= K(x, y)
  amount_out = y - y'
"""

from __future__ import annotations

import math
from typing import Tuple

from ..state.balances import Amount

BPS_DENOM = 10_000

# Minimum LP lock to prevent division by zero attacks
MIN_LP_LOCK = 1000


def _ceil_div_nonneg(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    if numerator < 0:
        raise ValueError("numerator must be non-negative")
    return (numerator + denominator - 1) // denominator


def compute_fee_total(gross_in: Amount, fee_bps: int) -> Amount:
    """fee_total = ceil(gross_in * fee_bps / 10_000)"""
    if gross_in < 0:
        raise ValueError(f"gross_in must be non-negative: {gross_in}")
    if not (0 <= fee_bps <= BPS_DENOM):
        raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}]: {fee_bps}")
    return _ceil_div_nonneg(gross_in * fee_bps, BPS_DENOM)


def _validate_swap(reserve_in: Amount, reserve_out: Amount, amount_in: Amount, fee_bps: int) -> None:
    if reserve_in <= 0 or reserve_out <= 0:
        raise ValueError(f"cannot swap against an empty reserve: ({reserve_in}, {reserve_out})")
    if amount_in <= 0:
        raise ValueError(f"amount_in must be positive: {amount_in}")
    if not (0 <= fee_bps <= BPS_DENOM):
        raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}]: {fee_bps}")


def stable_k(x: int, y: int) -> int:
    return x * y * (x * x + y * y)


def swap_exact_in_volatile(
    reserve_in: Amount,
    reserve_out: Amount,
    amount_in: Amount,
    fee_bps: int,
) -> Tuple[Amount, Tuple[Amount, Amount]]:
    """
    Constant-product exact-in swap.

        amount_out = floor(reserve_out * net_in / (reserve_in + net_in))

    Returns (amount_out, (new_reserve_in, new_reserve_out)).
    """
    _validate_swap(reserve_in, reserve_out, amount_in, fee_bps)
    net_in = amount_in - compute_fee_total(amount_in, fee_bps)
    amount_out = (reserve_out * net_in) // (reserve_in + net_in)

    new_reserve_in = reserve_in + amount_in
    new_reserve_out = reserve_out - amount_out
    if new_reserve_in * new_reserve_out < reserve_in * reserve_out:
        raise ValueError("Invariant violation: k decreased")
    return amount_out, (new_reserve_in, new_reserve_out)


def swap_exact_in_stable(
    reserve_in: Amount,
    reserve_out: Amount,
    amount_in: Amount,
    fee_bps: int,
) -> Tuple[Amount, Tuple[Amount, Amount]]:
    """
    Stable-curve exact-in swap.

    K is strictly increasing in y for positive x, so the minimal post-swap
    reserve_out is found by bisection over [0, reserve_out].
    """
    _validate_swap(reserve_in, reserve_out, amount_in, fee_bps)
    net_in = amount_in - compute_fee_total(amount_in, fee_bps)
    k0 = stable_k(reserve_in, reserve_out)
    x_new = reserve_in + net_in

    lo, hi = 0, reserve_out
    while lo < hi:
        mid = (lo + hi) // 2
        if stable_k(x_new, mid) >= k0:
            hi = mid
        else:
            lo = mid + 1
    y_new = lo

    amount_out = reserve_out - y_new
    return amount_out, (reserve_in + amount_in, y_new)


def swap_exact_in(
    reserve_in: Amount,
    reserve_out: Amount,
    amount_in: Amount,
    fee_bps: int,
    *,
    stable: bool,
) -> Tuple[Amount, Tuple[Amount, Amount]]:
    if stable:
        return swap_exact_in_stable(reserve_in, reserve_out, amount_in, fee_bps)
    return swap_exact_in_volatile(reserve_in, reserve_out, amount_in, fee_bps)


def optimal_liquidity(
    reserve0: Amount,
    reserve1: Amount,
    amount0_desired: Amount,
    amount1_desired: Amount,
) -> Tuple[Amount, Amount]:
    """
    Ratio-preserving amounts to add.

    For an empty pool everything is used.
    """
    if amount0_desired < 0 or amount1_desired < 0:
        raise ValueError(f"desired amounts must be non-negative: ({amount0_desired}, {amount1_desired})")
    if reserve0 == 0 or reserve1 == 0:
        return amount0_desired, amount1_desired

    amount1_optimal = (amount0_desired * reserve1) // reserve0
    if amount1_optimal <= amount1_desired:
        return amount0_desired, amount1_optimal
    amount0_optimal = (amount1_desired * reserve0) // reserve1
    return amount0_optimal, amount1_desired


def compute_lp_mint(
    reserve0: Amount,
    reserve1: Amount,
    amount0: Amount,
    amount1: Amount,
    lp_supply: Amount,
) -> Amount:
    """
    LP shares minted for a deposit.

    First deposit (lp_supply == 0):
        lp = floor(sqrt(amount0 * amount1)) - MIN_LP_LOCK
    Subsequent deposits:
        lp = min(floor(amount0 * lp_supply / reserve0), floor(amount1 * lp_supply / reserve1))

    Raises:
        ValueError: If the deposit would mint nothing
    """
    if reserve0 < 0 or reserve1 < 0:
        raise ValueError(f"Reserves must be non-negative: ({reserve0}, {reserve1})")
    if amount0 <= 0 or amount1 <= 0:
        raise ValueError(f"Deposit amounts must be positive: ({amount0}, {amount1})")
    if lp_supply < 0:
        raise ValueError(f"LP supply must be non-negative: {lp_supply}")

    if lp_supply == 0:
        lp = math.isqrt(amount0 * amount1)
        if lp <= MIN_LP_LOCK:
            raise ValueError("Insufficient initial liquidity: sqrt(amount0*amount1) <= MIN_LP_LOCK")
        lp = lp - MIN_LP_LOCK
    else:
        if reserve0 == 0 or reserve1 == 0:
            raise ValueError("Cannot add liquidity to empty pool")
        lp = min((amount0 * lp_supply) // reserve0, (amount1 * lp_supply) // reserve1)

    if lp <= 0:
        raise ValueError(f"Computed LP amount is non-positive: {lp}")
    return lp
