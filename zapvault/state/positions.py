"""
Per-(user, pool) positions and per-pool reward accounts.

Records are created on first lookup with zero values and are never deleted:
a fully withdrawn position is zeroed and stays a valid key for later deposits.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Dict, List, Tuple

from .balances import Amount, Owner, PoolId


@dataclass
class UserPosition:
    """Liquidity shares attributed to one user in one pool."""

    amount: Amount = 0
    reward_debt: int = 0
    # Offset against `PoolAccount.token_index`, same role as `reward_debt`.
    token_debt: int = 0

    def is_zero(self) -> bool:
        return self.amount == 0 and self.reward_debt == 0 and self.token_debt == 0


@dataclass
class PoolAccount:
    """
    Reward accounting for one pool.

    `reward_index` is cumulative reward per share, scaled by the ledger scale.
    `unattributed_reward` holds reward (in shares) obtained while no shares
    existed; it is folded into the next accrual that sees a non-zero share count.
    `token_index` is cumulative reward per share paid in the reward token
    itself, for claims too small to convert into shares; `unattributed_tokens`
    is its carry while no shares exist.
    """

    reward_index: int = 0
    total_shares: Amount = 0
    unattributed_reward: Amount = 0
    token_index: int = 0
    unattributed_tokens: Amount = 0


class PositionTable:
    """
    Key-value store for `UserPosition` and `PoolAccount` records.

    Lookups are explicit get-or-create; callers mutate the returned record.
    """

    def __init__(self) -> None:
        self._positions: Dict[Tuple[Owner, PoolId], UserPosition] = {}
        self._pools: Dict[PoolId, PoolAccount] = {}

    def position(self, user: Owner, pool: PoolId) -> UserPosition:
        """Return the position for (user, pool), creating a zeroed one if absent."""
        key = (user, pool)
        record = self._positions.get(key)
        if record is None:
            record = UserPosition()
            self._positions[key] = record
        return record

    def pool_account(self, pool: PoolId) -> PoolAccount:
        """Return the account for `pool`, creating a zeroed one if absent."""
        record = self._pools.get(pool)
        if record is None:
            record = PoolAccount()
            self._pools[pool] = record
        return record

    def peek_position(self, user: Owner, pool: PoolId) -> UserPosition:
        """Return a detached copy of the position without creating it."""
        record = self._positions.get((user, pool))
        return UserPosition() if record is None else copy.copy(record)

    def peek_pool_account(self, pool: PoolId) -> PoolAccount:
        """Return a detached copy of the pool account without creating it."""
        record = self._pools.get(pool)
        return PoolAccount() if record is None else copy.copy(record)

    def positions_for_pool(self, pool: PoolId) -> Dict[Owner, UserPosition]:
        return {user: rec for (user, p), rec in self._positions.items() if p == pool}

    def get_all_positions(self) -> Dict[Tuple[Owner, PoolId], UserPosition]:
        return dict(self._positions)

    def pool_ids(self) -> List[PoolId]:
        return sorted(self._pools)

    def verify_conservation(self, pool: PoolId) -> bool:
        """True when the pool's total_shares equals the sum of its position amounts."""
        total = sum(rec.amount for rec in self.positions_for_pool(pool).values())
        return total == self.peek_pool_account(pool).total_shares

    def snapshot(self) -> Tuple[Dict[Tuple[Owner, PoolId], UserPosition], Dict[PoolId, PoolAccount]]:
        return copy.deepcopy(self._positions), copy.deepcopy(self._pools)

    def restore(
        self,
        snapshot: Tuple[Dict[Tuple[Owner, PoolId], UserPosition], Dict[PoolId, PoolAccount]],
    ) -> None:
        positions, pools = snapshot
        self._positions = copy.deepcopy(positions)
        self._pools = copy.deepcopy(pools)

    def __repr__(self) -> str:
        return f"PositionTable({len(self._positions)} positions, {len(self._pools)} pools)"
