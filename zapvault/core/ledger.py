"""
Reward-per-share ledger.

Each pool carries a cumulative reward index (reward per share, scaled by
SCALE). A position's pending reward is

    pending = amount * reward_index // SCALE - reward_debt

where `reward_debt` prices in the index that existed when the shares were
credited, so shares never claim reward earned before they existed.

Ordering: callers must `accrue_reward` with freshly claimed reward before
`credit` or `debit` in the same operation. Both read the current index; a
stale index double-counts reward for the position being mutated.

Reward obtained while a pool has no shares is carried on
`PoolAccount.unattributed_reward` and folded into the next accrual that sees
shares.

Claims too small to convert into shares are paid in the reward token itself.
They run through a second index (`token_index` / `token_debt`) with the same
rules, so they are attributed to the shares held when they were claimed.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..state.balances import Amount, Owner, PoolId
from ..state.positions import PositionTable
from .errors import SequencingInvariantViolation

logger = logging.getLogger(__name__)

SCALE = 10**18


class RewardLedger:
    """Per-user, per-pool share and reward accounting."""

    def __init__(self, table: Optional[PositionTable] = None, *, scale: int = SCALE) -> None:
        if scale <= 0:
            raise ValueError(f"scale must be positive: {scale}")
        self.table = table if table is not None else PositionTable()
        self.scale = scale

    def accrue_reward(self, pool: PoolId, reward_amount: Amount) -> int:
        """
        Distribute freshly obtained reward across the pool's current shares.

        Returns the index delta (0 when nothing could be attributed).
        """
        if reward_amount < 0:
            raise ValueError(f"reward_amount must be non-negative: {reward_amount}")
        account = self.table.pool_account(pool)

        if account.total_shares == 0:
            if reward_amount > 0:
                account.unattributed_reward += reward_amount
                logger.info(
                    "Reward carried with no shares outstanding",
                    extra={
                        "event": "ledger.carry",
                        "pool": pool,
                        "reward": reward_amount,
                        "carried": account.unattributed_reward,
                    },
                )
            return 0

        total = reward_amount + account.unattributed_reward
        if total == 0:
            return 0
        delta = (total * self.scale) // account.total_shares
        account.reward_index += delta
        account.unattributed_reward = 0

        logger.info(
            "Reward accrued",
            extra={
                "event": "ledger.accrue",
                "pool": pool,
                "reward": total,
                "total_shares": account.total_shares,
                "index_delta": delta,
                "reward_index": account.reward_index,
            },
        )
        return delta

    def accrue_token_reward(self, pool: PoolId, tokens: Amount) -> int:
        """
        Distribute claimed reward tokens that are paid out as-is, not as shares.

        Attribution happens at claim time against the current share count, with
        the same carry rule as `accrue_reward`. Returns the token-index delta.
        """
        if tokens < 0:
            raise ValueError(f"tokens must be non-negative: {tokens}")
        account = self.table.pool_account(pool)

        if account.total_shares == 0:
            account.unattributed_tokens += tokens
            return 0

        total = tokens + account.unattributed_tokens
        if total == 0:
            return 0
        delta = (total * self.scale) // account.total_shares
        account.token_index += delta
        account.unattributed_tokens = 0

        logger.info(
            "Token reward accrued",
            extra={
                "event": "ledger.accrue_tokens",
                "pool": pool,
                "tokens": total,
                "total_shares": account.total_shares,
                "token_index_delta": delta,
            },
        )
        return delta

    def pending_token_reward(self, user: Owner, pool: PoolId) -> Amount:
        """Reward tokens owed to (user, pool) outside the share index. Pure read."""
        account = self.table.peek_pool_account(pool)
        position = self.table.peek_position(user, pool)
        pending = (position.amount * account.token_index) // self.scale - position.token_debt
        if pending < 0:
            raise SequencingInvariantViolation(user, pool, pending)
        return pending

    def settle_token_reward(self, user: Owner, pool: PoolId) -> Amount:
        """Mark the user's pending token reward as paid; returns the amount to pay."""
        owed = self.pending_token_reward(user, pool)
        if owed:
            self.table.position(user, pool).token_debt += owed
        return owed

    def pending_reward(self, user: Owner, pool: PoolId) -> Amount:
        """Unclaimed reward for (user, pool). Pure read."""
        account = self.table.peek_pool_account(pool)
        if account.total_shares == 0:
            return 0
        position = self.table.peek_position(user, pool)
        pending = (position.amount * account.reward_index) // self.scale - position.reward_debt
        if pending < 0:
            raise SequencingInvariantViolation(user, pool, pending)
        return pending

    def credit(self, user: Owner, pool: PoolId, shares_added: Amount) -> None:
        """Attribute newly produced shares to `user` without back-dating reward."""
        if shares_added < 0:
            raise ValueError(f"shares_added must be non-negative: {shares_added}")
        account = self.table.pool_account(pool)
        position = self.table.position(user, pool)

        position.amount += shares_added
        position.reward_debt += (shares_added * account.reward_index) // self.scale
        position.token_debt += (shares_added * account.token_index) // self.scale
        account.total_shares += shares_added

        logger.info(
            "Shares credited",
            extra={
                "event": "ledger.credit",
                "pool": pool,
                "user": user,
                "shares": shares_added,
                "total_shares": account.total_shares,
            },
        )

    def debit(self, user: Owner, pool: PoolId) -> Tuple[Amount, Amount]:
        """
        Remove the user's whole position.

        Returns (shares_removed, reward_owed); the position is left all-zero.
        Token reward not yet taken with `settle_token_reward` is dropped, so
        callers settle it first.
        """
        reward_owed = self.pending_reward(user, pool)
        account = self.table.pool_account(pool)
        position = self.table.position(user, pool)

        shares_removed = position.amount
        position.amount = 0
        position.reward_debt = 0
        position.token_debt = 0
        account.total_shares -= shares_removed

        logger.info(
            "Position debited",
            extra={
                "event": "ledger.debit",
                "pool": pool,
                "user": user,
                "shares": shares_removed,
                "reward": reward_owed,
                "total_shares": account.total_shares,
            },
        )
        return shares_removed, reward_owed
