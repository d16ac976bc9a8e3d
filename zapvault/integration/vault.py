"""
Zap vault orchestration (imperative shell).

Entry points:
- `deposit(user, pool, asset, amount) -> shares`
- `harvest(pool) -> index_delta`
- `withdraw(user, pool) -> (shares, reward)`
- `pending_reward(pool, user) -> amount`

Every mutating entry point runs under one vault-wide lock and follows the same
sequence: accrue (claim gauge reward, zap it into pool shares, distribute via
the ledger), perform its own effect, update the ledger. Ledger records and every
transactional collaborator are snapshotted on entry and restored if anything
raises, so a failed call leaves no partial effect.

Custody: besides staked shares, the vault account holds reward tokens owed
through the token index, and the leg-token remainder the router refunds after
each zap (the part of a leg the pool ratio could not absorb). That remainder is
retained as-is: it is not attributed to any position and never reused.

`execute(command)` wraps the entry points in a tagged result: input rejections
(`ZeroAmountError`, `RoutingError`) come back as `VaultStepResult(ok=False)`,
facility failures, sequencing defects and unknown pools (`KeyError`) are
re-raised.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Literal, Mapping, Optional, Sequence, Tuple

from ..core.converter import Converter
from ..core.errors import RoutingError, ZeroAmountError
from ..core.interfaces import PoolRegistry, RoutingFacility, StakingFacility, ValueTransfer
from ..core.ledger import RewardLedger
from ..state.balances import Amount, AssetId, Owner, PoolId
from ..state.positions import PoolAccount, PositionTable, UserPosition
from .config import VaultConfig

logger = logging.getLogger(__name__)

_COMMAND_ARGS = {
    "deposit": ("user", "pool", "asset", "amount"),
    "harvest": ("pool",),
    "withdraw": ("user", "pool"),
    "pending_reward": ("pool", "user"),
}


@dataclass(frozen=True)
class VaultCollaborators:
    registry: PoolRegistry
    router: RoutingFacility
    gauges: Mapping[PoolId, StakingFacility]
    transfer: ValueTransfer
    # Objects exposing snapshot()/restore(snapshot); rolled back with the ledger on failure.
    transactional: Sequence[Any] = field(default_factory=tuple)


@dataclass(frozen=True)
class VaultCommand:
    tag: Literal["deposit", "harvest", "withdraw", "pending_reward"]
    args: Mapping[str, Any]


@dataclass(frozen=True)
class VaultStepResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None
    error_kind: Optional[str] = None


class ZapVault:
    """Pooled single-asset deposits into gauge-staked liquidity positions."""

    def __init__(
        self,
        collaborators: VaultCollaborators,
        config: Optional[VaultConfig] = None,
        *,
        table: Optional[PositionTable] = None,
    ) -> None:
        self._collab = collaborators
        config = config if config is not None else VaultConfig()
        self._config = config
        self._lock = threading.RLock()
        self.ledger = RewardLedger(table, scale=config.reward_scale)
        self.converter = Converter(
            registry=collaborators.registry,
            router=collaborators.router,
            gauges=collaborators.gauges,
            account=config.account,
            registry_id=config.registry_id,
            policy=config.slippage_policy,
        )

    @property
    def account(self) -> Owner:
        return self._config.account

    @property
    def config(self) -> VaultConfig:
        return self._config

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def deposit(self, user: Owner, pool: PoolId, asset: AssetId, amount: Amount) -> Amount:
        """Convert `amount` of `asset` from `user` into shares of `pool`."""
        if amount < 0:
            raise ValueError(f"amount must be non-negative: {amount}")
        if amount == 0:
            raise ZeroAmountError(f"deposit amount must be positive (user={user}, pool={pool})")

        with self._transaction("deposit", pool):
            self._accrue(pool)
            self._collab.transfer.transfer(asset, user, self.account, amount)
            shares = self.converter.zap_in(self._collab.registry.pool(pool), asset, amount)
            self.ledger.credit(user, pool, shares)

        logger.info(
            "Deposit completed",
            extra={
                "event": "vault.deposit",
                "pool": pool,
                "user": user,
                "asset": asset,
                "amount": amount,
                "shares": shares,
            },
        )
        return shares

    def harvest(self, pool: PoolId) -> int:
        """Claim and compound gauge reward for `pool`; returns the index delta."""
        with self._transaction("harvest", pool):
            delta = self._accrue(pool)
        logger.info("Harvest completed", extra={"event": "vault.harvest", "pool": pool, "index_delta": delta})
        return delta

    def withdraw(self, user: Owner, pool: PoolId) -> Tuple[Amount, Amount]:
        """
        Return the user's whole position plus accrued reward, in pool shares.

        Reward claimed in amounts too small to convert is paid alongside in the
        reward token.
        """
        with self._lock:
            if self.ledger.table.peek_position(user, pool).amount == 0:
                raise ZeroAmountError(f"no position to withdraw (user={user}, pool={pool})")

            with self._transaction("withdraw", pool):
                self._accrue(pool)
                tokens = self.ledger.settle_token_reward(user, pool)
                shares, reward = self.ledger.debit(user, pool)
                owed = shares + reward
                gauge = self.converter.gauge_for(pool)
                gauge.withdraw(self.account, owed)
                self._collab.transfer.transfer(gauge.staking_token(), self.account, user, owed)
                if tokens:
                    self._collab.transfer.transfer(gauge.reward_token(), self.account, user, tokens)

        logger.info(
            "Withdraw completed",
            extra={
                "event": "vault.withdraw",
                "pool": pool,
                "user": user,
                "shares": shares,
                "reward": reward,
                "reward_tokens": tokens,
            },
        )
        return shares, reward

    def pending_reward(self, pool: PoolId, user: Owner) -> Amount:
        with self._lock:
            return self.ledger.pending_reward(user, pool)

    def pending_reward_tokens(self, pool: PoolId, user: Owner) -> Amount:
        """Reward owed in the reward token itself, paid out on withdraw."""
        with self._lock:
            return self.ledger.pending_token_reward(user, pool)

    def position(self, user: Owner, pool: PoolId) -> UserPosition:
        with self._lock:
            return self.ledger.table.peek_position(user, pool)

    def pool_account(self, pool: PoolId) -> PoolAccount:
        with self._lock:
            return self.ledger.table.peek_pool_account(pool)

    def execute(self, cmd: VaultCommand) -> VaultStepResult:
        """Execute a vault command, reporting input rejections as a failed result."""
        required = _COMMAND_ARGS.get(cmd.tag)
        if required is None:
            return VaultStepResult(ok=False, error=f"unknown action: {cmd.tag}", error_kind="UnknownAction")
        missing = [name for name in required if name not in cmd.args]
        if missing:
            return VaultStepResult(ok=False, error=f"missing params: {', '.join(missing)}", error_kind="InvalidParams")

        args = cmd.args
        try:
            if cmd.tag == "deposit":
                value: Any = self.deposit(args["user"], args["pool"], args["asset"], args["amount"])
            elif cmd.tag == "harvest":
                value = self.harvest(args["pool"])
            elif cmd.tag == "withdraw":
                value = self.withdraw(args["user"], args["pool"])
            else:
                value = self.pending_reward(args["pool"], args["user"])
        except (ZeroAmountError, RoutingError) as exc:
            return VaultStepResult(ok=False, error=str(exc), error_kind=type(exc).__name__)
        return VaultStepResult(ok=True, value=value)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _accrue(self, pool: PoolId) -> int:
        """
        Claim gauge reward for `pool` and attribute it to the current shares.

        Convertible claims are zapped into pool shares and distributed through
        the share index. Smaller claims stay in custody as reward tokens and are
        distributed through the token index at once.
        """
        gauge = self.converter.gauge_for(pool)
        reward_token = gauge.reward_token()
        claimed = gauge.get_reward(self.account)

        shares = 0
        tokens = 0
        if claimed > 0:
            target = self._collab.registry.pool(pool)
            if self.converter.can_convert(target, reward_token, claimed):
                shares = self.converter.zap_in(target, reward_token, claimed)
            else:
                tokens = claimed

        logger.debug(
            "Reward claimed",
            extra={"event": "vault.claim", "pool": pool, "claimed": claimed, "shares": shares, "tokens": tokens},
        )
        self.ledger.accrue_token_reward(pool, tokens)
        return self.ledger.accrue_reward(pool, shares)

    @contextmanager
    def _transaction(self, op: str, pool: PoolId) -> Iterator[None]:
        with self._lock:
            ledger_snapshot = self.ledger.table.snapshot()
            external: List[Tuple[Any, Any]] = [(c, c.snapshot()) for c in self._collab.transactional]
            try:
                yield
            except BaseException as exc:
                self.ledger.table.restore(ledger_snapshot)
                for collaborator, snap in reversed(external):
                    collaborator.restore(snap)
                logger.warning(
                    "Operation rolled back",
                    extra={"event": "vault.rollback", "op": op, "pool": pool, "error": repr(exc)},
                )
                raise
