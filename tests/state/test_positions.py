from __future__ import annotations

import pytest

from zapvault.state.balances import BalanceTable
from zapvault.state.positions import PoolAccount, PositionTable, UserPosition


def test_position_lookup_creates_zeroed_record_once() -> None:
    table = PositionTable()
    rec = table.position("alice", "p1")
    assert rec == UserPosition(amount=0, reward_debt=0)
    rec.amount = 5
    assert table.position("alice", "p1").amount == 5
    assert table.pool_account("p1") == PoolAccount()


def test_peek_does_not_create_or_alias() -> None:
    table = PositionTable()
    peeked = table.peek_position("bob", "p1")
    assert peeked.is_zero()
    assert table.get_all_positions() == {}

    table.position("bob", "p1").amount = 7
    copy_ = table.peek_position("bob", "p1")
    copy_.amount = 99
    assert table.position("bob", "p1").amount == 7


def test_zeroed_position_is_kept() -> None:
    table = PositionTable()
    rec = table.position("alice", "p1")
    rec.amount = 3
    rec.amount = 0
    assert ("alice", "p1") in table.get_all_positions()


def test_verify_conservation() -> None:
    table = PositionTable()
    table.position("a", "p").amount = 4
    table.position("b", "p").amount = 6
    table.pool_account("p").total_shares = 10
    assert table.verify_conservation("p")
    table.pool_account("p").total_shares = 11
    assert not table.verify_conservation("p")


def test_snapshot_restore_is_deep() -> None:
    table = PositionTable()
    table.position("a", "p").amount = 4
    table.pool_account("p").reward_index = 10
    snap = table.snapshot()

    table.position("a", "p").amount = 0
    table.pool_account("p").reward_index = 50
    table.position("c", "p").amount = 1

    table.restore(snap)
    assert table.position("a", "p").amount == 4
    assert table.pool_account("p").reward_index == 10
    assert ("c", "p") not in table.get_all_positions()

    # Restoring must not alias the snapshot.
    table.position("a", "p").amount = 8
    table.restore(snap)
    assert table.position("a", "p").amount == 4


class TestBalanceTable:
    def test_move_is_all_or_nothing(self) -> None:
        balances = BalanceTable()
        balances.add("a", "X", 10)
        with pytest.raises(ValueError):
            balances.move("X", "a", "b", 11)
        assert balances.get("a", "X") == 10
        assert balances.get("b", "X") == 0

        balances.move("X", "a", "b", 4)
        assert balances.get("a", "X") == 6
        assert balances.get("b", "X") == 4
        assert balances.total_supply("X") == 10

    def test_zero_balances_are_dropped(self) -> None:
        balances = BalanceTable()
        balances.add("a", "X", 3)
        balances.subtract("a", "X", 3)
        assert balances.get_all_balances() == {}

    def test_copy_is_independent(self) -> None:
        balances = BalanceTable()
        balances.add("a", "X", 3)
        other = balances.copy()
        other.add("a", "X", 1)
        assert balances.get("a", "X") == 3
