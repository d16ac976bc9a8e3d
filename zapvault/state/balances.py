"""
Multi-asset balance tracking for vault custody and the reference venue.

Implements BalanceTable[Owner, AssetId] -> Amount
"""

from typing import Dict, Tuple


# Type aliases
Owner = str  # account identity (user, vault, gauge, pool)
AssetId = str  # token identifier
PoolId = str  # pool identifier (also the id of its liquidity share token)
Amount = int  # Non-negative integer (arbitrary precision)


class BalanceTable:
    """
    Balance table mapping (owner, asset) -> amount.

    Zero balances are omitted to keep the table sparse.
    """

    def __init__(self):
        self._balances: Dict[Tuple[Owner, AssetId], Amount] = {}

    def get(self, owner: Owner, asset: AssetId) -> Amount:
        """Get balance for (owner, asset). Returns 0 if not found."""
        return self._balances.get((owner, asset), 0)

    def set(self, owner: Owner, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (owner, asset).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((owner, asset), None)
        else:
            self._balances[(owner, asset)] = amount

    def add(self, owner: Owner, asset: AssetId, delta: int) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(owner, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient {asset} balance for {owner}: {current} + {delta} = {new_balance} < 0"
            )
        self.set(owner, asset, new_balance)

    def subtract(self, owner: Owner, asset: AssetId, delta: Amount) -> None:
        """Subtract a non-negative amount from a balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(owner, asset, -delta)

    def move(self, asset: AssetId, sender: Owner, recipient: Owner, amount: Amount) -> None:
        """
        Move `amount` of `asset` from sender to recipient as one unit.

        The sender is debited first; if that fails nothing changes.
        """
        if amount < 0:
            raise ValueError(f"Transfer amount must be non-negative: {amount}")
        if amount == 0 or sender == recipient:
            return
        self.subtract(sender, asset, amount)
        self.add(recipient, asset, amount)

    def total_supply(self, asset: AssetId) -> Amount:
        """Sum of all balances held in `asset`."""
        return sum(amount for (_owner, a), amount in self._balances.items() if a == asset)

    def get_all_balances(self) -> Dict[Tuple[Owner, AssetId], Amount]:
        return dict(self._balances)

    def copy(self) -> "BalanceTable":
        other = BalanceTable()
        other._balances = dict(self._balances)
        return other

    def verify_non_negative(self) -> bool:
        return all(amount >= 0 for amount in self._balances.values())

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
