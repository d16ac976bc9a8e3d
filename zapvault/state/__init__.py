"""
State management for the zap vault
"""

from .balances import Amount, AssetId, BalanceTable, Owner, PoolId
from .positions import PoolAccount, PositionTable, UserPosition

__all__ = [
    "Amount",
    "AssetId",
    "BalanceTable",
    "Owner",
    "PoolId",
    "PoolAccount",
    "PositionTable",
    "UserPosition",
]
