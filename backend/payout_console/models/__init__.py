from .auth import User, SessionToken
from .catalog import Brand, InventoryItem
from .sales import LedgerClock, SaleRecord

__all__ = [
    'User', 'SessionToken',
    'Brand', 'InventoryItem',
    'SaleRecord', 'LedgerClock',
]
