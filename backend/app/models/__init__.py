from .settings import AppSetting
from .coal_inventory import (
    CoalInventoryTransaction,
    CoalInventorySummary,
    TransactionReason,
)

__all__ = [
    'AppSetting',
    'CoalInventoryTransaction', 'CoalInventorySummary', 'TransactionReason',
]
