"""
Inventory Module (``erp_modules.inventory``).

Stock adjustments and warehouse transfers recorded as documents on top of
the FIFO ledger in ``erp_services.inventory_ledger``.
"""

from erp_modules.inventory.config import InventoryConfig
from erp_modules.inventory.models import StockAdjustmentResult, StockTransferResult
from erp_modules.inventory.service import InventoryService

__all__ = [
    "InventoryConfig",
    "InventoryService",
    "StockAdjustmentResult",
    "StockTransferResult",
]
