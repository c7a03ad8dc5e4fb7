"""
Inventory Module Models (``erp_modules.inventory.models``).

Frozen results returned by ``InventoryService``.  ``value_change`` is signed:
positive when stock value was added, negative when it was written off.
"""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class StockAdjustmentResult:
    adjustment_id: int
    item_id: int
    adjustment_date: date
    quantity_delta: int
    value_change: int
    quantity_on_hand: int
    journal_entry_id: int | None = None


@dataclass(frozen=True)
class StockTransferResult:
    transfer_id: int
    item_id: int
    quantity: int
    total_cost: int
    from_warehouse_id: int
    to_warehouse_id: int
    layer_ids: tuple[int, ...]
