"""Domain models for the ERP kernel."""

from erp_kernel.models.account import Account, AccountType, signed_amount
from erp_kernel.models.inventory import InventoryLayer, LayerConsumption
from erp_kernel.models.item import (
    Item,
    ItemClass,
    ValuationMethod,
    Warehouse,
    WarehouseLocation,
)
from erp_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine

__all__ = [
    "Account",
    "AccountType",
    "signed_amount",
    "InventoryLayer",
    "LayerConsumption",
    "Item",
    "ItemClass",
    "ValuationMethod",
    "Warehouse",
    "WarehouseLocation",
    "JournalEntry",
    "JournalEntryStatus",
    "JournalLine",
]
