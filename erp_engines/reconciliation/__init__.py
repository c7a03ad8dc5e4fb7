"""Reconciliation engines: pure comparisons of cached and derived values."""

from erp_engines.reconciliation.inventory_drift import (
    AccountDrift,
    HealthSummary,
    InventoryAccountReconciliation,
    InventoryGLSummary,
    ItemSyncStatus,
    compare_account_balance,
    compare_item_cache,
    reconcile_inventory_accounts,
    summarize_health,
)

__all__ = [
    "AccountDrift",
    "HealthSummary",
    "InventoryAccountReconciliation",
    "InventoryGLSummary",
    "ItemSyncStatus",
    "compare_account_balance",
    "compare_item_cache",
    "reconcile_inventory_accounts",
    "summarize_health",
]
