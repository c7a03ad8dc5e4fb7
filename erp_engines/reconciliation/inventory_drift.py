"""
Module: erp_engines.reconciliation.inventory_drift
Responsibility:
    Compare the cached stock fields on items (and the cached balances on
    accounts) with the values derived from the layer and journal-line
    tables, and summarize the result.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The reconciliation
    service loads the rows and applies any correction.

Invariants enforced:
    - Detection only.  Nothing here writes; drift is corrected solely by an
      explicit resync.
    - An item is out of sync when its cached quantity, average cost or
      value differs from the layer-derived figure.
    - The system is healthy while |layer value - cached value| is within
      the configured tolerance.
    - An inventory GL account reconciles while its journal-line balance
      differs from the value of the layers it carries by no more than
      the tolerance.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class ItemSyncStatus:
    item_id: int
    sku: str
    cached_quantity: int
    cached_average_cost: int
    layer_quantity: int
    layer_value: int
    layer_average_cost: int

    @property
    def cached_value(self) -> int:
        return self.cached_quantity * self.cached_average_cost

    @property
    def quantity_drift(self) -> int:
        return self.cached_quantity - self.layer_quantity

    @property
    def cost_drift(self) -> int:
        return self.cached_average_cost - self.layer_average_cost

    @property
    def value_drift(self) -> int:
        return self.cached_value - self.layer_value

    @property
    def in_sync(self) -> bool:
        return self.quantity_drift == 0 and self.cost_drift == 0 and self.value_drift == 0


@dataclass(frozen=True)
class HealthSummary:
    total_items: int
    out_of_sync_count: int
    layer_value: int
    cached_value: int
    tolerance: int

    @property
    def discrepancy(self) -> int:
        return abs(self.layer_value - self.cached_value)

    @property
    def is_healthy(self) -> bool:
        return self.discrepancy <= self.tolerance


@dataclass(frozen=True)
class AccountDrift:
    account_code: str
    cached_balance: int
    derived_balance: int

    @property
    def difference(self) -> int:
        return self.cached_balance - self.derived_balance

    @property
    def in_sync(self) -> bool:
        return self.difference == 0


@dataclass(frozen=True)
class InventoryAccountReconciliation:
    """One inventory GL account against the layers of the items it carries."""

    account_code: str
    item_classes: tuple[str, ...]
    item_count: int
    gl_balance: int
    layer_value: int

    @property
    def discrepancy(self) -> int:
        return self.gl_balance - self.layer_value


@dataclass(frozen=True)
class InventoryGLSummary:
    accounts: tuple[InventoryAccountReconciliation, ...]
    tolerance: int

    @property
    def gl_total(self) -> int:
        return sum(a.gl_balance for a in self.accounts)

    @property
    def layer_total(self) -> int:
        return sum(a.layer_value for a in self.accounts)

    @property
    def discrepancy(self) -> int:
        return self.gl_total - self.layer_total

    @property
    def is_reconciled(self) -> bool:
        return all(abs(a.discrepancy) <= self.tolerance for a in self.accounts)


def compare_item_cache(
    *,
    item_id: int,
    sku: str,
    cached_quantity: int,
    cached_average_cost: int,
    layer_quantity: int,
    layer_value: int,
    layer_average_cost: int,
) -> ItemSyncStatus:
    return ItemSyncStatus(
        item_id=item_id,
        sku=sku,
        cached_quantity=cached_quantity,
        cached_average_cost=cached_average_cost,
        layer_quantity=layer_quantity,
        layer_value=layer_value,
        layer_average_cost=layer_average_cost,
    )


def compare_account_balance(
    account_code: str, cached_balance: int, derived_balance: int,
) -> AccountDrift:
    return AccountDrift(
        account_code=account_code,
        cached_balance=cached_balance,
        derived_balance=derived_balance,
    )


def summarize_health(statuses: Sequence[ItemSyncStatus], tolerance: int) -> HealthSummary:
    return HealthSummary(
        total_items=len(statuses),
        out_of_sync_count=sum(1 for s in statuses if not s.in_sync),
        layer_value=sum(s.layer_value for s in statuses),
        cached_value=sum(s.cached_value for s in statuses),
        tolerance=tolerance,
    )


def reconcile_inventory_accounts(
    *,
    gl_balances: dict[str, int],
    item_values: Iterable[tuple[str, str, int]],
    required_accounts: Iterable[str],
    tolerance: int,
) -> InventoryGLSummary:
    """
    Group item layer values by inventory account and compare with the GL.

    ``item_values`` holds one ``(account_code, item_class, layer_value)``
    per stocked item.  ``required_accounts`` are reported even when no
    item maps to them, so a balance left on an unused account shows up.
    """
    classes: dict[str, set[str]] = {code: set() for code in required_accounts}
    counts: dict[str, int] = {code: 0 for code in classes}
    values: dict[str, int] = {code: 0 for code in classes}
    for account_code, item_class, layer_value in item_values:
        classes.setdefault(account_code, set()).add(item_class)
        counts[account_code] = counts.get(account_code, 0) + 1
        values[account_code] = values.get(account_code, 0) + layer_value

    accounts = tuple(
        InventoryAccountReconciliation(
            account_code=code,
            item_classes=tuple(sorted(classes[code])),
            item_count=counts[code],
            gl_balance=gl_balances.get(code, 0),
            layer_value=values[code],
        )
        for code in sorted(classes)
    )
    return InventoryGLSummary(accounts=accounts, tolerance=tolerance)
