"""
erp_services.reconciliation_service -- Cached aggregate drift detection and resync.

Responsibility:
    Loads the cached stock fields on items and the cached balances on
    accounts, compares them with the figures derived from inventory layers
    and journal lines, and rewrites the caches on explicit request.  Also
    checks each inventory GL account against the value of the layers of
    the items it carries.

Architecture position:
    Services -- stateful orchestration over engines + kernel.  The
    comparisons are the pure ``erp_engines.reconciliation`` functions; this
    module only does the I/O around them.

Invariants enforced:
    - Read operations never correct anything.  Drift is only fixed by
      ``resync_inventory_from_layers`` / ``resync_account_balances``.
    - Resync derives every figure from layers (items) or journal lines
      (accounts), the same formulas the ledger and poster maintain.

Failure modes:
    - Database errors propagate after rollback of the resync transaction.

Audit relevance:
    - Every resync logs how many rows were rewritten; an unhealthy check
      logs a warning with the discrepancy.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from erp_config.schema import ChartOfAccounts
from erp_engines.reconciliation import (
    AccountDrift,
    HealthSummary,
    InventoryGLSummary,
    ItemSyncStatus,
    compare_account_balance,
    compare_item_cache,
    reconcile_inventory_accounts,
    summarize_health,
)
from erp_engines.valuation import stock_position
from erp_kernel.domain.actor import Actor
from erp_kernel.logging_config import get_logger
from erp_kernel.models.account import Account
from erp_kernel.models.inventory import InventoryLayer
from erp_kernel.models.item import Item, ItemClass
from erp_kernel.selectors.ledger_selector import LedgerSelector

logger = get_logger("services.reconciliation")

DEFAULT_HEALTH_TOLERANCE = 100_000


@dataclass(frozen=True)
class ResyncResult:
    """How many cached rows a resync examined and rewrote."""
    checked: int
    updated: int


class InventoryReconciliationService:
    """
    Detects and repairs drift between cached aggregates and their sources.

    Contract:
        Receives a Session, the health tolerance (tiyin) and optionally
        the chart of accounts (the active configuration's when omitted).
        Check methods are read-only; resync methods own their transaction.

    Non-goals:
        - Does NOT repair layers or journal lines; those are the source of
          truth and are never rewritten here.
    """

    def __init__(
        self,
        session: Session,
        tolerance: int = DEFAULT_HEALTH_TOLERANCE,
        chart: ChartOfAccounts | None = None,
    ):
        if tolerance < 0:
            raise ValueError("tolerance cannot be negative")
        self._session = session
        self._tolerance = tolerance
        self._chart = chart

    # =========================================================================
    # Inventory
    # =========================================================================

    def audit_inventory_sync_status(self) -> list[ItemSyncStatus]:
        """Per-item comparison of cached quantity/cost against the layers."""
        totals = self._layer_totals()
        items = self._session.scalars(
            select(Item).where(Item.item_class != ItemClass.SERVICE).order_by(Item.id)
        ).all()
        statuses = []
        for item in items:
            position = stock_position(*totals.get(item.id, (0, 0)))
            statuses.append(
                compare_item_cache(
                    item_id=item.id,
                    sku=item.sku,
                    cached_quantity=item.quantity_on_hand,
                    cached_average_cost=item.average_cost,
                    layer_quantity=position.quantity,
                    layer_value=position.total_value,
                    layer_average_cost=position.average_cost,
                )
            )
        return statuses

    def check_inventory_health(self) -> HealthSummary:
        """Total layer value against total cached value, within tolerance."""
        summary = summarize_health(self.audit_inventory_sync_status(), self._tolerance)
        extra = {
            "total_items": summary.total_items,
            "out_of_sync_count": summary.out_of_sync_count,
            "layer_value": summary.layer_value,
            "cached_value": summary.cached_value,
            "discrepancy": summary.discrepancy,
            "tolerance": summary.tolerance,
        }
        if summary.is_healthy:
            logger.info("inventory_health_ok", extra=extra)
        else:
            logger.warning("inventory_health_degraded", extra=extra)
        return summary

    def resync_inventory_from_layers(self, actor: Actor | None = None) -> ResyncResult:
        """Rewrite quantity_on_hand and average_cost of every drifted item."""
        actor = actor or Actor.system()
        try:
            statuses = self.audit_inventory_sync_status()
            updated = 0
            for status in statuses:
                if status.in_sync:
                    continue
                item = self._session.get(Item, status.item_id, with_for_update=True)
                logger.info("inventory_cache_resynced", extra={
                    "item_id": item.id,
                    "sku": item.sku,
                    "old_quantity": item.quantity_on_hand,
                    "new_quantity": status.layer_quantity,
                    "old_average_cost": item.average_cost,
                    "new_average_cost": status.layer_average_cost,
                })
                item.quantity_on_hand = status.layer_quantity
                item.average_cost = status.layer_average_cost
                item.updated_by = actor.user_id
                updated += 1
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("inventory_resync_completed", extra={
            "items_checked": len(statuses),
            "items_updated": updated,
            "actor_id": actor.user_id,
        })
        return ResyncResult(checked=len(statuses), updated=updated)

    def check_inventory_gl_reconciliation(self) -> InventoryGLSummary:
        """
        Each inventory GL account against the layer value it should carry.

        Items map to accounts the way the writers post them: the item's
        override, else its class account.  Class accounts are reported even
        when no item uses them.  SERVICE items carry no layers and are left
        out.
        """
        chart = self._active_chart()
        totals = self._layer_totals()
        items = self._session.scalars(
            select(Item).where(Item.item_class != ItemClass.SERVICE).order_by(Item.id)
        ).all()
        item_values = [
            (
                chart.asset_account_for(item.item_class, item.asset_account_code),
                ItemClass(item.item_class).value,
                totals.get(item.id, (0, 0))[1],
            )
            for item in items
        ]
        required = {
            code for item_class, code in chart.item_class_accounts.items()
            if item_class != ItemClass.SERVICE
        }
        gl_balances = {
            row.account_code: row.balance
            for row in LedgerSelector(self._session).trial_balance().rows
        }

        summary = reconcile_inventory_accounts(
            gl_balances=gl_balances,
            item_values=item_values,
            required_accounts=required,
            tolerance=self._tolerance,
        )
        extra = {
            "gl_total": summary.gl_total,
            "layer_total": summary.layer_total,
            "discrepancy": summary.discrepancy,
            "accounts": {a.account_code: a.discrepancy for a in summary.accounts},
        }
        if summary.is_reconciled:
            logger.info("inventory_gl_reconciled", extra=extra)
        else:
            logger.warning("inventory_gl_discrepancy", extra=extra)
        return summary

    # =========================================================================
    # Accounts
    # =========================================================================

    def check_account_balances(self) -> list[AccountDrift]:
        """Cached Account.balance against the journal-line derived balance."""
        derived = {
            row.account_code: row.balance
            for row in LedgerSelector(self._session).trial_balance().rows
        }
        accounts = self._session.scalars(select(Account).order_by(Account.code)).all()
        drifts = [
            compare_account_balance(a.code, a.balance, derived.get(a.code, 0))
            for a in accounts
        ]
        mismatched = [d.account_code for d in drifts if not d.in_sync]
        if mismatched:
            logger.warning("account_balance_drift_detected", extra={
                "account_codes": mismatched,
            })
        return drifts

    def resync_account_balances(self, actor: Actor | None = None) -> ResyncResult:
        """Rewrite every drifted cached balance from the journal lines."""
        actor = actor or Actor.system()
        try:
            drifts = self.check_account_balances()
            updated = 0
            for drift in drifts:
                if drift.in_sync:
                    continue
                account = self._session.scalars(
                    select(Account).where(Account.code == drift.account_code).with_for_update()
                ).one()
                account.balance = drift.derived_balance
                account.updated_by = actor.user_id
                updated += 1
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("account_resync_completed", extra={
            "accounts_checked": len(drifts),
            "accounts_updated": updated,
            "actor_id": actor.user_id,
        })
        return ResyncResult(checked=len(drifts), updated=updated)

    def _layer_totals(self) -> dict[int, tuple[int, int]]:
        rows = self._session.execute(
            select(
                InventoryLayer.item_id,
                func.coalesce(func.sum(InventoryLayer.remaining_qty), 0),
                func.coalesce(
                    func.sum(InventoryLayer.remaining_qty * InventoryLayer.unit_cost), 0,
                ),
            )
            .where(InventoryLayer.is_depleted.is_(False))
            .group_by(InventoryLayer.item_id)
        ).all()
        return {item_id: (int(qty), int(value)) for item_id, qty, value in rows}

    def _active_chart(self) -> ChartOfAccounts:
        if self._chart is None:
            from erp_config import get_active_config

            self._chart = get_active_config().chart_of_accounts
        return self._chart
