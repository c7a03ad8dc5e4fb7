"""
erp_services.system_reset_service -- Wipe transactional data, keep master data.

Responsibility:
    Deletes every document, movement and journal row so a test or demo
    database can start over, while items, warehouses, customers, vendors
    and the chart of accounts stay in place with zeroed caches.

Architecture position:
    Services -- destructive maintenance operation.  Works on table objects
    from ``Base.metadata`` so it does not import module ORM classes.

Invariants enforced:
    - ADMIN only, and only with the exact confirmation code.
    - Child tables are emptied before their parents (explicit order below).
    - All deletes and cache resets run in one transaction.

Failure modes:
    - PermissionDeniedError: actor is not ADMIN.
    - ResetConfirmationError: confirmation code mismatch.  Nothing is
      deleted in either case.

Audit relevance:
    - Logs a warning before the wipe and the per-table row counts after it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from erp_kernel.db.base import Base
from erp_kernel.domain.actor import Actor
from erp_kernel.exceptions import PermissionDeniedError, ResetConfirmationError
from erp_kernel.logging_config import get_logger
from erp_kernel.models.account import Account
from erp_kernel.models.item import Item
from erp_kernel.models.journal import JournalEntry

logger = get_logger("services.system_reset")

DEFAULT_CONFIRMATION_CODE = "DELETE-TEST-DATA"

# Children before parents.
TRANSACTIONAL_TABLES: tuple[str, ...] = (
    "ticket_assets",
    "service_tickets",
    "customer_assets",
    "payment_allocations",
    "bill_payment_allocations",
    "customer_payments",
    "vendor_payments",
    "invoice_lines",
    "invoices",
    "vendor_bill_lines",
    "vendor_bills",
    "purchase_order_lines",
    "purchase_orders",
    "stock_adjustments",
    "stock_transfers",
    "production_inputs",
    "production_costs",
    "production_runs",
    "layer_consumptions",
    "inventory_layers",
    "journal_lines",
    "journal_entries",
)


@dataclass(frozen=True)
class ResetReport:
    deleted: dict[str, int] = field(default_factory=dict)
    items_reset: int = 0
    accounts_reset: int = 0

    @property
    def total_deleted(self) -> int:
        return sum(self.deleted.values())


class SystemResetService:
    """
    Destructive reset of transactional data.

    Contract:
        Receives a Session and the expected confirmation code.
        ``reset_transactional_data`` owns its transaction.
    """

    def __init__(self, session: Session, confirmation_code: str = DEFAULT_CONFIRMATION_CODE):
        self._session = session
        self._confirmation_code = confirmation_code

    def reset_transactional_data(self, actor: Actor, confirmation: str) -> ResetReport:
        if not actor.is_admin:
            raise PermissionDeniedError(actor.user_id, actor.role.value, "reset_transactional_data")
        if confirmation != self._confirmation_code:
            logger.warning("system_reset_rejected", extra={"actor_id": actor.user_id})
            raise ResetConfirmationError(confirmation)

        from erp_modules._orm_registry import import_all_orm_models

        import_all_orm_models()
        logger.warning("system_reset_started", extra={"actor_id": actor.user_id})

        try:
            # Reversal entries point at the entries they reverse.
            self._session.execute(update(JournalEntry).values(reversal_of_id=None))

            deleted: dict[str, int] = {}
            for name in TRANSACTIONAL_TABLES:
                table = Base.metadata.tables[name]
                deleted[name] = self._session.execute(delete(table)).rowcount or 0

            items_reset = self._session.execute(
                update(Item).values(quantity_on_hand=0, average_cost=0, updated_by=actor.user_id)
            ).rowcount or 0
            accounts_reset = self._session.execute(
                update(Account).values(balance=0, updated_by=actor.user_id)
            ).rowcount or 0

            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        # Bulk statements bypass the identity map.
        self._session.expire_all()

        report = ResetReport(deleted=deleted, items_reset=items_reset, accounts_reset=accounts_reset)
        logger.warning("system_reset_completed", extra={
            "actor_id": actor.user_id,
            "deleted": deleted,
            "total_deleted": report.total_deleted,
            "items_reset": items_reset,
            "accounts_reset": accounts_reset,
        })
        return report
