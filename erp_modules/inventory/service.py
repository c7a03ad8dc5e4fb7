"""
Inventory Module Service (``erp_modules.inventory.service``).

Responsibility
--------------
Document-level stock adjustments and warehouse transfers.  Each call
records a document row, moves stock through ``InventoryLedger`` under that
row's id, and (for adjustments) posts the value change.

Invariants enforced
-------------------
* Adjustment entry: a gain posts Dr inventory / Cr inventory adjustments;
  a loss posts Dr inventory adjustments / Cr inventory.  A zero-value
  adjustment posts nothing.
* Transfers post no journal entry: value and account are unchanged.
* Each public method owns the transaction boundary.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from erp_kernel.domain.actor import Actor
from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.dtos import PostingLineBuilder
from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import (
    DocumentNotFoundError,
    InvalidStockMovementError,
    ItemNotFoundError,
    ValidationError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.item import Item, Warehouse
from erp_kernel.services.journal_poster import GeneralLedgerPoster
from erp_modules._posting_helpers import post_builder, resolve_asset_account
from erp_modules.inventory.config import InventoryConfig
from erp_modules.inventory.models import StockAdjustmentResult, StockTransferResult
from erp_modules.inventory.orm import StockAdjustment, StockTransfer
from erp_services.inventory_ledger import InventoryLedger

logger = get_logger("modules.inventory.service")


class InventoryService:
    """
    Stock adjustments and transfers.

    Contract:
        Receives a Session, optional InventoryConfig and Clock via
        constructor injection.
    """

    def __init__(
        self,
        session: Session,
        config: InventoryConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config or InventoryConfig()
        self._clock = clock or SystemClock()
        self._ledger = InventoryLedger(session, self._clock)
        self._poster = GeneralLedgerPoster(session, self._clock)

    def adjust_inventory(
        self,
        *,
        item_id: int,
        quantity_delta: int,
        reason: str,
        actor: Actor,
        new_unit_cost: int | None = None,
        warehouse_id: int | None = None,
        location_id: int | None = None,
        adjustment_date: date | None = None,
    ) -> StockAdjustmentResult:
        """
        Correct an item's stock by ``quantity_delta``.

        Raises:
            ValidationError: zero delta, blank reason or negative unit cost.
            InsufficientStockError: a loss larger than what is on hand.
        """
        try:
            if quantity_delta == 0:
                raise ValidationError("quantity_delta", "adjustment quantity cannot be zero")
            if not reason or not reason.strip():
                raise ValidationError("reason", "an adjustment needs a reason")
            if new_unit_cost is not None and new_unit_cost < 0:
                raise ValidationError("new_unit_cost", "cannot be negative")
            item = self._session.get(Item, item_id)
            if item is None:
                raise ItemNotFoundError(item_id)
            if warehouse_id is not None:
                self._load_warehouse(warehouse_id)

            adjustment_date = adjustment_date or self._clock.today()
            adjustment = StockAdjustment(
                item_id=item_id,
                warehouse_id=warehouse_id,
                location_id=location_id,
                adjustment_date=adjustment_date,
                quantity_delta=quantity_delta,
                unit_cost=new_unit_cost,
                reason=reason.strip(),
                created_by=actor.user_id,
            )
            self._session.add(adjustment)
            self._session.flush()

            movement = self._ledger.adjust_stock(
                item_id,
                quantity_delta,
                reason=adjustment.reason,
                source_id=adjustment.id,
                new_unit_cost=new_unit_cost,
                warehouse_id=warehouse_id,
                location_id=location_id,
                actor=actor,
            )
            adjustment.value_change = movement.value_change
            self._session.flush()

            asset_account = resolve_asset_account(
                item, self._config.item_class_accounts, self._config.fallback_asset_account,
            )
            value = abs(movement.value_change)
            builder = PostingLineBuilder()
            if movement.value_change > 0:
                builder.debit(asset_account, value, "Inventory gain")
                builder.credit(self._config.adjustment_account, value, adjustment.reason)
            else:
                builder.debit(self._config.adjustment_account, value, adjustment.reason)
                builder.credit(asset_account, value, "Inventory loss")
            entry = post_builder(
                self._poster,
                builder,
                actor=actor,
                entry_date=adjustment_date,
                description=f"Stock adjustment #{adjustment.id}: {adjustment.reason}",
                source_type=SourceType.STOCK_ADJUSTMENT,
                source_id=adjustment.id,
            )

            self._session.commit()
            logger.info("inventory_adjustment_committed", extra={
                "adjustment_id": adjustment.id,
                "item_id": item_id,
                "quantity_delta": quantity_delta,
                "value_change": movement.value_change,
            })
            return StockAdjustmentResult(
                adjustment_id=adjustment.id,
                item_id=item_id,
                adjustment_date=adjustment_date,
                quantity_delta=quantity_delta,
                value_change=movement.value_change,
                quantity_on_hand=item.quantity_on_hand,
                journal_entry_id=entry.id if entry else None,
            )

        except Exception:
            self._session.rollback()
            raise

    def transfer_inventory(
        self,
        *,
        item_id: int,
        quantity: int,
        from_warehouse_id: int,
        to_warehouse_id: int,
        actor: Actor,
        to_location_id: int | None = None,
        transfer_date: date | None = None,
        notes: str | None = None,
    ) -> StockTransferResult:
        """Move stock between warehouses, keeping each layer's cost and age."""
        try:
            if quantity <= 0:
                raise ValidationError("quantity", f"must be positive, got {quantity}")
            if from_warehouse_id == to_warehouse_id:
                raise InvalidStockMovementError(item_id, "source and destination warehouse are the same")
            self._load_warehouse(from_warehouse_id)
            self._load_warehouse(to_warehouse_id)

            transfer = StockTransfer(
                item_id=item_id,
                from_warehouse_id=from_warehouse_id,
                to_warehouse_id=to_warehouse_id,
                to_location_id=to_location_id,
                transfer_date=transfer_date or self._clock.today(),
                quantity=quantity,
                notes=notes,
                created_by=actor.user_id,
            )
            self._session.add(transfer)
            self._session.flush()

            movement = self._ledger.transfer_stock(
                item_id,
                quantity,
                from_warehouse_id=from_warehouse_id,
                to_warehouse_id=to_warehouse_id,
                to_location_id=to_location_id,
                source_id=transfer.id,
                actor=actor,
            )
            transfer.total_cost = movement.total_cost

            self._session.commit()
            logger.info("inventory_transfer_committed", extra={
                "transfer_id": transfer.id,
                "item_id": item_id,
                "quantity": quantity,
                "total_cost": movement.total_cost,
            })
            return StockTransferResult(
                transfer_id=transfer.id,
                item_id=item_id,
                quantity=quantity,
                total_cost=movement.total_cost,
                from_warehouse_id=from_warehouse_id,
                to_warehouse_id=to_warehouse_id,
                layer_ids=tuple(layer.id for layer in movement.layers),
            )

        except Exception:
            self._session.rollback()
            raise

    def _load_warehouse(self, warehouse_id: int) -> Warehouse:
        warehouse = self._session.get(Warehouse, warehouse_id)
        if warehouse is None:
            raise DocumentNotFoundError("Warehouse", warehouse_id)
        return warehouse
