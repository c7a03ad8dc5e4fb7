"""
erp_services.inventory_ledger -- FIFO cost layer ledger.

Responsibility:
    Owns the inventory_layers and layer_consumptions tables.  Creates a
    layer for every inbound movement, depletes layers oldest first for
    every outbound movement, restores exactly what a document consumed when
    that document is edited or deleted, and keeps the cached
    Item.quantity_on_hand / Item.average_cost in step with the layers.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes plan_fifo_depletion (erp_engines.valuation) for the pure
    depletion decision; this module only loads rows and applies the plan.

Invariants enforced:
    - 0 <= remaining_qty <= initial_qty on every layer.
    - is_depleted == (remaining_qty == 0).
    - FIFO order is (receive_date, id).
    - An issue that cannot be covered raises InsufficientStockError before
      any row is touched.
    - After every public operation the touched items satisfy
      quantity_on_hand == Σ remaining_qty of their layers.
    - Reversal restores each consumption once; a second reversal is a no-op.

Failure modes:
    - ItemNotFoundError: unknown item.
    - InvalidStockMovementError: movement of a SERVICE item, transfer to the
      same warehouse.
    - ValidationError: non-positive quantity, negative cost, zero adjustment.
    - InsufficientStockError: outbound quantity exceeds remaining stock.
    - LayerConsumedError: reversal of a document whose layers were already
      drawn by another document.

Concurrency:
    The item row and the candidate layers are read FOR UPDATE, in FIFO
    order, so concurrent issuers of the same item serialize instead of
    both depleting one layer.  SQLite ignores the clause and serializes
    writers at the database level.

Non-goals:
    - Does NOT commit.  The calling writer owns the transaction.
    - Does NOT post journal entries.  It reports costs; writers post.

Usage:
    ledger = InventoryLedger(session, clock)
    ledger.receive_stock(item.id, 10, 1_000_000,
                         source_type=SourceType.BILL, source_id=bill.id)
    result = ledger.issue_stock(item.id, 7,
                                source_type=SourceType.INVOICE, source_id=inv.id)
    result.total_cost
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from erp_engines.valuation import LayerSnapshot, calculate_weighted_average, plan_fifo_depletion
from erp_kernel.domain.actor import Actor
from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.money import divide_half_up
from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import (
    InvalidStockMovementError,
    ItemNotFoundError,
    LayerConsumedError,
    ValidationError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.inventory import InventoryLayer, LayerConsumption
from erp_kernel.models.item import Item

logger = get_logger("services.inventory_ledger")


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class IssueResult:
    """Outcome of one FIFO issue."""

    item_id: int
    quantity: int
    total_cost: int
    consumptions: tuple[LayerConsumption, ...]

    @property
    def unit_cost(self) -> int:
        return divide_half_up(self.total_cost, self.quantity)


@dataclass(frozen=True)
class AdjustmentResult:
    """Outcome of a stock adjustment; value_change is signed."""

    item_id: int
    quantity_delta: int
    value_change: int
    layer: InventoryLayer | None = None
    issue: IssueResult | None = None


@dataclass(frozen=True)
class TransferResult:
    item_id: int
    quantity: int
    total_cost: int
    issue: IssueResult
    layers: tuple[InventoryLayer, ...]


@dataclass(frozen=True)
class LedgerReversal:
    """What reverse_source undid."""

    source_type: SourceType
    source_id: int
    restored_quantity: int
    restored_cost: int
    consumptions_reversed: int
    layers_removed: int
    removed_value: int

    @property
    def is_noop(self) -> bool:
        return self.consumptions_reversed == 0 and self.layers_removed == 0


def _normalize_receive_date(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _snapshot(layer: InventoryLayer) -> LayerSnapshot:
    return LayerSnapshot(
        layer_id=layer.id,
        receive_date=layer.receive_date,
        remaining_quantity=layer.remaining_qty,
        unit_cost=layer.unit_cost,
        warehouse_id=layer.warehouse_id,
        location_id=layer.location_id,
        batch_number=layer.batch_number,
    )


# =============================================================================
# Ledger
# =============================================================================


class InventoryLedger:
    """
    FIFO cost layer ledger.

    Contract:
        Receives a Session (and optionally a Clock) via constructor
        injection.  Every method flushes its writes and leaves commit or
        rollback to the caller.

    Guarantees:
        - ``receive_stock`` adds exactly one layer.
        - ``issue_stock`` either depletes exactly ``quantity`` units or
          raises without mutation.
        - ``reverse_source`` returns the ledger to the state before the
          source's movements, or raises LayerConsumedError without mutation.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    # =========================================================================
    # Inbound
    # =========================================================================

    def receive_stock(
        self,
        item_id: int,
        quantity: int,
        unit_cost: int,
        *,
        source_type: SourceType,
        source_id: int,
        warehouse_id: int | None = None,
        location_id: int | None = None,
        batch_number: str | None = None,
        receive_date: datetime | None = None,
        reason: str | None = None,
        actor: Actor | None = None,
    ) -> InventoryLayer:
        """
        Create a layer of ``quantity`` units at ``unit_cost``.

        Preconditions:
            - quantity > 0, unit_cost >= 0.
            - The item exists and is a stocked item.
        Postconditions:
            - One new layer with remaining_qty == initial_qty == quantity.
            - Item cache refreshed.
        """
        if quantity <= 0:
            raise ValidationError("quantity", f"must be positive, got {quantity}")
        if unit_cost < 0:
            raise ValidationError("unit_cost", f"cannot be negative, got {unit_cost}")

        item = self._load_item(item_id)
        actor = actor or Actor.system()

        layer = InventoryLayer(
            item_id=item.id,
            warehouse_id=warehouse_id,
            location_id=location_id,
            batch_number=batch_number or f"{SourceType(source_type).value}-{source_id}-{item.id}",
            receive_date=_normalize_receive_date(receive_date or self._clock.now()),
            initial_qty=quantity,
            remaining_qty=quantity,
            unit_cost=unit_cost,
            is_depleted=False,
            source_type=source_type,
            source_id=source_id,
            reason=reason,
            created_by=actor.user_id,
        )
        self._session.add(layer)
        self._session.flush()
        self.refresh_item_cache(item.id)

        logger.info(
            "stock_received",
            extra={
                "item_id": item.id,
                "layer_id": layer.id,
                "quantity": quantity,
                "unit_cost": unit_cost,
                "warehouse_id": warehouse_id,
                "source_type": SourceType(source_type).value,
                "source_id": source_id,
            },
        )
        return layer

    # =========================================================================
    # Outbound
    # =========================================================================

    def issue_stock(
        self,
        item_id: int,
        quantity: int,
        *,
        source_type: SourceType,
        source_id: int,
        warehouse_id: int | None = None,
        actor: Actor | None = None,
    ) -> IssueResult:
        """
        Deplete ``quantity`` units, oldest layer first.

        Raises:
            InsufficientStockError: remaining stock (in ``warehouse_id`` when
                given) is less than ``quantity``.  Nothing is modified.
        """
        item = self._load_item(item_id)
        actor = actor or Actor.system()

        layers = self._open_layers(item.id, warehouse_id)
        snapshots = [_snapshot(layer) for layer in layers]

        plan = plan_fifo_depletion(item_id=item.id, layers=snapshots, quantity=quantity)

        by_id = {layer.id: layer for layer in layers}
        consumptions: list[LayerConsumption] = []
        for depletion in plan.depletions:
            layer = by_id[depletion.layer_id]
            layer.remaining_qty = depletion.remaining_after
            layer.is_depleted = depletion.depletes_layer
            layer.updated_by = actor.user_id
            consumption = LayerConsumption(
                layer_id=layer.id,
                item_id=item.id,
                quantity=depletion.quantity,
                unit_cost=depletion.unit_cost,
                source_type=source_type,
                source_id=source_id,
                is_reversed=False,
                created_by=actor.user_id,
            )
            self._session.add(consumption)
            consumptions.append(consumption)

        self._session.flush()
        self.refresh_item_cache(item.id)

        logger.info(
            "stock_issued",
            extra={
                "item_id": item.id,
                "quantity": quantity,
                "total_cost": plan.total_cost,
                "layers_touched": len(plan.depletions),
                "source_type": SourceType(source_type).value,
                "source_id": source_id,
            },
        )
        return IssueResult(
            item_id=item.id,
            quantity=quantity,
            total_cost=plan.total_cost,
            consumptions=tuple(consumptions),
        )

    # =========================================================================
    # Adjustments and transfers
    # =========================================================================

    def adjust_stock(
        self,
        item_id: int,
        quantity_delta: int,
        *,
        reason: str,
        source_id: int,
        source_type: SourceType = SourceType.STOCK_ADJUSTMENT,
        new_unit_cost: int | None = None,
        warehouse_id: int | None = None,
        location_id: int | None = None,
        actor: Actor | None = None,
    ) -> AdjustmentResult:
        """
        Move stock by ``quantity_delta``.

        A positive delta adds a reason-tagged layer at ``new_unit_cost``
        (the item's average cost when omitted).  A negative delta issues
        through the FIFO path and fails the same way an issue does.
        """
        if quantity_delta == 0:
            raise ValidationError("quantity_delta", "adjustment quantity cannot be zero")

        if quantity_delta > 0:
            item = self._load_item(item_id)
            unit_cost = item.average_cost if new_unit_cost is None else new_unit_cost
            layer = self.receive_stock(
                item_id,
                quantity_delta,
                unit_cost,
                source_type=source_type,
                source_id=source_id,
                warehouse_id=warehouse_id,
                location_id=location_id,
                batch_number=f"ADJ-{source_id}-{item_id}",
                reason=reason,
                actor=actor,
            )
            return AdjustmentResult(
                item_id=item_id,
                quantity_delta=quantity_delta,
                value_change=quantity_delta * unit_cost,
                layer=layer,
            )

        issue = self.issue_stock(
            item_id,
            -quantity_delta,
            source_type=source_type,
            source_id=source_id,
            warehouse_id=warehouse_id,
            actor=actor,
        )
        return AdjustmentResult(
            item_id=item_id,
            quantity_delta=quantity_delta,
            value_change=-issue.total_cost,
            issue=issue,
        )

    def transfer_stock(
        self,
        item_id: int,
        quantity: int,
        *,
        from_warehouse_id: int,
        to_warehouse_id: int,
        source_id: int,
        to_location_id: int | None = None,
        actor: Actor | None = None,
    ) -> TransferResult:
        """
        Move stock between warehouses without changing its value.

        Each source layer drawn yields one destination layer with the same
        unit cost, receive date and batch number, so FIFO age survives the
        move.
        """
        if from_warehouse_id == to_warehouse_id:
            raise InvalidStockMovementError(item_id, "source and destination warehouse are the same")
        actor = actor or Actor.system()

        issue = self.issue_stock(
            item_id,
            quantity,
            source_type=SourceType.STOCK_TRANSFER,
            source_id=source_id,
            warehouse_id=from_warehouse_id,
            actor=actor,
        )

        created: list[InventoryLayer] = []
        for consumption in issue.consumptions:
            origin = consumption.layer
            layer = InventoryLayer(
                item_id=item_id,
                warehouse_id=to_warehouse_id,
                location_id=to_location_id,
                batch_number=origin.batch_number,
                receive_date=origin.receive_date,
                initial_qty=consumption.quantity,
                remaining_qty=consumption.quantity,
                unit_cost=consumption.unit_cost,
                is_depleted=False,
                source_type=SourceType.STOCK_TRANSFER,
                source_id=source_id,
                reason=f"Transfer from warehouse {from_warehouse_id}",
                created_by=actor.user_id,
            )
            self._session.add(layer)
            created.append(layer)

        self._session.flush()
        self.refresh_item_cache(item_id)

        logger.info(
            "stock_transferred",
            extra={
                "item_id": item_id,
                "quantity": quantity,
                "from_warehouse_id": from_warehouse_id,
                "to_warehouse_id": to_warehouse_id,
                "total_cost": issue.total_cost,
            },
        )
        return TransferResult(
            item_id=item_id,
            quantity=quantity,
            total_cost=issue.total_cost,
            issue=issue,
            layers=tuple(created),
        )

    # =========================================================================
    # Reversal
    # =========================================================================

    def reverse_source(
        self,
        source_type: SourceType,
        source_id: int,
        actor: Actor | None = None,
    ) -> LedgerReversal:
        """
        Undo every movement recorded for one source document.

        Postconditions:
            - Each active consumption of the source is added back to its
              layer and marked reversed.
            - Each layer the source created is removed.
            - A second call finds nothing and returns a no-op result.

        Raises:
            LayerConsumedError: another document has drawn from a layer the
                source created.  Nothing is modified.
        """
        actor = actor or Actor.system()

        created = self._session.scalars(
            select(InventoryLayer)
            .where(
                InventoryLayer.source_type == source_type,
                InventoryLayer.source_id == source_id,
            )
            .order_by(InventoryLayer.id)
            .with_for_update()
        ).all()

        for layer in created:
            drawn_by_others = self._session.scalar(
                select(func.coalesce(func.sum(LayerConsumption.quantity), 0)).where(
                    LayerConsumption.layer_id == layer.id,
                    LayerConsumption.is_reversed.is_(False),
                    ~(
                        (LayerConsumption.source_type == source_type)
                        & (LayerConsumption.source_id == source_id)
                    ),
                )
            )
            if drawn_by_others:
                logger.warning(
                    "source_reversal_blocked",
                    extra={
                        "layer_id": layer.id,
                        "source_type": SourceType(source_type).value,
                        "source_id": source_id,
                        "consumed_quantity": drawn_by_others,
                    },
                )
                raise LayerConsumedError(
                    layer_id=layer.id,
                    source_type=SourceType(source_type).value,
                    source_id=source_id,
                    consumed_quantity=drawn_by_others,
                )

        consumptions = self._session.scalars(
            select(LayerConsumption)
            .where(
                LayerConsumption.source_type == source_type,
                LayerConsumption.source_id == source_id,
                LayerConsumption.is_reversed.is_(False),
            )
            .order_by(LayerConsumption.id)
        ).all()

        touched_items: set[int] = set()
        restored_quantity = 0
        restored_cost = 0
        for consumption in consumptions:
            layer = self._session.get(InventoryLayer, consumption.layer_id, with_for_update=True)
            layer.remaining_qty += consumption.quantity
            layer.is_depleted = False
            layer.updated_by = actor.user_id
            consumption.is_reversed = True
            consumption.updated_by = actor.user_id
            restored_quantity += consumption.quantity
            restored_cost += consumption.cost
            touched_items.add(consumption.item_id)

        self._session.flush()

        removed_value = 0
        for layer in created:
            removed_value += layer.remaining_value
            touched_items.add(layer.item_id)
            for history in list(layer.consumptions):
                self._session.delete(history)
            self._session.delete(layer)

        self._session.flush()
        for item_id in sorted(touched_items):
            self.refresh_item_cache(item_id)

        result = LedgerReversal(
            source_type=SourceType(source_type),
            source_id=source_id,
            restored_quantity=restored_quantity,
            restored_cost=restored_cost,
            consumptions_reversed=len(consumptions),
            layers_removed=len(created),
            removed_value=removed_value,
        )
        logger.info(
            "inventory_source_reversed",
            extra={
                "source_type": SourceType(source_type).value,
                "source_id": source_id,
                "consumptions_reversed": result.consumptions_reversed,
                "layers_removed": result.layers_removed,
                "restored_quantity": restored_quantity,
            },
        )
        return result

    # =========================================================================
    # Cache and queries
    # =========================================================================

    def refresh_item_cache(self, item_id: int) -> Item:
        """Recompute quantity_on_hand and average_cost from the layers."""
        item = self._session.get(Item, item_id)
        if item is None:
            raise ItemNotFoundError(item_id)

        position = calculate_weighted_average(
            _snapshot(layer) for layer in self.layers_for_item(item_id)
        )
        item.quantity_on_hand = position.quantity
        item.average_cost = position.average_cost
        self._session.flush()
        return item

    def available_quantity(self, item_id: int, warehouse_id: int | None = None) -> int:
        stmt = select(func.coalesce(func.sum(InventoryLayer.remaining_qty), 0)).where(
            InventoryLayer.item_id == item_id,
            InventoryLayer.is_depleted.is_(False),
        )
        if warehouse_id is not None:
            stmt = stmt.where(InventoryLayer.warehouse_id == warehouse_id)
        return int(self._session.scalar(stmt))

    def layers_for_item(self, item_id: int, include_depleted: bool = False) -> list[InventoryLayer]:
        stmt = select(InventoryLayer).where(InventoryLayer.item_id == item_id)
        if not include_depleted:
            stmt = stmt.where(InventoryLayer.is_depleted.is_(False))
        return list(
            self._session.scalars(
                stmt.order_by(InventoryLayer.receive_date, InventoryLayer.id)
            ).all()
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _load_item(self, item_id: int) -> Item:
        item = self._session.get(Item, item_id, with_for_update=True)
        if item is None:
            raise ItemNotFoundError(item_id)
        if not item.is_stocked:
            raise InvalidStockMovementError(item_id, "service items carry no inventory")
        return item

    def _open_layers(self, item_id: int, warehouse_id: int | None) -> list[InventoryLayer]:
        stmt = select(InventoryLayer).where(
            InventoryLayer.item_id == item_id,
            InventoryLayer.is_depleted.is_(False),
            InventoryLayer.remaining_qty > 0,
        )
        if warehouse_id is not None:
            stmt = stmt.where(InventoryLayer.warehouse_id == warehouse_id)
        stmt = stmt.order_by(InventoryLayer.receive_date, InventoryLayer.id).with_for_update()
        return list(self._session.scalars(stmt).all())
