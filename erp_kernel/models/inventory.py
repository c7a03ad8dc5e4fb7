"""
Module: erp_kernel.models.inventory
Responsibility: ORM persistence for inventory cost layers and the per-layer
    consumption records written by every outbound movement.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - 0 <= remaining_qty <= initial_qty (CHECK constraint).
    - is_depleted mirrors remaining_qty == 0 (maintained by InventoryLedger).
    - FIFO order is (receive_date, id); idx_layer_fifo serves that scan.
    - A LayerConsumption row records exactly what one document drew from one
      layer, so reversal restores the same quantities to the same layers.

Failure modes:
    - IntegrityError if a write would push remaining_qty outside its bounds.

Audit relevance:
    Layers are the source of truth for stock and cost.  Item.quantity_on_hand
    and Item.average_cost are a cache over this table.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import TrackedBase
from erp_kernel.db.types import enum_type
from erp_kernel.domain.source import SourceType


class InventoryLayer(TrackedBase):
    """
    One inbound batch of stock at one unit cost.

    Contract:
        Created by every inbound movement (purchase receipt, production
        output, positive adjustment, transfer-in).  Decremented oldest first
        by every outbound movement.
    """

    __tablename__ = "inventory_layers"

    __table_args__ = (
        CheckConstraint("remaining_qty >= 0", name="ck_layer_remaining_non_negative"),
        CheckConstraint("remaining_qty <= initial_qty", name="ck_layer_remaining_le_initial"),
        CheckConstraint("unit_cost >= 0", name="ck_layer_unit_cost_non_negative"),
        Index("idx_layer_fifo", "item_id", "is_depleted", "receive_date", "id"),
        Index("idx_layer_source", "source_type", "source_id"),
        Index("idx_layer_warehouse", "item_id", "warehouse_id"),
    )

    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    warehouse_id: Mapped[int | None] = mapped_column(
        ForeignKey("warehouses.id"), nullable=True,
    )
    location_id: Mapped[int | None] = mapped_column(
        ForeignKey("warehouse_locations.id"), nullable=True,
    )

    batch_number: Mapped[str] = mapped_column(String(64), nullable=False)
    receive_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    initial_qty: Mapped[int] = mapped_column(nullable=False)
    remaining_qty: Mapped[int] = mapped_column(nullable=False)
    unit_cost: Mapped[int] = mapped_column(nullable=False)
    is_depleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Originating document (None for opening balances loaded by hand)
    source_type: Mapped[SourceType | None] = mapped_column(
        enum_type(SourceType), nullable=True,
    )
    source_id: Mapped[int | None] = mapped_column(nullable=True)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    consumptions: Mapped[list["LayerConsumption"]] = relationship(
        back_populates="layer",
    )

    @property
    def remaining_value(self) -> int:
        return self.remaining_qty * self.unit_cost

    def __repr__(self) -> str:
        return (
            f"<InventoryLayer #{self.id} item={self.item_id} "
            f"{self.remaining_qty}/{self.initial_qty} @ {self.unit_cost}>"
        )


class LayerConsumption(TrackedBase):
    """
    Quantity one document drew from one layer.

    Contract:
        Written once per layer touched by an issue.  ``is_reversed`` flips
        when the owning document is edited or deleted; a reversed consumption
        is never restored again.
    """

    __tablename__ = "layer_consumptions"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_consumption_quantity_positive"),
        Index("idx_consumption_source", "source_type", "source_id", "is_reversed"),
        Index("idx_consumption_layer", "layer_id"),
    )

    layer_id: Mapped[int] = mapped_column(ForeignKey("inventory_layers.id"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_cost: Mapped[int] = mapped_column(nullable=False)

    source_type: Mapped[SourceType] = mapped_column(enum_type(SourceType), nullable=False)
    source_id: Mapped[int] = mapped_column(nullable=False)

    is_reversed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    layer: Mapped[InventoryLayer] = relationship(back_populates="consumptions")

    @property
    def cost(self) -> int:
        return self.quantity * self.unit_cost
