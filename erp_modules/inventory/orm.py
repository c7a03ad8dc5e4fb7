"""
Inventory ORM Models (``erp_modules.inventory.orm``).

Document records for stock adjustments and warehouse transfers.  The
movements themselves are layers and consumptions keyed by
``(STOCK_ADJUSTMENT | STOCK_TRANSFER, id)`` of these rows.
"""

from datetime import date

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import TrackedBase


class StockAdjustment(TrackedBase):
    """A counted correction of one item's stock."""

    __tablename__ = "stock_adjustments"

    __table_args__ = (
        CheckConstraint("quantity_delta <> 0", name="ck_adjustment_non_zero"),
        Index("idx_stock_adjustments_item", "item_id"),
    )

    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    warehouse_id: Mapped[int | None] = mapped_column(ForeignKey("warehouses.id"), nullable=True)
    location_id: Mapped[int | None] = mapped_column(
        ForeignKey("warehouse_locations.id"), nullable=True,
    )
    adjustment_date: Mapped[date] = mapped_column(Date, nullable=False)
    quantity_delta: Mapped[int] = mapped_column(nullable=False)
    unit_cost: Mapped[int | None] = mapped_column(nullable=True)
    value_change: Mapped[int] = mapped_column(nullable=False, default=0)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<StockAdjustment #{self.id} item={self.item_id} {self.quantity_delta:+d}>"


class StockTransfer(TrackedBase):
    """Stock moved between two warehouses at unchanged cost."""

    __tablename__ = "stock_transfers"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transfer_quantity_positive"),
        CheckConstraint("from_warehouse_id <> to_warehouse_id", name="ck_transfer_distinct_warehouses"),
        Index("idx_stock_transfers_item", "item_id"),
    )

    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    from_warehouse_id: Mapped[int] = mapped_column(ForeignKey("warehouses.id"), nullable=False)
    to_warehouse_id: Mapped[int] = mapped_column(ForeignKey("warehouses.id"), nullable=False)
    to_location_id: Mapped[int | None] = mapped_column(
        ForeignKey("warehouse_locations.id"), nullable=True,
    )
    transfer_date: Mapped[date] = mapped_column(Date, nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    total_cost: Mapped[int] = mapped_column(nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
