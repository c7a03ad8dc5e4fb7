"""
Module: erp_kernel.models.item
Responsibility: ORM persistence for catalog items, warehouses and warehouse
    locations.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - sku is unique.
    - quantity_on_hand and average_cost are CACHED values derived from the
      inventory layer table.  Only InventoryLedger and the reconciliation
      resync write them.
    - SERVICE items never hold inventory layers.

Failure modes:
    - IntegrityError on duplicate sku or warehouse/location code.

Audit relevance:
    The cached fields may drift from the layers; drift is reported by
    InventoryReconciliationService.check_inventory_health() and corrected only
    by an explicit resync.
"""

from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import TrackedBase
from erp_kernel.db.types import enum_type


class ItemClass(str, Enum):
    """Inventory classification; drives the default asset account."""

    RAW_MATERIAL = "RAW_MATERIAL"
    WIP = "WIP"
    FINISHED_GOODS = "FINISHED_GOODS"
    SERVICE = "SERVICE"


class ValuationMethod(str, Enum):
    """Costing method recorded on the item (FIFO in observed usage)."""

    FIFO = "FIFO"
    WEIGHTED_AVG = "WEIGHTED_AVG"
    STANDARD = "STANDARD"


class Item(TrackedBase):
    """
    Catalog entry.

    Contract:
        Identity (sku), classification, costing method, cached stock
        position and the requires_installation flag that triggers service
        tickets when the item is sold.
    """

    __tablename__ = "items"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_item_sku"),
        Index("idx_item_class", "item_class"),
    )

    sku: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    item_class: Mapped[ItemClass] = mapped_column(
        enum_type(ItemClass), nullable=False, default=ItemClass.RAW_MATERIAL,
    )
    valuation_method: Mapped[ValuationMethod] = mapped_column(
        enum_type(ValuationMethod), nullable=False, default=ValuationMethod.FIFO,
    )

    # Overrides the item-class default inventory account when set
    asset_account_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    sales_price: Mapped[int] = mapped_column(nullable=False, default=0)
    standard_cost: Mapped[int] = mapped_column(nullable=False, default=0)

    # Cached; derived from inventory_layers
    quantity_on_hand: Mapped[int] = mapped_column(nullable=False, default=0)
    average_cost: Mapped[int] = mapped_column(nullable=False, default=0)

    requires_installation: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def is_stocked(self) -> bool:
        """True when the item is tracked through inventory layers."""
        return self.item_class != ItemClass.SERVICE

    def __repr__(self) -> str:
        return f"<Item #{self.id} {self.sku} qoh={self.quantity_on_hand}>"


class Warehouse(TrackedBase):
    """Physical warehouse."""

    __tablename__ = "warehouses"

    __table_args__ = (UniqueConstraint("code", name="uq_warehouse_code"),)

    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    locations: Mapped[list["WarehouseLocation"]] = relationship(
        back_populates="warehouse",
        cascade="all, delete-orphan",
    )


class WarehouseLocation(TrackedBase):
    """Bin / shelf inside a warehouse."""

    __tablename__ = "warehouse_locations"

    __table_args__ = (
        UniqueConstraint("warehouse_id", "code", name="uq_location_code"),
    )

    warehouse_id: Mapped[int] = mapped_column(ForeignKey("warehouses.id"), nullable=False)
    code: Mapped[str] = mapped_column(String(40), nullable=False)

    warehouse: Mapped[Warehouse] = relationship(back_populates="locations")
