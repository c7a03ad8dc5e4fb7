"""
Production ORM Models (``erp_modules.production.orm``).

Persistence for production runs, the inputs each run consumed and the
overhead applied to it.  The output layer itself lives in
``inventory_layers`` with ``source_type = PRODUCTION_RUN``.
"""

from datetime import date

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import TrackedBase
from erp_kernel.db.types import enum_type
from erp_modules.production.models import (
    ConsumedInput,
    ProductionResult,
    ProductionRunStatus,
    ProductionRunType,
)


class ProductionRun(TrackedBase):
    """
    One completed run.

    Guarantees:
        - total_cost == input_cost + overhead_cost.
        - unit_cost * output_quantity + rounding_variance == total_cost.
        - output_quantity > 0.
    """

    __tablename__ = "production_runs"

    __table_args__ = (
        CheckConstraint("output_quantity > 0", name="ck_run_output_positive"),
        CheckConstraint("waste_quantity >= 0", name="ck_run_waste_non_negative"),
        Index("idx_production_runs_date", "run_date"),
        Index("idx_production_runs_output_item", "output_item_id"),
    )

    run_type: Mapped[ProductionRunType] = mapped_column(
        enum_type(ProductionRunType), nullable=False, default=ProductionRunType.MIXING,
    )
    status: Mapped[ProductionRunStatus] = mapped_column(
        enum_type(ProductionRunStatus), nullable=False, default=ProductionRunStatus.COMPLETED,
    )
    run_date: Mapped[date] = mapped_column(Date, nullable=False)

    output_item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    output_quantity: Mapped[int] = mapped_column(nullable=False)
    waste_quantity: Mapped[int] = mapped_column(nullable=False, default=0)
    warehouse_id: Mapped[int | None] = mapped_column(ForeignKey("warehouses.id"), nullable=True)
    location_id: Mapped[int | None] = mapped_column(
        ForeignKey("warehouse_locations.id"), nullable=True,
    )

    input_cost: Mapped[int] = mapped_column(nullable=False, default=0)
    overhead_cost: Mapped[int] = mapped_column(nullable=False, default=0)
    total_cost: Mapped[int] = mapped_column(nullable=False, default=0)
    unit_cost: Mapped[int] = mapped_column(nullable=False, default=0)
    # Signed; debited (positive) or credited (negative) to the variance account
    rounding_variance: Mapped[int] = mapped_column(nullable=False, default=0)
    batch_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    inputs: Mapped[list["ProductionInput"]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="ProductionInput.id",
    )
    costs: Mapped[list["ProductionCost"]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="ProductionCost.id",
    )

    def to_result(self, journal_entry_id: int | None = None) -> ProductionResult:
        return ProductionResult(
            run_id=self.id,
            run_type=self.run_type,
            run_date=self.run_date,
            output_item_id=self.output_item_id,
            output_quantity=self.output_quantity,
            input_cost=self.input_cost,
            overhead_cost=self.overhead_cost,
            unit_cost=self.unit_cost,
            batch_number=self.batch_number or "",
            rounding_variance=self.rounding_variance,
            inputs=tuple(
                ConsumedInput(
                    item_id=line.item_id,
                    quantity=line.quantity,
                    total_cost=line.total_cost,
                    asset_account=line.asset_account_code,
                )
                for line in self.inputs
            ),
            journal_entry_id=journal_entry_id,
        )

    def __repr__(self) -> str:
        return f"<ProductionRun #{self.id} {self.run_type.value} item={self.output_item_id} x{self.output_quantity}>"


class ProductionInput(TrackedBase):
    """Stock one run consumed, at its FIFO cost."""

    __tablename__ = "production_inputs"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_production_input_positive"),
        Index("idx_production_inputs_run", "run_id"),
    )

    run_id: Mapped[int] = mapped_column(ForeignKey("production_runs.id"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_cost: Mapped[int] = mapped_column(nullable=False, default=0)
    total_cost: Mapped[int] = mapped_column(nullable=False, default=0)
    asset_account_code: Mapped[str] = mapped_column(String(20), nullable=False)

    run: Mapped[ProductionRun] = relationship(back_populates="inputs")


class ProductionCost(TrackedBase):
    """Overhead applied to one run."""

    __tablename__ = "production_costs"

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_production_cost_non_negative"),
    )

    run_id: Mapped[int] = mapped_column(ForeignKey("production_runs.id"), nullable=False)
    cost_type: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)

    run: Mapped[ProductionRun] = relationship(back_populates="costs")
