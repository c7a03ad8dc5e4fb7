"""
Purchasing ORM Models (``erp_modules.purchasing.orm``).

Responsibility
--------------
SQLAlchemy persistence for vendors, purchase orders, vendor bills and their
lines, vendor payments and the allocation of payments to bills.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``erp_kernel.db`` and the
sibling ``models.py``.  MUST NOT be imported by ``erp_kernel``.
"""

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import TrackedBase
from erp_kernel.db.types import enum_type
from erp_kernel.domain.payment import PaymentMethod
from erp_modules.purchasing.models import (
    ApprovalStatus,
    BillResult,
    BillStatus,
    PurchaseOrderLineResult,
    PurchaseOrderResult,
    PurchaseOrderStatus,
)


class Vendor(TrackedBase):
    """Supplier master record."""

    __tablename__ = "vendors"

    __table_args__ = (Index("idx_vendors_name", "name"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Vendor #{self.id} {self.name}>"


class VendorBill(TrackedBase):
    """
    Vendor bill header.

    Guarantees:
        - bill_number is unique.
        - amount_paid <= total_amount (CHECK).
        - Lines cascade with the bill.
    """

    __tablename__ = "vendor_bills"

    __table_args__ = (
        UniqueConstraint("bill_number", name="uq_vendor_bills_bill_number"),
        CheckConstraint("amount_paid >= 0", name="ck_bill_paid_non_negative"),
        CheckConstraint("amount_paid <= total_amount", name="ck_bill_paid_le_total"),
        Index("idx_vendor_bills_vendor_id", "vendor_id"),
        Index("idx_vendor_bills_status", "status"),
    )

    vendor_id: Mapped[int] = mapped_column(ForeignKey("vendors.id"), nullable=False)
    bill_number: Mapped[str] = mapped_column(String(50), nullable=False)
    bill_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[BillStatus] = mapped_column(
        enum_type(BillStatus), nullable=False, default=BillStatus.OPEN,
    )
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        enum_type(ApprovalStatus), nullable=False, default=ApprovalStatus.NOT_REQUIRED,
    )
    approved_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    total_amount: Mapped[int] = mapped_column(nullable=False, default=0)
    amount_paid: Mapped[int] = mapped_column(nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    vendor: Mapped[Vendor] = relationship()
    lines: Mapped[list["VendorBillLine"]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="VendorBillLine.line_seq",
    )

    @property
    def balance_remaining(self) -> int:
        return self.total_amount - self.amount_paid

    def to_result(self, journal_entry_id: int | None = None) -> BillResult:
        return BillResult(
            bill_id=self.id,
            bill_number=self.bill_number,
            status=BillStatus(self.status),
            approval_status=ApprovalStatus(self.approval_status),
            total_amount=self.total_amount,
            amount_paid=self.amount_paid,
            journal_entry_id=journal_entry_id,
        )

    def __repr__(self) -> str:
        return f"<VendorBill {self.bill_number} {self.status} total={self.total_amount}>"


class VendorBillLine(TrackedBase):
    """One purchased item on a bill."""

    __tablename__ = "vendor_bill_lines"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_bill_line_quantity_positive"),
        Index("idx_vendor_bill_lines_bill_id", "bill_id"),
    )

    bill_id: Mapped[int] = mapped_column(ForeignKey("vendor_bills.id"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    line_seq: Mapped[int] = mapped_column(nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_price: Mapped[int] = mapped_column(nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)
    asset_account_code: Mapped[str] = mapped_column(String(20), nullable=False)

    bill: Mapped[VendorBill] = relationship(back_populates="lines")


class VendorPayment(TrackedBase):
    """Money paid to a vendor, spread over one or more bills."""

    __tablename__ = "vendor_payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_vendor_payment_amount_positive"),
        Index("idx_vendor_payments_vendor_id", "vendor_id"),
    )

    vendor_id: Mapped[int] = mapped_column(ForeignKey("vendors.id"), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(
        enum_type(PaymentMethod), nullable=False, default=PaymentMethod.BANK_TRANSFER,
    )
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    allocations: Mapped[list["BillPaymentAllocation"]] = relationship(
        back_populates="payment",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class BillPaymentAllocation(TrackedBase):
    """Portion of a vendor payment applied to one bill."""

    __tablename__ = "bill_payment_allocations"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_bill_allocation_amount_positive"),
        Index("idx_bill_payment_allocations_bill_id", "bill_id"),
    )

    payment_id: Mapped[int] = mapped_column(ForeignKey("vendor_payments.id"), nullable=False)
    bill_id: Mapped[int] = mapped_column(ForeignKey("vendor_bills.id"), nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)

    payment: Mapped[VendorPayment] = relationship(back_populates="allocations")


class PurchaseOrder(TrackedBase):
    """
    Purchase order header.

    Guarantees:
        - order_number is unique.
        - Lines cascade with the order.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_purchase_orders_order_number"),
        Index("idx_purchase_orders_vendor_id", "vendor_id"),
        Index("idx_purchase_orders_status", "status"),
    )

    vendor_id: Mapped[int] = mapped_column(ForeignKey("vendors.id"), nullable=False)
    order_number: Mapped[str] = mapped_column(String(50), nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[PurchaseOrderStatus] = mapped_column(
        enum_type(PurchaseOrderStatus), nullable=False, default=PurchaseOrderStatus.OPEN,
    )
    total_amount: Mapped[int] = mapped_column(nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    vendor: Mapped[Vendor] = relationship()
    lines: Mapped[list["PurchaseOrderLine"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseOrderLine.line_seq",
    )

    @property
    def has_receipts(self) -> bool:
        return any(line.quantity_received > 0 for line in self.lines)

    def to_result(self) -> PurchaseOrderResult:
        return PurchaseOrderResult(
            purchase_order_id=self.id,
            order_number=self.order_number,
            vendor_id=self.vendor_id,
            status=PurchaseOrderStatus(self.status),
            total_amount=self.total_amount,
            lines=tuple(
                PurchaseOrderLineResult(
                    line_id=line.id,
                    item_id=line.item_id,
                    quantity_ordered=line.quantity_ordered,
                    quantity_received=line.quantity_received,
                    unit_cost=line.unit_cost,
                )
                for line in self.lines
            ),
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.order_number} {self.status} total={self.total_amount}>"


class PurchaseOrderLine(TrackedBase):
    """One ordered item and how much of it has arrived."""

    __tablename__ = "purchase_order_lines"

    __table_args__ = (
        CheckConstraint("quantity_ordered > 0", name="ck_po_line_ordered_positive"),
        CheckConstraint("quantity_received >= 0", name="ck_po_line_received_non_negative"),
        CheckConstraint(
            "quantity_received <= quantity_ordered", name="ck_po_line_received_le_ordered",
        ),
        Index("idx_purchase_order_lines_order_id", "order_id"),
    )

    order_id: Mapped[int] = mapped_column(ForeignKey("purchase_orders.id"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    line_seq: Mapped[int] = mapped_column(nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    quantity_ordered: Mapped[int] = mapped_column(nullable=False)
    quantity_received: Mapped[int] = mapped_column(nullable=False, default=0)
    unit_cost: Mapped[int] = mapped_column(nullable=False)

    order: Mapped[PurchaseOrder] = relationship(back_populates="lines")

    @property
    def quantity_outstanding(self) -> int:
        return self.quantity_ordered - self.quantity_received
