"""
Sales ORM Models (``erp_modules.sales.orm``).

Responsibility
--------------
SQLAlchemy persistence for customers, invoices and their lines, customer
payments and the allocation of payments to invoices.

Architecture position
---------------------
**Modules layer** -- persistence.  MUST NOT be imported by ``erp_kernel``.
"""

from datetime import date

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
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
from erp_kernel.models.item import Item
from erp_modules.sales.models import InvoiceResult, InvoiceStatus


class Customer(TrackedBase):
    """Customer master record."""

    __tablename__ = "customers"

    __table_args__ = (Index("idx_customers_name", "name"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Customer #{self.id} {self.name}>"


class Invoice(TrackedBase):
    """
    Customer invoice header.

    Guarantees:
        - invoice_number is unique.
        - total_amount == subtotal - discount_total + tax_total.
        - paid_amount <= total_amount (CHECK).
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        CheckConstraint("paid_amount >= 0", name="ck_invoice_paid_non_negative"),
        CheckConstraint("paid_amount <= total_amount", name="ck_invoice_paid_le_total"),
        Index("idx_invoices_customer_id", "customer_id"),
        Index("idx_invoices_status", "status"),
    )

    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[InvoiceStatus] = mapped_column(
        enum_type(InvoiceStatus), nullable=False, default=InvoiceStatus.OPEN,
    )

    subtotal: Mapped[int] = mapped_column(nullable=False, default=0)
    discount_total: Mapped[int] = mapped_column(nullable=False, default=0)
    tax_total: Mapped[int] = mapped_column(nullable=False, default=0)
    total_amount: Mapped[int] = mapped_column(nullable=False, default=0)
    paid_amount: Mapped[int] = mapped_column(nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    customer: Mapped[Customer] = relationship()
    lines: Mapped[list["InvoiceLine"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceLine.line_seq",
    )

    @property
    def balance_remaining(self) -> int:
        return self.total_amount - self.paid_amount

    @property
    def cost_of_goods(self) -> int:
        return sum(line.cost_total for line in self.lines)

    def to_result(
        self,
        journal_entry_id: int | None = None,
        ticket_ids: tuple[int, ...] = (),
    ) -> InvoiceResult:
        return InvoiceResult(
            invoice_id=self.id,
            invoice_number=self.invoice_number,
            status=InvoiceStatus(self.status),
            subtotal=self.subtotal,
            discount_total=self.discount_total,
            tax_total=self.tax_total,
            total_amount=self.total_amount,
            paid_amount=self.paid_amount,
            cost_of_goods=self.cost_of_goods,
            journal_entry_id=journal_entry_id,
            ticket_ids=ticket_ids,
        )

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} {self.status} total={self.total_amount}>"


class InvoiceLine(TrackedBase):
    """
    One sold item with its pricing and the FIFO cost of the units issued.

    gross = quantity * unit_price; net = gross - discount_amount;
    line_total = net + tax_amount.
    """

    __tablename__ = "invoice_lines"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_invoice_line_quantity_positive"),
        CheckConstraint("discount_amount <= gross_amount", name="ck_invoice_line_discount_le_gross"),
        Index("idx_invoice_lines_invoice_id", "invoice_id"),
    )

    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoices.id"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    line_seq: Mapped[int] = mapped_column(nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_price: Mapped[int] = mapped_column(nullable=False)
    discount_rate_bps: Mapped[int] = mapped_column(nullable=False, default=0)
    tax_rate_bps: Mapped[int] = mapped_column(nullable=False, default=0)

    gross_amount: Mapped[int] = mapped_column(nullable=False)
    discount_amount: Mapped[int] = mapped_column(nullable=False, default=0)
    net_amount: Mapped[int] = mapped_column(nullable=False)
    tax_amount: Mapped[int] = mapped_column(nullable=False, default=0)
    line_total: Mapped[int] = mapped_column(nullable=False)

    # FIFO cost of the units issued (0 for service items)
    cost_total: Mapped[int] = mapped_column(nullable=False, default=0)
    asset_account_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    invoice: Mapped[Invoice] = relationship(back_populates="lines")
    item: Mapped[Item] = relationship()


class CustomerPayment(TrackedBase):
    """Money received from a customer."""

    __tablename__ = "customer_payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_customer_payment_amount_positive"),
        Index("idx_customer_payments_customer_id", "customer_id"),
    )

    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(
        enum_type(PaymentMethod), nullable=False, default=PaymentMethod.CASH,
    )
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    allocations: Mapped[list["PaymentAllocation"]] = relationship(
        back_populates="payment",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class PaymentAllocation(TrackedBase):
    """Portion of a customer payment applied to one invoice."""

    __tablename__ = "payment_allocations"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_allocation_amount_positive"),
        Index("idx_payment_allocations_invoice_id", "invoice_id"),
    )

    payment_id: Mapped[int] = mapped_column(ForeignKey("customer_payments.id"), nullable=False)
    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoices.id"), nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)

    payment: Mapped[CustomerPayment] = relationship(back_populates="allocations")
