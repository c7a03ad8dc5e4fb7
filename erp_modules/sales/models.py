"""
Sales Domain Models (``erp_modules.sales.models``).

Responsibility
--------------
Enums and frozen value objects for invoices and customer payments.

Invariants enforced
-------------------
* ``InvoiceLineInput`` rejects non-positive quantities and negative prices
  at construction; discount and tax bounds are checked by
  ``erp_engines.document_totals`` when totals are computed.
* ``InvoiceResult.total_amount == subtotal - discount_total + tax_total``.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from erp_kernel.exceptions import ValidationError


class InvoiceStatus(str, Enum):
    """Must align with ``workflows.INVOICE_WORKFLOW.states``."""
    OPEN = "OPEN"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


@dataclass(frozen=True)
class InvoiceLineInput:
    """One sold item.  ``unit_price`` defaults to the item's sales price."""
    item_id: int
    quantity: int
    unit_price: int | None = None
    discount_amount: int = 0
    discount_rate_bps: int = 0
    tax_rate_bps: int = 0
    description: str | None = None

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValidationError("quantity", f"must be positive, got {self.quantity}")
        if self.unit_price is not None and self.unit_price < 0:
            raise ValidationError("unit_price", "cannot be negative")


@dataclass(frozen=True)
class InvoiceResult:
    """Snapshot of an invoice after a write."""
    invoice_id: int
    invoice_number: str
    status: InvoiceStatus
    subtotal: int
    discount_total: int
    tax_total: int
    total_amount: int
    paid_amount: int
    cost_of_goods: int
    journal_entry_id: int | None = None
    ticket_ids: tuple[int, ...] = ()

    @property
    def balance_remaining(self) -> int:
        return self.total_amount - self.paid_amount

    @property
    def gross_margin(self) -> int:
        return self.subtotal - self.discount_total - self.cost_of_goods


@dataclass(frozen=True)
class InvoiceAllocationResult:
    invoice_id: int
    amount: int
    new_status: InvoiceStatus


@dataclass(frozen=True)
class CustomerPaymentResult:
    payment_id: int
    customer_id: int
    amount: int
    payment_date: date
    deposit_account: str
    allocations: tuple[InvoiceAllocationResult, ...]
    journal_entry_id: int | None
