"""
Purchasing Domain Models (``erp_modules.purchasing.models``).

Responsibility
--------------
Enums and frozen value objects for vendor bills and vendor payments.
Inputs flow *into* ``PurchasingService``; results flow back out as
immutable snapshots so callers never hold live ORM rows.

Invariants enforced
-------------------
* Quantities are positive integers, prices non-negative integer tiyin.
* All dataclasses are ``frozen=True``.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from erp_kernel.exceptions import ValidationError


class BillStatus(str, Enum):
    """Payment state of a bill.  Must align with ``workflows.BILL_WORKFLOW.states``."""
    OPEN = "OPEN"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class ApprovalStatus(str, Enum):
    """Approval state.  Must align with ``workflows.BILL_APPROVAL_WORKFLOW.states``."""
    NOT_REQUIRED = "NOT_REQUIRED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def allows_posting(self) -> bool:
        return self in (ApprovalStatus.NOT_REQUIRED, ApprovalStatus.APPROVED)


@dataclass(frozen=True)
class BillLineInput:
    """One purchased item on a bill."""
    item_id: int
    quantity: int
    unit_price: int
    description: str | None = None

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValidationError("quantity", f"must be positive, got {self.quantity}")
        if self.unit_price < 0:
            raise ValidationError("unit_price", "cannot be negative")

    @property
    def amount(self) -> int:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class BillResult:
    """Snapshot of a bill after a write."""
    bill_id: int
    bill_number: str
    status: BillStatus
    approval_status: ApprovalStatus
    total_amount: int
    amount_paid: int
    journal_entry_id: int | None = None

    @property
    def balance_remaining(self) -> int:
        return self.total_amount - self.amount_paid


@dataclass(frozen=True)
class BillAllocationResult:
    bill_id: int
    amount: int
    new_status: BillStatus


@dataclass(frozen=True)
class VendorPaymentResult:
    payment_id: int
    vendor_id: int
    amount: int
    payment_date: date
    allocations: tuple[BillAllocationResult, ...]
    journal_entry_id: int | None


# ---------------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------------


class PurchaseOrderStatus(str, Enum):
    """Receipt state.  Must align with ``workflows.PURCHASE_ORDER_WORKFLOW.states``."""
    OPEN = "OPEN"
    PARTIAL = "PARTIAL"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class PurchaseOrderLineInput:
    """One ordered item."""
    item_id: int
    quantity: int
    unit_cost: int
    description: str | None = None

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValidationError("quantity", f"must be positive, got {self.quantity}")
        if self.unit_cost < 0:
            raise ValidationError("unit_cost", "cannot be negative")

    @property
    def amount(self) -> int:
        return self.quantity * self.unit_cost


@dataclass(frozen=True)
class ReceiptLineInput:
    """Units of one order line arriving at the warehouse."""
    line_id: int
    quantity: int

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValidationError("quantity", f"must be positive, got {self.quantity}")


@dataclass(frozen=True)
class PurchaseOrderLineResult:
    line_id: int
    item_id: int
    quantity_ordered: int
    quantity_received: int
    unit_cost: int

    @property
    def quantity_outstanding(self) -> int:
        return self.quantity_ordered - self.quantity_received


@dataclass(frozen=True)
class PurchaseOrderResult:
    """Snapshot of a purchase order after a write."""
    purchase_order_id: int
    order_number: str
    vendor_id: int
    status: PurchaseOrderStatus
    total_amount: int
    lines: tuple[PurchaseOrderLineResult, ...]

    @property
    def received_value(self) -> int:
        return sum(line.quantity_received * line.unit_cost for line in self.lines)


@dataclass(frozen=True)
class GoodsReceiptResult:
    """Layers and accrual created by one receipt against an order."""
    purchase_order_id: int
    order_number: str
    status: PurchaseOrderStatus
    received_value: int
    layer_ids: tuple[int, ...]
    journal_entry_id: int | None
