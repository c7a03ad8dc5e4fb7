"""
Purchasing Module (``erp_modules.purchasing``).

Responsibility
--------------
Purchase orders and their goods receipts, vendor bills (with the approval
gate for large bills) and vendor payments.  Receipts and bills feed inventory
layers; bills feed the accounts payable side of the ledger.

Failure modes
-------------
* Typed ``ErpKernelError`` subclasses propagate after session rollback.
"""

from erp_modules.purchasing.config import PurchasingConfig
from erp_modules.purchasing.models import (
    ApprovalStatus,
    BillLineInput,
    BillResult,
    BillStatus,
    GoodsReceiptResult,
    PurchaseOrderLineInput,
    PurchaseOrderResult,
    PurchaseOrderStatus,
    ReceiptLineInput,
    VendorPaymentResult,
)
from erp_modules.purchasing.service import PurchasingService

__all__ = [
    "ApprovalStatus",
    "BillLineInput",
    "BillResult",
    "BillStatus",
    "GoodsReceiptResult",
    "PurchasingConfig",
    "PurchaseOrderLineInput",
    "PurchaseOrderResult",
    "PurchaseOrderStatus",
    "PurchasingService",
    "ReceiptLineInput",
    "VendorPaymentResult",
]
