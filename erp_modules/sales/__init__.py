"""
Sales Module (``erp_modules.sales``).

Responsibility
--------------
Customer invoices, the invoice post-processing chain (installation
tickets) and customer payment receipts.  Invoices draw stock through the
FIFO ledger and post revenue and cost of goods sold in one entry.

Failure modes
-------------
* Typed ``ErpKernelError`` subclasses propagate after session rollback.
"""

from erp_modules.sales.config import SalesConfig
from erp_modules.sales.models import (
    CustomerPaymentResult,
    InvoiceLineInput,
    InvoiceResult,
    InvoiceStatus,
)
from erp_modules.sales.post_processing import (
    DEFAULT_POST_PROCESSING,
    InstallationTicketStep,
    PostProcessingContext,
    PostProcessingStep,
)
from erp_modules.sales.service import SalesService

__all__ = [
    "CustomerPaymentResult",
    "DEFAULT_POST_PROCESSING",
    "InstallationTicketStep",
    "InvoiceLineInput",
    "InvoiceResult",
    "InvoiceStatus",
    "PostProcessingContext",
    "PostProcessingStep",
    "SalesConfig",
    "SalesService",
]
