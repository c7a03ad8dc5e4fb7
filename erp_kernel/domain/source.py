"""
Source document types.

Every inventory layer, layer consumption and journal line carries a
``(source_type, source_id)`` pair pointing back at the document that
produced it.  Reversal and general-ledger drill-through both key on it.
"""

from enum import Enum


class SourceType(str, Enum):
    """Kind of document that originated a ledger effect."""

    BILL = "BILL"
    INVOICE = "INVOICE"
    CUSTOMER_PAYMENT = "CUSTOMER_PAYMENT"
    VENDOR_PAYMENT = "VENDOR_PAYMENT"
    PRODUCTION_RUN = "PRODUCTION_RUN"
    STOCK_ADJUSTMENT = "STOCK_ADJUSTMENT"
    STOCK_TRANSFER = "STOCK_TRANSFER"
    PURCHASE_RECEIPT = "PURCHASE_RECEIPT"
    OPENING_BALANCE = "OPENING_BALANCE"
    MANUAL = "MANUAL"
