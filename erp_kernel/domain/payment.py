"""Payment methods shared by customer receipts and vendor payments."""

from enum import Enum


class PaymentMethod(str, Enum):
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CARD = "CARD"
