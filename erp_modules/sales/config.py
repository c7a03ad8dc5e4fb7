"""
Sales Configuration Schema (``erp_modules.sales.config``).

Account bindings used by ``SalesService`` for invoices, cost of goods sold
and customer receipts.  Built from ``ErpConfig`` via
``SalesConfig.from_erp_config``; defaults mirror ``erp_config/defaults/erp.yaml``.
"""

from dataclasses import dataclass, field
from typing import Self

from erp_config.schema import AccountRole, ErpConfig
from erp_kernel.logging_config import get_logger
from erp_kernel.models.item import ItemClass
from erp_modules._posting_helpers import default_item_class_accounts

logger = get_logger("modules.sales.config")


@dataclass
class SalesConfig:
    """Sales module settings."""
    accounts_receivable_account: str = "1200"
    sales_revenue_account: str = "4100"
    sales_discounts_account: str = "4200"
    sales_tax_payable_account: str = "2200"
    cost_of_goods_sold_account: str = "5100"
    undeposited_funds_account: str = "1105"
    bank_account: str = "1110"
    item_class_accounts: dict[ItemClass, str] = field(default_factory=default_item_class_accounts)
    fallback_asset_account: str = "1310"
    invoice_number_prefix: str = "INV"
    payment_terms_days: int = 30

    def __post_init__(self):
        if self.payment_terms_days < 0:
            raise ValueError("payment_terms_days cannot be negative")
        for name in (
            "accounts_receivable_account",
            "sales_revenue_account",
            "cost_of_goods_sold_account",
            "undeposited_funds_account",
            "bank_account",
        ):
            if not getattr(self, name):
                raise ValueError(f"{name} must be set")
        logger.debug(
            "sales_config_initialized",
            extra={
                "accounts_receivable_account": self.accounts_receivable_account,
                "sales_revenue_account": self.sales_revenue_account,
                "payment_terms_days": self.payment_terms_days,
            },
        )

    @classmethod
    def from_erp_config(cls, config: ErpConfig) -> Self:
        chart = config.chart_of_accounts
        return cls(
            accounts_receivable_account=chart.account_for(AccountRole.ACCOUNTS_RECEIVABLE),
            sales_revenue_account=chart.account_for(AccountRole.SALES_REVENUE),
            sales_discounts_account=chart.account_for(AccountRole.SALES_DISCOUNTS),
            sales_tax_payable_account=chart.account_for(AccountRole.SALES_TAX_PAYABLE),
            cost_of_goods_sold_account=chart.account_for(AccountRole.COST_OF_GOODS_SOLD),
            undeposited_funds_account=chart.account_for(AccountRole.UNDEPOSITED_FUNDS),
            bank_account=chart.account_for(AccountRole.BANK),
            item_class_accounts=dict(chart.item_class_accounts),
            fallback_asset_account=chart.fallback_asset_account,
        )
