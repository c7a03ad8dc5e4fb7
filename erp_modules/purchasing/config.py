"""
Purchasing Configuration Schema (``erp_modules.purchasing.config``).

Responsibility
--------------
Account bindings and the approval policy used by ``PurchasingService``.
Built from the runtime ``ErpConfig`` via ``PurchasingConfig.from_erp_config``;
the defaults mirror ``erp_config/defaults/erp.yaml``.

Failure modes
-------------
* ``ValueError`` at construction if a binding is empty or the threshold is
  negative.
"""

from dataclasses import dataclass, field
from typing import Self

from erp_config.schema import AccountRole, ErpConfig
from erp_kernel.logging_config import get_logger
from erp_kernel.models.item import ItemClass
from erp_modules._posting_helpers import default_item_class_accounts

logger = get_logger("modules.purchasing.config")


@dataclass
class PurchasingConfig:
    """Purchasing module settings.

    Contract: account codes are non-empty strings; threshold >= 0.
    """
    accounts_payable_account: str = "2100"
    bank_account: str = "1110"
    goods_received_account: str = "2110"
    approval_enabled: bool = True
    approval_threshold: int = 1_000_000_000
    item_class_accounts: dict[ItemClass, str] = field(default_factory=default_item_class_accounts)
    fallback_asset_account: str = "1310"
    bill_number_prefix: str = "BILL"
    purchase_order_number_prefix: str = "PO"
    payment_terms_days: int = 30

    def __post_init__(self):
        if self.approval_threshold < 0:
            raise ValueError("approval_threshold cannot be negative")
        if self.payment_terms_days < 0:
            raise ValueError("payment_terms_days cannot be negative")
        for name in (
            "accounts_payable_account",
            "bank_account",
            "goods_received_account",
            "fallback_asset_account",
        ):
            if not getattr(self, name):
                raise ValueError(f"{name} must be set")
        logger.debug(
            "purchasing_config_initialized",
            extra={
                "approval_enabled": self.approval_enabled,
                "approval_threshold": self.approval_threshold,
                "accounts_payable_account": self.accounts_payable_account,
            },
        )

    @classmethod
    def from_erp_config(cls, config: ErpConfig) -> Self:
        chart = config.chart_of_accounts
        return cls(
            accounts_payable_account=chart.account_for(AccountRole.ACCOUNTS_PAYABLE),
            bank_account=chart.account_for(AccountRole.BANK),
            goods_received_account=chart.account_for(AccountRole.GOODS_RECEIVED_NOT_INVOICED),
            approval_enabled=config.approval.enabled,
            approval_threshold=config.approval.threshold,
            item_class_accounts=dict(chart.item_class_accounts),
            fallback_asset_account=chart.fallback_asset_account,
        )
