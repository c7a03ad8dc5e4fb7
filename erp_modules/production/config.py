"""
Production Configuration Schema (``erp_modules.production.config``).

Account bindings used by ``ProductionService``.  Built from ``ErpConfig``
via ``ProductionConfig.from_erp_config``.
"""

from dataclasses import dataclass, field
from typing import Self

from erp_config.schema import AccountRole, ErpConfig
from erp_kernel.models.item import ItemClass
from erp_modules._posting_helpers import default_item_class_accounts


@dataclass
class ProductionConfig:
    overhead_absorption_account: str = "5000"
    rounding_variance_account: str = "5160"
    item_class_accounts: dict[ItemClass, str] = field(default_factory=default_item_class_accounts)
    fallback_asset_account: str = "1310"
    batch_prefix: str = "PR"

    def __post_init__(self):
        if not self.overhead_absorption_account or not self.rounding_variance_account:
            raise ValueError("overhead_absorption_account and rounding_variance_account must be set")
        if not self.batch_prefix:
            raise ValueError("batch_prefix must be set")

    @classmethod
    def from_erp_config(cls, config: ErpConfig) -> Self:
        chart = config.chart_of_accounts
        return cls(
            overhead_absorption_account=chart.account_for(AccountRole.OVERHEAD_ABSORPTION),
            rounding_variance_account=chart.account_for(AccountRole.PRODUCTION_VARIANCE),
            item_class_accounts=dict(chart.item_class_accounts),
            fallback_asset_account=chart.fallback_asset_account,
        )
