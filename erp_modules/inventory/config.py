"""
Inventory Configuration Schema (``erp_modules.inventory.config``).

Account bindings for stock adjustments and the tolerance used by the
inventory health check.  Built from ``ErpConfig`` via
``InventoryConfig.from_erp_config``.
"""

from dataclasses import dataclass, field
from typing import Self

from erp_config.schema import AccountRole, ErpConfig
from erp_kernel.logging_config import get_logger
from erp_kernel.models.item import ItemClass
from erp_modules._posting_helpers import default_item_class_accounts

logger = get_logger("modules.inventory.config")


@dataclass
class InventoryConfig:
    """Inventory module settings.

    Contract: account codes are non-empty; health_tolerance >= 0.
    """
    adjustment_account: str = "5150"
    item_class_accounts: dict[ItemClass, str] = field(default_factory=default_item_class_accounts)
    fallback_asset_account: str = "1310"
    health_tolerance: int = 100_000

    def __post_init__(self):
        if not self.adjustment_account:
            raise ValueError("adjustment_account must be set")
        if self.health_tolerance < 0:
            raise ValueError("health_tolerance cannot be negative")
        logger.debug(
            "inventory_config_initialized",
            extra={
                "adjustment_account": self.adjustment_account,
                "health_tolerance": self.health_tolerance,
            },
        )

    @classmethod
    def from_erp_config(cls, config: ErpConfig) -> Self:
        chart = config.chart_of_accounts
        return cls(
            adjustment_account=chart.account_for(AccountRole.INVENTORY_ADJUSTMENT),
            item_class_accounts=dict(chart.item_class_accounts),
            fallback_asset_account=chart.fallback_asset_account,
            health_tolerance=config.inventory.health_tolerance,
        )
