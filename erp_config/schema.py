"""
ErpConfig schema.

The typed, frozen form of the YAML configuration.  The loader parses YAML
into these types; services receive them (or module configs built from them)
through constructor injection and never read files themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from erp_kernel.models.account import AccountType
from erp_kernel.models.item import ItemClass, ValuationMethod

# ---------------------------------------------------------------------------
# Business profile
# ---------------------------------------------------------------------------


class BusinessType(str, Enum):
    MANUFACTURING = "MANUFACTURING"
    WHOLESALE = "WHOLESALE"
    RETAIL = "RETAIL"
    SERVICE = "SERVICE"


KNOWN_MODULES = frozenset(
    {"inventory", "purchasing", "sales", "production", "service_desk"}
)


@dataclass(frozen=True)
class BusinessProfile:
    """Which modules a business of this type runs.

    Passed explicitly into request handling; there is no process-wide
    "current business type".
    """

    business_type: BusinessType
    enabled_modules: frozenset[str]

    def __post_init__(self) -> None:
        unknown = set(self.enabled_modules) - KNOWN_MODULES
        if unknown:
            raise ValueError(f"Unknown modules in business profile: {sorted(unknown)}")

    def is_enabled(self, module: str) -> bool:
        return module in self.enabled_modules


# ---------------------------------------------------------------------------
# Chart of accounts
# ---------------------------------------------------------------------------


class AccountRole(str, Enum):
    """Logical account roles the writers post to."""

    UNDEPOSITED_FUNDS = "UNDEPOSITED_FUNDS"
    BANK = "BANK"
    ACCOUNTS_RECEIVABLE = "ACCOUNTS_RECEIVABLE"
    ACCOUNTS_PAYABLE = "ACCOUNTS_PAYABLE"
    SALES_TAX_PAYABLE = "SALES_TAX_PAYABLE"
    SALES_REVENUE = "SALES_REVENUE"
    SALES_DISCOUNTS = "SALES_DISCOUNTS"
    OVERHEAD_ABSORPTION = "OVERHEAD_ABSORPTION"
    COST_OF_GOODS_SOLD = "COST_OF_GOODS_SOLD"
    INVENTORY_ADJUSTMENT = "INVENTORY_ADJUSTMENT"
    GOODS_RECEIVED_NOT_INVOICED = "GOODS_RECEIVED_NOT_INVOICED"
    PRODUCTION_VARIANCE = "PRODUCTION_VARIANCE"


@dataclass(frozen=True)
class AccountDefinition:
    code: str
    name: str
    account_type: AccountType
    description: str | None = None


@dataclass(frozen=True)
class ChartOfAccounts:
    """
    Account definitions plus the role and item-class bindings.

    Every role and every item class must resolve to a defined account.
    """

    accounts: tuple[AccountDefinition, ...]
    roles: dict[AccountRole, str]
    item_class_accounts: dict[ItemClass, str]
    fallback_asset_account: str = "1310"

    def __post_init__(self) -> None:
        codes = {a.code for a in self.accounts}
        if len(codes) != len(self.accounts):
            raise ValueError("Duplicate account codes in chart of accounts")
        missing_roles = [r.value for r in AccountRole if r not in self.roles]
        if missing_roles:
            raise ValueError(f"Account roles without a binding: {missing_roles}")
        for label, code in [
            *((r.value, c) for r, c in self.roles.items()),
            *((k.value, c) for k, c in self.item_class_accounts.items()),
            ("fallback_asset_account", self.fallback_asset_account),
        ]:
            if code not in codes:
                raise ValueError(f"{label} is bound to undefined account {code}")

    def account_for(self, role: AccountRole) -> str:
        return self.roles[role]

    def asset_account_for(self, item_class: ItemClass, override: str | None = None) -> str:
        """Inventory account of an item; falls back to raw materials."""
        if override:
            return override
        return self.item_class_accounts.get(ItemClass(item_class), self.fallback_asset_account)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApprovalSettings:
    enabled: bool = True
    threshold: int = 1_000_000_000

    def __post_init__(self) -> None:
        if self.threshold < 0:
            raise ValueError("approval threshold cannot be negative")


@dataclass(frozen=True)
class InventorySettings:
    health_tolerance: int = 100_000
    default_valuation_method: ValuationMethod = ValuationMethod.FIFO

    def __post_init__(self) -> None:
        if self.health_tolerance < 0:
            raise ValueError("health_tolerance cannot be negative")


@dataclass(frozen=True)
class ErpConfig:
    """Root runtime configuration."""

    config_id: str
    version: int
    business_profile: BusinessProfile
    chart_of_accounts: ChartOfAccounts
    approval: ApprovalSettings = field(default_factory=ApprovalSettings)
    inventory: InventorySettings = field(default_factory=InventorySettings)
    reset_confirmation_code: str = "DELETE-TEST-DATA"
    checksum: str = ""
