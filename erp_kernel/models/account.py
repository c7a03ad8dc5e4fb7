"""
Module: erp_kernel.models.account
Responsibility: ORM persistence for the chart of accounts -- the target of
    every journal line.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - code is unique; journal lines reference accounts by code.
    - normal_balance is implied by account_type (ASSET and EXPENSE are
      debit-normal, everything else credit-normal).
    - balance is a CACHED running total maintained by GeneralLedgerPoster.
      The authoritative balance is the sum of journal lines (LedgerSelector).

Failure modes:
    - AccountNotFoundError / AccountInactiveError raised by the poster when
      a line references a missing or inactive account.

Audit relevance:
    Cached balances can be compared with line-derived balances through
    InventoryReconciliationService.check_account_balances().
"""

from enum import Enum

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import TrackedBase
from erp_kernel.db.types import enum_type


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    @property
    def is_debit_normal(self) -> bool:
        return self in (AccountType.ASSET, AccountType.EXPENSE)


def signed_amount(account_type: AccountType, debit: int, credit: int) -> int:
    """Effect of one line on an account balance, in its normal direction."""
    if AccountType(account_type).is_debit_normal:
        return debit - credit
    return credit - debit


class Account(TrackedBase):
    """
    Chart of accounts entry.

    Contract:
        Account.code is globally unique.  Postings reference the code.

    Guarantees:
        - account_type is one of ASSET, LIABILITY, EQUITY, REVENUE, EXPENSE.
        - balance changes only through the poster or an explicit resync.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
        Index("idx_account_type", "account_type"),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(enum_type(AccountType), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Cached; derived from journal_lines
    balance: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Account {self.code} {self.name} balance={self.balance}>"
