"""
Module: erp_kernel.selectors.ledger_selector
Responsibility: Read-only general ledger queries.  Balances are DERIVED by
    summing journal lines; the cached Account.balance column is never read
    here.
Architecture position: Kernel > Selectors.  May import from models/.
    Selectors NEVER create, modify, or delete data.

Audit relevance:
    This is the drill-through path from an account to the documents behind
    it, and the reference against which cached balances are reconciled.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from erp_kernel.domain.source import SourceType
from erp_kernel.models.account import Account, AccountType, signed_amount
from erp_kernel.models.journal import JournalEntry, JournalLine


@dataclass(frozen=True, slots=True)
class AccountBalance:
    """Line-derived balance of one account."""

    account_code: str
    account_name: str
    account_type: AccountType
    debit_total: int
    credit_total: int

    @property
    def balance(self) -> int:
        return signed_amount(self.account_type, self.debit_total, self.credit_total)


@dataclass(frozen=True, slots=True)
class TrialBalance:
    rows: tuple[AccountBalance, ...]

    @property
    def total_debits(self) -> int:
        return sum(r.debit_total for r in self.rows)

    @property
    def total_credits(self) -> int:
        return sum(r.credit_total for r in self.rows)

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


class LedgerSelector:
    """Derived balances and source drill-through."""

    def __init__(self, session: Session):
        self.session = session

    def _totals_query(self, as_of_date: date | None = None):
        stmt = (
            select(
                JournalLine.account_code,
                func.coalesce(func.sum(JournalLine.debit), 0),
                func.coalesce(func.sum(JournalLine.credit), 0),
            )
            .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
            .group_by(JournalLine.account_code)
        )
        if as_of_date is not None:
            stmt = stmt.where(JournalEntry.entry_date <= as_of_date)
        return stmt

    def trial_balance(self, as_of_date: date | None = None) -> TrialBalance:
        totals = {
            code: (int(dr), int(cr))
            for code, dr, cr in self.session.execute(self._totals_query(as_of_date))
        }
        accounts = self.session.scalars(select(Account).order_by(Account.code)).all()
        rows = tuple(
            AccountBalance(
                account_code=a.code,
                account_name=a.name,
                account_type=a.account_type,
                debit_total=totals.get(a.code, (0, 0))[0],
                credit_total=totals.get(a.code, (0, 0))[1],
            )
            for a in accounts
        )
        return TrialBalance(rows=rows)

    def account_balance(self, account_code: str, as_of_date: date | None = None) -> int:
        """Balance of one account in its normal direction."""
        for row in self.trial_balance(as_of_date).rows:
            if row.account_code == account_code:
                return row.balance
        return 0

    def entries_for_source(
        self,
        source_type: SourceType,
        source_id: int,
    ) -> list[JournalEntry]:
        return list(
            self.session.scalars(
                select(JournalEntry)
                .where(
                    JournalEntry.source_type == source_type,
                    JournalEntry.source_id == source_id,
                )
                .order_by(JournalEntry.id)
            )
        )

    def net_movement_for_source(
        self,
        source_type: SourceType,
        source_id: int,
    ) -> dict[str, int]:
        """Net debit-minus-credit per account across all entries of a source."""
        rows = self.session.execute(
            select(
                JournalLine.account_code,
                func.sum(JournalLine.debit - JournalLine.credit),
            )
            .where(
                JournalLine.source_type == source_type,
                JournalLine.source_id == source_id,
            )
            .group_by(JournalLine.account_code)
        )
        return {code: int(net) for code, net in rows}
