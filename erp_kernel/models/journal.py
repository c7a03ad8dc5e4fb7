"""
Module: erp_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines -- the
    single source of financial truth.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - Balance: sum(debit) == sum(credit) per entry (checked by
      GeneralLedgerPoster before flush; exposed here as is_balanced).
    - One-sided lines: debit >= 0, credit >= 0, exactly one of them > 0
      (CHECK constraints).
    - Append-only: a posted entry is never edited.  Corrections are
      reversing entries linked through reversal_of_id.

Failure modes:
    - IntegrityError on a two-sided or negative line.
    - UnbalancedEntryError raised by the poster before any row is written.

Audit relevance:
    Every line carries source_type/source_id so the general ledger can be
    drilled through to the bill, invoice, run or adjustment behind it.
"""

from datetime import date
from enum import Enum

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import TrackedBase
from erp_kernel.db.types import enum_type
from erp_kernel.domain.source import SourceType


class JournalEntryStatus(str, Enum):
    """Lifecycle status of a journal entry.

    POSTED -> REVERSED is the only transition, taken when a reversing entry
    is written for it.
    """

    POSTED = "POSTED"
    REVERSED = "REVERSED"


class JournalEntry(TrackedBase):
    """
    Journal entry header.

    Contract:
        Groups the balanced lines produced by one originating transaction.

    Guarantees:
        - lines are loaded eagerly and cascade on insert.
        - reversal_of_id points at the entry this one reverses, if any.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        Index("idx_entry_source", "source_type", "source_id"),
        Index("idx_entry_date", "entry_date"),
        Index("idx_entry_reversal_of", "reversal_of_id"),
    )

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    source_type: Mapped[SourceType] = mapped_column(enum_type(SourceType), nullable=False)
    source_id: Mapped[int] = mapped_column(nullable=False)

    status: Mapped[JournalEntryStatus] = mapped_column(
        enum_type(JournalEntryStatus),
        nullable=False,
        default=JournalEntryStatus.POSTED,
    )

    reversal_of_id: Mapped[int | None] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=True,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_seq",
    )

    @property
    def total_debits(self) -> int:
        return sum(line.debit for line in self.lines)

    @property
    def total_credits(self) -> int:
        return sum(line.credit for line in self.lines)

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None

    def __repr__(self) -> str:
        return (
            f"<JournalEntry #{self.id} {self.source_type}:{self.source_id} "
            f"{self.status} Dr={self.total_debits} Cr={self.total_credits}>"
        )


class JournalLine(TrackedBase):
    """
    One debit or credit line.

    Contract:
        Each line belongs to exactly one JournalEntry, names one account by
        code and records a positive amount on exactly one side.

    Non-goals:
        - This model does not validate account existence; the poster does.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        CheckConstraint("debit >= 0", name="ck_line_debit_non_negative"),
        CheckConstraint("credit >= 0", name="ck_line_credit_non_negative"),
        CheckConstraint(
            "(debit > 0 AND credit = 0) OR (credit > 0 AND debit = 0)",
            name="ck_line_one_sided",
        ),
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_code"),
        Index("idx_line_source", "source_type", "source_id"),
    )

    journal_entry_id: Mapped[int] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=False,
    )
    account_code: Mapped[str] = mapped_column(
        String(20), ForeignKey("accounts.code"), nullable=False,
    )

    debit: Mapped[int] = mapped_column(nullable=False, default=0)
    credit: Mapped[int] = mapped_column(nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    source_type: Mapped[SourceType] = mapped_column(enum_type(SourceType), nullable=False)
    source_id: Mapped[int] = mapped_column(nullable=False)

    line_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    entry: Mapped[JournalEntry] = relationship(back_populates="lines")
