"""
DTOs -- Pure domain data transfer objects for the posting pipeline.

Responsibility:
    Defines the immutable structures a transaction writer hands to the
    GeneralLedgerPoster: ``PostingLine`` (one account movement) and
    ``PostingRequest`` (the economic event as a whole).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - A line moves a non-negative amount on exactly one side.
    - A request has at least one line.
    Balance is NOT checked here; the poster checks it so the failure is an
    UnbalancedEntryError raised inside the enclosing transaction.

Failure modes:
    - InvalidJournalLineError on a negative or two-sided line.
    - ValidationError on a request with no lines.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date

from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import InvalidJournalLineError, ValidationError


@dataclass(frozen=True, slots=True)
class PostingLine:
    """One debit or credit against an account code."""

    account_code: str
    debit: int = 0
    credit: int = 0
    description: str | None = None

    def __post_init__(self) -> None:
        if self.debit < 0 or self.credit < 0:
            raise InvalidJournalLineError(self.account_code, "amounts must be non-negative")
        if self.debit > 0 and self.credit > 0:
            raise InvalidJournalLineError(self.account_code, "line cannot be both debit and credit")

    @classmethod
    def dr(cls, account_code: str, amount: int, description: str | None = None) -> PostingLine:
        return cls(account_code=account_code, debit=amount, description=description)

    @classmethod
    def cr(cls, account_code: str, amount: int, description: str | None = None) -> PostingLine:
        return cls(account_code=account_code, credit=amount, description=description)

    @property
    def is_zero(self) -> bool:
        return self.debit == 0 and self.credit == 0


@dataclass(frozen=True, slots=True)
class PostingRequest:
    """
    Structured description of one economic event.

    Zero-amount lines are dropped so writers can emit optional lines
    (discounts, tax, overhead) unconditionally.
    """

    entry_date: date
    description: str
    source_type: SourceType
    source_id: int
    lines: tuple[PostingLine, ...]
    reference: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "lines", tuple(line for line in self.lines if not line.is_zero)
        )
        if not self.lines:
            raise ValidationError("lines", "a journal entry needs at least one non-zero line")

    @property
    def total_debits(self) -> int:
        return sum(line.debit for line in self.lines)

    @property
    def total_credits(self) -> int:
        return sum(line.credit for line in self.lines)

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


@dataclass
class PostingLineBuilder:
    """
    Accumulates debits and credits per account before building lines.

    Writers that touch the same account from several document lines
    (inventory per item class, COGS per invoice line) group them here so the
    journal carries one line per account and side.
    """

    _debits: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    _credits: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    _descriptions: dict[tuple[str, str], str] = field(default_factory=dict)

    def debit(self, account_code: str, amount: int, description: str | None = None) -> None:
        self._debits[account_code] += amount
        if description:
            self._descriptions.setdefault(("dr", account_code), description)

    def credit(self, account_code: str, amount: int, description: str | None = None) -> None:
        self._credits[account_code] += amount
        if description:
            self._descriptions.setdefault(("cr", account_code), description)

    def build(self) -> tuple[PostingLine, ...]:
        lines: list[PostingLine] = []
        for code, amount in self._debits.items():
            lines.append(PostingLine.dr(code, amount, self._descriptions.get(("dr", code))))
        for code, amount in self._credits.items():
            lines.append(PostingLine.cr(code, amount, self._descriptions.get(("cr", code))))
        return tuple(lines)
