"""
GeneralLedgerPoster -- balanced journal posting and reversal.

Responsibility:
    Turns a PostingRequest (the debits and credits of one economic event)
    into one persisted JournalEntry with its JournalLines, and writes
    reversing entries when a document is edited or deleted.

Architecture position:
    Kernel > Services -- imperative shell.  Called by every transaction
    writer inside the writer's own transaction.

Invariants enforced:
    - Σdebits == Σcredits per entry, checked BEFORE any row is written.
    - Every line names an existing, active account.
    - Every line carries the originating source_type/source_id.
    - Posted entries are never edited; a reversal is a new mirror entry and
      the original moves POSTED -> REVERSED.  Reversing a source twice
      reverses nothing the second time.
    - Cached Account.balance moves by the signed amount of each line.

Failure modes:
    - UnbalancedEntryError: debits != credits.
    - AccountNotFoundError / AccountInactiveError: bad account code.
    - EntryAlreadyReversedError: explicit reversal of a reversed entry.

Non-goals:
    - Does NOT manage the transaction boundary (caller's responsibility).
      A raised error leaves the session for the caller to roll back.
"""

from __future__ import annotations

import time
from collections import defaultdict
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_kernel.domain.actor import Actor
from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.dtos import PostingLine, PostingRequest
from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    DocumentNotFoundError,
    EntryAlreadyReversedError,
    UnbalancedEntryError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.account import Account, signed_amount
from erp_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine

logger = get_logger("services.journal_poster")


class GeneralLedgerPoster:
    """
    Writes balanced journal entries.

    Contract:
        ``post()`` either writes one balanced entry and moves the cached
        balances of the accounts it touches, or raises before writing.

    Guarantees:
        - Entries are flushed (ids assigned) but not committed.
        - Accounts are loaded FOR UPDATE so concurrent postings serialize
          on the cached balance.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    # =========================================================================
    # Posting
    # =========================================================================

    def post(self, request: PostingRequest, actor: Actor) -> JournalEntry:
        """
        Persist ``request`` as one journal entry.

        Preconditions:
            - ``request`` has at least one non-zero line (enforced by the DTO).
        Postconditions:
            - A POSTED JournalEntry with one JournalLine per request line.
            - Cached balances updated.

        Raises:
            UnbalancedEntryError, AccountNotFoundError, AccountInactiveError.
        """
        t0 = time.monotonic()
        debits = request.total_debits
        credits = request.total_credits

        if debits != credits:
            logger.warning(
                "unbalanced_entry_rejected",
                extra={
                    "source_type": request.source_type.value,
                    "source_id": request.source_id,
                    "debits": debits,
                    "credits": credits,
                },
            )
            raise UnbalancedEntryError(debits=debits, credits=credits)

        accounts = self._load_accounts(line.account_code for line in request.lines)

        entry = self._write_entry(
            request=request,
            lines=request.lines,
            actor=actor,
            accounts=accounts,
        )

        logger.info(
            "journal_entry_posted",
            extra={
                "entry_id": entry.id,
                "source_type": request.source_type.value,
                "source_id": request.source_id,
                "line_count": len(request.lines),
                "total": debits,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
        return entry

    # =========================================================================
    # Reversal
    # =========================================================================

    def reverse_source(
        self,
        source_type: SourceType,
        source_id: int,
        actor: Actor,
        reason: str,
    ) -> list[JournalEntry]:
        """
        Reverse every still-posted entry produced by one source document.

        Postconditions:
            - Each POSTED original of the source has a mirror entry and is
              now REVERSED.
            - A second call finds nothing to reverse and returns [].
        """
        originals = self._session.scalars(
            select(JournalEntry)
            .where(
                JournalEntry.source_type == source_type,
                JournalEntry.source_id == source_id,
                JournalEntry.status == JournalEntryStatus.POSTED,
                JournalEntry.reversal_of_id.is_(None),
            )
            .order_by(JournalEntry.id)
            .with_for_update()
        ).all()

        reversals = [self._reverse(entry, actor, reason) for entry in originals]

        logger.info(
            "source_reversed",
            extra={
                "source_type": source_type.value,
                "source_id": source_id,
                "entries_reversed": len(reversals),
                "reason": reason,
            },
        )
        return reversals

    def reverse_entry(self, entry_id: int, actor: Actor, reason: str) -> JournalEntry:
        """Reverse a single entry; refuses entries already reversed."""
        entry = self._session.get(JournalEntry, entry_id, with_for_update=True)
        if entry is None:
            raise DocumentNotFoundError("JournalEntry", entry_id)
        if entry.status == JournalEntryStatus.REVERSED or entry.is_reversal:
            raise EntryAlreadyReversedError(entry_id)
        return self._reverse(entry, actor, reason)

    def _reverse(self, original: JournalEntry, actor: Actor, reason: str) -> JournalEntry:
        mirror = tuple(
            PostingLine(
                account_code=line.account_code,
                debit=line.credit,
                credit=line.debit,
                description=line.description,
            )
            for line in original.lines
        )
        request = PostingRequest(
            entry_date=self._clock.today(),
            description=f"Reversal of entry #{original.id}: {reason}",
            source_type=original.source_type,
            source_id=original.source_id,
            lines=mirror,
            reference=original.reference,
        )
        accounts = self._load_accounts(
            (line.account_code for line in mirror), require_active=False,
        )
        reversal = self._write_entry(
            request=request,
            lines=mirror,
            actor=actor,
            accounts=accounts,
            reversal_of_id=original.id,
        )
        original.status = JournalEntryStatus.REVERSED
        original.updated_by = actor.user_id

        logger.info(
            "journal_entry_reversed",
            extra={"entry_id": original.id, "reversal_id": reversal.id},
        )
        return reversal

    # =========================================================================
    # Internals
    # =========================================================================

    def _load_accounts(
        self,
        codes: Iterable[str],
        require_active: bool = True,
    ) -> dict[str, Account]:
        wanted = sorted(set(codes))
        rows = self._session.scalars(
            select(Account)
            .where(Account.code.in_(wanted))
            .order_by(Account.code)
            .with_for_update()
        ).all()
        accounts = {a.code: a for a in rows}

        for code in wanted:
            account = accounts.get(code)
            if account is None:
                logger.warning("posting_account_not_found", extra={"account_code": code})
                raise AccountNotFoundError(code)
            if require_active and not account.is_active:
                logger.warning("posting_account_inactive", extra={"account_code": code})
                raise AccountInactiveError(code)
        return accounts

    def _write_entry(
        self,
        request: PostingRequest,
        lines: tuple[PostingLine, ...],
        actor: Actor,
        accounts: dict[str, Account],
        reversal_of_id: int | None = None,
    ) -> JournalEntry:
        entry = JournalEntry(
            entry_date=request.entry_date,
            description=request.description,
            reference=request.reference,
            source_type=request.source_type,
            source_id=request.source_id,
            status=JournalEntryStatus.POSTED,
            reversal_of_id=reversal_of_id,
            created_by=actor.user_id,
        )
        movements: dict[str, int] = defaultdict(int)
        for seq, spec in enumerate(lines):
            entry.lines.append(
                JournalLine(
                    account_code=spec.account_code,
                    debit=spec.debit,
                    credit=spec.credit,
                    description=spec.description,
                    source_type=request.source_type,
                    source_id=request.source_id,
                    line_seq=seq,
                    created_by=actor.user_id,
                )
            )
            account = accounts[spec.account_code]
            movements[spec.account_code] += signed_amount(
                account.account_type, spec.debit, spec.credit,
            )

        for code, delta in movements.items():
            accounts[code].balance += delta

        self._session.add(entry)
        self._session.flush()
        return entry
