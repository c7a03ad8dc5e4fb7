"""
Module: erp_engines.allocation
Responsibility:
    Split a payment across open documents, oldest first, or across an
    explicit caller-chosen set of documents.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - allocated + unallocated == payment amount.
    - No document receives more than its open balance.
    - Oldest-first order is (document_date, document_id).

Failure modes:
    - ValidationError on a non-positive payment, an explicit allocation
      above a document's open balance, or explicit allocations summing to
      more than the payment.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date

from erp_engines.tracer import traced_engine
from erp_kernel.exceptions import ValidationError


@dataclass(frozen=True)
class OpenDocument:
    """A bill or invoice with a balance still to be paid."""

    document_id: int
    document_date: date
    open_balance: int


@dataclass(frozen=True)
class AllocationLine:
    document_id: int
    amount: int
    fully_paid: bool


@dataclass(frozen=True)
class AllocationResult:
    payment_amount: int
    lines: tuple[AllocationLine, ...]

    @property
    def allocated(self) -> int:
        return sum(line.amount for line in self.lines)

    @property
    def unallocated(self) -> int:
        return self.payment_amount - self.allocated


@traced_engine("payment_allocation", "1.0", fingerprint_fields=("amount",))
def allocate_oldest_first(
    *,
    amount: int,
    documents: Sequence[OpenDocument],
) -> AllocationResult:
    if amount <= 0:
        raise ValidationError("amount", f"payment must be positive, got {amount}")

    remaining = amount
    lines: list[AllocationLine] = []
    for doc in sorted(documents, key=lambda d: (d.document_date, d.document_id)):
        if remaining == 0:
            break
        if doc.open_balance <= 0:
            continue
        applied = min(remaining, doc.open_balance)
        lines.append(
            AllocationLine(
                document_id=doc.document_id,
                amount=applied,
                fully_paid=applied == doc.open_balance,
            )
        )
        remaining -= applied
    return AllocationResult(payment_amount=amount, lines=tuple(lines))


def allocate_explicit(
    *,
    amount: int,
    documents: Sequence[OpenDocument],
    requested: Mapping[int, int],
) -> AllocationResult:
    """Apply caller-chosen amounts per document id."""
    if amount <= 0:
        raise ValidationError("amount", f"payment must be positive, got {amount}")
    by_id = {doc.document_id: doc for doc in documents}

    lines: list[AllocationLine] = []
    for document_id, applied in requested.items():
        doc = by_id.get(document_id)
        if doc is None:
            raise ValidationError("allocations", f"document {document_id} is not open")
        if applied <= 0:
            raise ValidationError("allocations", "allocated amounts must be positive")
        if applied > doc.open_balance:
            raise ValidationError(
                "allocations",
                f"{applied} exceeds open balance {doc.open_balance} of document {document_id}",
            )
        lines.append(
            AllocationLine(
                document_id=document_id,
                amount=applied,
                fully_paid=applied == doc.open_balance,
            )
        )

    result = AllocationResult(payment_amount=amount, lines=tuple(lines))
    if result.allocated > amount:
        raise ValidationError(
            "allocations", f"allocations {result.allocated} exceed payment {amount}",
        )
    return result
