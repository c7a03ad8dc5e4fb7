"""
Shared helpers for module transaction writers.

Used by erp_modules/*/service.py to resolve inventory accounts, enforce
the edit/delete lock on documents and turn a PostingLineBuilder into a
posted journal entry.

Architecture: Modules layer.  Imports only from erp_kernel.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from enum import Enum

from erp_kernel.domain.actor import Actor
from erp_kernel.domain.dtos import PostingLineBuilder, PostingRequest
from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import DocumentLockedError
from erp_kernel.models.item import Item, ItemClass
from erp_kernel.models.journal import JournalEntry
from erp_kernel.services.journal_poster import GeneralLedgerPoster


def default_item_class_accounts() -> dict[ItemClass, str]:
    """Inventory account per item class, as shipped in the default chart."""
    return {
        ItemClass.RAW_MATERIAL: "1310",
        ItemClass.WIP: "1330",
        ItemClass.FINISHED_GOODS: "1340",
        ItemClass.SERVICE: "5100",
    }


def resolve_asset_account(
    item: Item,
    item_class_accounts: Mapping[ItemClass, str],
    fallback: str,
) -> str:
    """Inventory account of ``item``: its override, its class default, or the fallback."""
    if item.asset_account_code:
        return item.asset_account_code
    return item_class_accounts.get(ItemClass(item.item_class), fallback)


def ensure_editable(
    document_type: str,
    document_id: int,
    status: str | Enum,
    paid_amount: int,
    editable_status: str = "OPEN",
) -> None:
    """Raise DocumentLockedError unless the document is OPEN and unpaid."""
    status = status.value if isinstance(status, Enum) else status
    if status != editable_status:
        raise DocumentLockedError(document_type, document_id, status)
    if paid_amount > 0:
        raise DocumentLockedError(
            document_type, document_id, status, reason="payments have been applied",
        )


def post_builder(
    poster: GeneralLedgerPoster,
    builder: PostingLineBuilder,
    *,
    actor: Actor,
    entry_date: date,
    description: str,
    source_type: SourceType,
    source_id: int,
    reference: str | None = None,
) -> JournalEntry | None:
    """Post the builder's lines as one entry; None when every line is zero."""
    lines = tuple(line for line in builder.build() if not line.is_zero)
    if not lines:
        return None
    request = PostingRequest(
        entry_date=entry_date,
        description=description,
        source_type=source_type,
        source_id=source_id,
        lines=lines,
        reference=reference,
    )
    return poster.post(request, actor)
