"""
Document numbering shared by the modules.

Numbers have the form ``{PREFIX}-{YYYY}-{NNNNN}`` (INV-2025-00001).  The
sequence restarts each year and continues from the highest number still
stored.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import InstrumentedAttribute, Session


def format_document_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year}-{sequence:05d}"


def next_document_number(
    session: Session,
    column: InstrumentedAttribute,
    prefix: str,
    year: int,
) -> str:
    """Next free number for ``prefix`` in ``year``, read from ``column``."""
    stem = f"{prefix}-{year}-"
    existing = session.scalars(select(column).where(column.like(f"{stem}%"))).all()
    highest = 0
    for number in existing:
        suffix = number[len(stem):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return format_document_number(prefix, year, highest + 1)
