"""
erp_kernel.db.base -- Declarative bases shared by every ERP table.

Responsibility:
    ``Base`` fixes the key and column-type conventions; ``TrackedBase``
    adds who/when columns to documents, layers and journal rows.

Architecture position:
    Kernel > DB.  Imported by every ORM module and imports none of them.

Invariants enforced:
    - Integer identity keys, assigned in insertion order.  Inventory
      layers rely on this for the FIFO tie-break (equal receive dates
      deplete in insertion order).
    - Money and quantities are integers (tiyin, units) stored as BIGINT,
      never floats.
    - Python ``datetime`` columns are timezone-aware.
"""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only auto-increments INTEGER PRIMARY KEY columns.
IdentityInteger = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """
    Root of the ERP schema.

    Contract:
        Every ORM model inherits from Base, usually through TrackedBase.

    Guarantees:
        - id is an auto-incrementing integer primary key.
        - datetime maps to DateTime(timezone=True).
        - int maps to BigInteger (INTEGER on SQLite) -- tiyin amounts and
          quantities fit comfortably.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        int: IdentityInteger,
    }

    id: Mapped[int] = mapped_column(
        IdentityInteger,
        primary_key=True,
        autoincrement=True,
    )


class TrackedBase(Base):
    """
    Adds creation and last-update stamps (time and user id).

    Guarantees:
        - created_at comes from the database clock on INSERT and is never rewritten.
        - updated_at auto-updates on every UPDATE.
        - created_by is required -- every record has a creator.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="system",
    )

    updated_by: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
