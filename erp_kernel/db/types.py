"""
Module: erp_kernel.db.types
Responsibility: Shared column types for ORM models.
Architecture position: Kernel > DB.  Imported by models only.

Invariants enforced:
    - Enumerations are stored by name in VARCHAR columns (no native
      database ENUM types), so schemas stay portable between PostgreSQL
      and SQLite and adding a member never needs DDL.
    - Money is an integer number of tiyin; the ``int`` annotation maps to
      BIGINT through ``Base.type_annotation_map``.
"""

from enum import Enum

from sqlalchemy import Enum as SAEnum


def enum_type(enum_cls: type[Enum], length: int = 32) -> SAEnum:
    """VARCHAR-backed enum column type for ``enum_cls``."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=length,
        validate_strings=True,
    )
