"""
Module ORM Registry (``erp_modules._orm_registry``).

Responsibility
--------------
Import every ORM model so that ``Base.metadata`` holds all table
definitions before ``create_tables()`` runs.  Kernel models come first
because module tables reference items, warehouses and accounts.

Usage
-----
``erp_kernel.db.engine.create_tables()`` calls ``import_all_orm_models()``;
scripts and ``tests/conftest.py`` go through that function.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``erp_modules.*.orm`` module (idempotent)."""
    import erp_kernel.models  # noqa: F401
    # fmt: off
    import erp_modules.inventory.orm  # noqa: F401
    import erp_modules.production.orm  # noqa: F401
    import erp_modules.purchasing.orm  # noqa: F401
    import erp_modules.sales.orm  # noqa: F401
    import erp_modules.service_desk.orm  # noqa: F401
    # fmt: on
