"""
ERP modules: thin business glue over the kernel, engines and services.

Each module package follows one layout:

    config.py     Mutable, validated configuration dataclass.
    models.py     Enums and frozen input/result DTOs.
    orm.py        SQLAlchemy persistence models.
    workflows.py  Declarative state machines (where the module has one).
    service.py    The module's public service; owns the transaction.

Modules import from erp_kernel, erp_engines and erp_services, never the
other way round.
"""
