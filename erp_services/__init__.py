"""
erp_services -- Package init and public API.

Responsibility:
    Stateful services that sit between the kernel and the ERP modules: the
    FIFO inventory ledger every writer moves stock through, the
    reconciliation of cached aggregates, the destructive data reset and
    the action boundary callers run module operations inside.

Architecture position:
    Services -- may import ``erp_kernel``, ``erp_engines`` and
    ``erp_config``.  Module code imports from here, never the reverse at
    import time.
"""

from erp_kernel.logging_config import get_logger

logger = get_logger("services")

from erp_services.action_boundary import ActionResult, run_action  # noqa: E402
from erp_services.inventory_ledger import InventoryLedger  # noqa: E402
from erp_services.reconciliation_service import InventoryReconciliationService  # noqa: E402
from erp_services.system_reset_service import SystemResetService  # noqa: E402

__all__ = [
    "ActionResult",
    "InventoryLedger",
    "InventoryReconciliationService",
    "SystemResetService",
    "run_action",
]
