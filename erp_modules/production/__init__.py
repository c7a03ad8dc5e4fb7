"""
Production Module (``erp_modules.production``).

Production runs: inputs are drawn FIFO, overhead is absorbed and the
output is capitalised as a new cost layer.
"""

from erp_modules.production.config import ProductionConfig
from erp_modules.production.models import (
    ProductionCostInput,
    ProductionInputLine,
    ProductionResult,
    ProductionRunStatus,
    ProductionRunType,
)
from erp_modules.production.service import ProductionService

__all__ = [
    "ProductionConfig",
    "ProductionCostInput",
    "ProductionInputLine",
    "ProductionResult",
    "ProductionRunStatus",
    "ProductionRunType",
    "ProductionService",
]
