"""
Valuation - Pure cost layer objects, FIFO planning and weighted averages.

The stateful InventoryLedger lives in erp_services.inventory_ledger.
"""

from erp_engines.valuation.average_cost import (
    StockPosition,
    calculate_weighted_average,
    stock_position,
)
from erp_engines.valuation.cost_layer import DepletionPlan, LayerDepletion, LayerSnapshot
from erp_engines.valuation.fifo import fifo_order, plan_fifo_depletion

__all__ = [
    "LayerSnapshot",
    "LayerDepletion",
    "DepletionPlan",
    "StockPosition",
    "calculate_weighted_average",
    "stock_position",
    "fifo_order",
    "plan_fifo_depletion",
]
