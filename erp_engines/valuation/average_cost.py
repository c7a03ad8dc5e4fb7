"""
erp_engines.valuation.average_cost -- Weighted average cost.

The cached Item.average_cost is the quantity-weighted mean unit cost of the
layers that still hold stock, rounded half-up to whole tiyin; it is 0 when
nothing is on hand.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from erp_engines.valuation.cost_layer import LayerSnapshot
from erp_kernel.domain.money import divide_half_up


@dataclass(frozen=True, slots=True)
class StockPosition:
    """Quantity, value and average unit cost of a set of layers."""

    quantity: int
    total_value: int
    average_cost: int


def stock_position(quantity: int, total_value: int) -> StockPosition:
    """Position from totals already summed over layers (e.g. by SQL)."""
    if quantity < 0 or total_value < 0:
        raise ValueError("stock totals cannot be negative")
    average = divide_half_up(total_value, quantity) if quantity > 0 else 0
    return StockPosition(quantity=quantity, total_value=total_value, average_cost=average)


def calculate_weighted_average(layers: Iterable[LayerSnapshot]) -> StockPosition:
    quantity = 0
    total_value = 0
    for layer in layers:
        quantity += layer.remaining_quantity
        total_value += layer.value
    return stock_position(quantity, total_value)
