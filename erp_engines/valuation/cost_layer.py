"""
erp_engines.valuation.cost_layer -- Cost layer value objects.

Responsibility:
    Immutable snapshots of inventory layers and the depletion plan computed
    over them.  The stateful InventoryLedger (erp_services) turns ORM rows
    into LayerSnapshot, asks an engine for a DepletionPlan, and applies it.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - LayerSnapshot.remaining_quantity >= 0 and unit_cost >= 0.
    - LayerDepletion.quantity > 0 and never exceeds the layer's remaining
      quantity (remaining_after >= 0).
    - DepletionPlan.total_quantity == requested_quantity for a complete plan.

Audit relevance:
    Each LayerDepletion becomes one LayerConsumption row, the record that
    lets an edited or deleted document restore exactly what it took.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class LayerSnapshot:
    """Point-in-time view of one layer that still holds stock."""

    layer_id: int
    receive_date: datetime
    remaining_quantity: int
    unit_cost: int
    warehouse_id: int | None = None
    location_id: int | None = None
    batch_number: str = ""

    def __post_init__(self) -> None:
        if self.remaining_quantity < 0:
            raise ValueError(f"Layer {self.layer_id} has negative remaining quantity")
        if self.unit_cost < 0:
            raise ValueError(f"Layer {self.layer_id} has negative unit cost")

    @property
    def value(self) -> int:
        return self.remaining_quantity * self.unit_cost


@dataclass(frozen=True, slots=True)
class LayerDepletion:
    """Quantity drawn from one layer by one issue."""

    layer_id: int
    quantity: int
    unit_cost: int
    remaining_after: int

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("Depletion quantity must be positive")
        if self.remaining_after < 0:
            raise ValueError(f"Depletion overdraws layer {self.layer_id}")

    @property
    def cost(self) -> int:
        return self.quantity * self.unit_cost

    @property
    def depletes_layer(self) -> bool:
        return self.remaining_after == 0


@dataclass(frozen=True, slots=True)
class DepletionPlan:
    """Ordered set of layer depletions satisfying one issue."""

    item_id: int
    requested_quantity: int
    depletions: tuple[LayerDepletion, ...]

    @property
    def total_quantity(self) -> int:
        return sum(d.quantity for d in self.depletions)

    @property
    def total_cost(self) -> int:
        return sum(d.cost for d in self.depletions)

    @property
    def is_complete(self) -> bool:
        return self.total_quantity == self.requested_quantity
