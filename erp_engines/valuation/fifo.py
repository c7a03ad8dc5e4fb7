"""
erp_engines.valuation.fifo -- FIFO depletion planning.

Responsibility:
    Decide which layers an outbound movement draws from, oldest receive
    date first, and how much from each.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Order is (receive_date, layer_id): equal receive dates deplete in
      insertion order.
    - All-or-nothing: if the layers cannot cover the request, the planner
      raises InsufficientStockError and returns no partial plan.

Failure modes:
    - ValidationError if quantity <= 0.
    - InsufficientStockError if Σ remaining < quantity.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from erp_engines.tracer import traced_engine
from erp_engines.valuation.cost_layer import DepletionPlan, LayerDepletion, LayerSnapshot
from erp_kernel.exceptions import InsufficientStockError, ValidationError
from erp_kernel.logging_config import get_logger

logger = get_logger("engines.valuation.fifo")


def _as_utc_naive(value: datetime) -> datetime:
    # Drivers differ on whether stored timestamps come back tz-aware.
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def fifo_sort_key(layer: LayerSnapshot) -> tuple[datetime, int]:
    return (_as_utc_naive(layer.receive_date), layer.layer_id)


def fifo_order(layers: Sequence[LayerSnapshot]) -> list[LayerSnapshot]:
    """Layers in depletion order."""
    return sorted(layers, key=fifo_sort_key)


@traced_engine("fifo_depletion", "1.0", fingerprint_fields=("item_id", "quantity"))
def plan_fifo_depletion(
    *,
    item_id: int,
    layers: Sequence[LayerSnapshot],
    quantity: int,
) -> DepletionPlan:
    """
    Plan the depletion of ``quantity`` units of ``item_id``.

    Preconditions:
        - ``layers`` are the item's eligible layers (any order).
    Postconditions:
        - plan.total_quantity == quantity.
        - Depletions are listed in FIFO order; only the last may be partial.
    """
    if quantity <= 0:
        raise ValidationError("quantity", f"must be positive, got {quantity}")

    available = sum(layer.remaining_quantity for layer in layers)
    if available < quantity:
        logger.warning(
            "fifo_insufficient_stock",
            extra={
                "item_id": item_id,
                "requested_quantity": quantity,
                "available_quantity": available,
            },
        )
        raise InsufficientStockError(
            item_id=item_id,
            requested_quantity=quantity,
            available_quantity=available,
        )

    depletions: list[LayerDepletion] = []
    outstanding = quantity
    for layer in fifo_order(layers):
        if outstanding == 0:
            break
        take = min(outstanding, layer.remaining_quantity)
        if take <= 0:
            continue
        depletions.append(
            LayerDepletion(
                layer_id=layer.layer_id,
                quantity=take,
                unit_cost=layer.unit_cost,
                remaining_after=layer.remaining_quantity - take,
            )
        )
        outstanding -= take

    return DepletionPlan(
        item_id=item_id,
        requested_quantity=quantity,
        depletions=tuple(depletions),
    )
