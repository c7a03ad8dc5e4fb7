"""
Tests for the pure FIFO depletion planner.

Tests cover:
- Oldest layer depleted first, receive date then id
- Partial depletion of the last layer only
- Insufficient stock raised before any plan exists
- Mixed naive / aware receive dates ordered on one UTC timeline
"""

from datetime import datetime, timedelta, timezone

import pytest

from erp_engines.valuation import LayerSnapshot, fifo_order, plan_fifo_depletion
from erp_kernel.exceptions import InsufficientStockError, ValidationError

DAY1 = datetime(2025, 1, 1, tzinfo=timezone.utc)
DAY2 = DAY1 + timedelta(days=1)


def _layer(layer_id, received, qty, cost):
    return LayerSnapshot(
        layer_id=layer_id, receive_date=received, remaining_quantity=qty, unit_cost=cost,
    )


class TestFifoOrdering:

    def test_older_layer_first(self):
        layers = [_layer(2, DAY2, 5, 1_500_000), _layer(1, DAY1, 5, 1_000_000)]
        assert [l.layer_id for l in fifo_order(layers)] == [1, 2]

    def test_same_receive_date_breaks_tie_on_id(self):
        layers = [_layer(9, DAY1, 1, 10), _layer(3, DAY1, 1, 20), _layer(5, DAY1, 1, 30)]
        assert [l.layer_id for l in fifo_order(layers)] == [3, 5, 9]

    def test_naive_dates_treated_as_utc(self):
        aware_later = _layer(1, DAY1 + timedelta(hours=1), 1, 10)
        naive_earlier = _layer(2, datetime(2025, 1, 1, 0, 30), 1, 10)
        assert [l.layer_id for l in fifo_order([aware_later, naive_earlier])] == [2, 1]


class TestPlanFifoDepletion:

    def test_spans_layers_and_costs_each_at_its_own_price(self):
        layers = [_layer(1, DAY1, 5, 1_000_000), _layer(2, DAY2, 5, 1_500_000)]

        plan = plan_fifo_depletion(item_id=7, layers=layers, quantity=7)

        assert plan.is_complete
        assert [(d.layer_id, d.quantity) for d in plan.depletions] == [(1, 5), (2, 2)]
        assert plan.total_cost == 8_000_000
        assert plan.depletions[0].depletes_layer
        assert not plan.depletions[1].depletes_layer
        assert plan.depletions[1].remaining_after == 3

    def test_exact_quantity_depletes_every_layer(self):
        layers = [_layer(1, DAY1, 3, 100), _layer(2, DAY2, 2, 200)]
        plan = plan_fifo_depletion(item_id=1, layers=layers, quantity=5)
        assert all(d.depletes_layer for d in plan.depletions)
        assert plan.total_cost == 700

    def test_empty_layers_are_skipped(self):
        layers = [_layer(1, DAY1, 0, 100), _layer(2, DAY2, 4, 200)]
        plan = plan_fifo_depletion(item_id=1, layers=layers, quantity=2)
        assert [d.layer_id for d in plan.depletions] == [2]

    def test_insufficient_stock_reports_requested_and_available(self):
        layers = [_layer(1, DAY1, 10, 1_000_000)]

        with pytest.raises(InsufficientStockError) as exc_info:
            plan_fifo_depletion(item_id=42, layers=layers, quantity=12)

        assert exc_info.value.item_id == 42
        assert exc_info.value.requested_quantity == 12
        assert exc_info.value.available_quantity == 10
        assert exc_info.value.code == "INSUFFICIENT_STOCK"

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity_rejected(self, quantity):
        with pytest.raises(ValidationError):
            plan_fifo_depletion(item_id=1, layers=[_layer(1, DAY1, 5, 1)], quantity=quantity)


class TestLayerSnapshot:

    def test_value(self):
        assert _layer(1, DAY1, 4, 250).value == 1000

    def test_negative_remaining_rejected(self):
        with pytest.raises(ValueError):
            _layer(1, DAY1, -1, 250)
