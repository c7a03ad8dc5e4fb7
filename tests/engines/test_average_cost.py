"""Tests for weighted average cost."""

from datetime import datetime, timezone

import pytest

from erp_engines.valuation import LayerSnapshot, calculate_weighted_average, stock_position

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


class TestWeightedAverage:

    def test_position_over_layers(self):
        position = calculate_weighted_average([
            LayerSnapshot(layer_id=1, receive_date=T0, remaining_quantity=5, unit_cost=1_000_000),
            LayerSnapshot(layer_id=2, receive_date=T0, remaining_quantity=3, unit_cost=1_500_000),
        ])
        assert position.quantity == 8
        assert position.total_value == 9_500_000
        assert position.average_cost == 1_187_500

    def test_rounds_half_up(self):
        position = calculate_weighted_average([
            LayerSnapshot(layer_id=1, receive_date=T0, remaining_quantity=1, unit_cost=1),
            LayerSnapshot(layer_id=2, receive_date=T0, remaining_quantity=1, unit_cost=2),
        ])
        assert position.average_cost == 2

    def test_no_stock_is_zero(self):
        position = calculate_weighted_average([])
        assert (position.quantity, position.total_value, position.average_cost) == (0, 0, 0)


class TestStockPosition:

    def test_from_summed_totals(self):
        position = stock_position(8, 9_500_000)
        assert position.average_cost == 1_187_500

    def test_empty(self):
        assert stock_position(0, 0).average_cost == 0

    def test_negative_totals_rejected(self):
        with pytest.raises(ValueError):
            stock_position(-1, 100)
