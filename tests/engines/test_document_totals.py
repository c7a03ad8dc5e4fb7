"""Tests for line and document total calculation."""

import pytest

from erp_engines.document_totals import LineInput, compute_document_totals, compute_line
from erp_kernel.exceptions import ValidationError


class TestComputeLine:

    def test_plain_line(self):
        amounts = compute_line(LineInput(quantity=3, unit_price=2_000_000))
        assert (amounts.gross, amounts.discount, amounts.net, amounts.tax) == (6_000_000, 0, 6_000_000, 0)
        assert amounts.total == 6_000_000

    def test_discount_rate_rounds_half_up(self):
        # 10.5 tiyin of discount rounds to 11
        amounts = compute_line(LineInput(quantity=1, unit_price=105, discount_rate_bps=1000))
        assert amounts.discount == 11
        assert amounts.net == 94

    def test_fixed_discount_then_tax_on_net(self):
        amounts = compute_line(
            LineInput(quantity=2, unit_price=500_000, discount_amount=100_000, tax_rate_bps=1200)
        )
        assert amounts.net == 900_000
        assert amounts.tax == 108_000
        assert amounts.total == 1_008_000

    def test_full_discount_allowed(self):
        amounts = compute_line(LineInput(quantity=1, unit_price=100, discount_rate_bps=10_000))
        assert amounts.net == 0

    def test_discount_above_gross_rejected(self):
        with pytest.raises(ValidationError):
            compute_line(LineInput(quantity=1, unit_price=100, discount_amount=101))


class TestLineInputValidation:

    @pytest.mark.parametrize("kwargs", [
        {"quantity": 0, "unit_price": 1},
        {"quantity": -1, "unit_price": 1},
        {"quantity": 1, "unit_price": -1},
        {"quantity": 1, "unit_price": 1, "discount_amount": -5},
        {"quantity": 1, "unit_price": 1, "discount_rate_bps": 10_001},
        {"quantity": 1, "unit_price": 1, "tax_rate_bps": -1},
        {"quantity": 1, "unit_price": 100, "discount_amount": 5, "discount_rate_bps": 100},
    ])
    def test_invalid_inputs(self, kwargs):
        with pytest.raises(ValidationError):
            LineInput(**kwargs)


class TestComputeDocumentTotals:

    def test_totals_sum_lines(self):
        totals = compute_document_totals([
            LineInput(quantity=2, unit_price=1_000, discount_amount=200),
            LineInput(quantity=1, unit_price=3_000, tax_rate_bps=1000),
        ])
        assert totals.subtotal == 5_000
        assert totals.discount_total == 200
        assert totals.tax_total == 300
        assert totals.net_total == 4_800
        assert totals.total_amount == 5_100
        assert len(totals.lines) == 2

    def test_empty_document_rejected(self):
        with pytest.raises(ValidationError):
            compute_document_totals([])
