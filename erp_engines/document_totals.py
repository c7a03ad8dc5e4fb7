"""
Module: erp_engines.document_totals
Responsibility:
    Compute invoice and bill line amounts and document totals from
    quantities, unit prices, discounts and tax rates.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - gross = quantity * unit_price.
    - 0 <= discount <= gross.  A discount is either a fixed amount or a
      rate in basis points (at most 10000).
    - net = gross - discount; tax = round(net * tax_rate_bps / 10000).
    - line total = net + tax; document totals are the sums over lines.

Failure modes:
    - ValidationError on non-positive quantity, negative price or a discount
      or tax rate outside its bounds.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from erp_kernel.domain.money import BASIS_POINTS, apply_basis_points
from erp_kernel.exceptions import ValidationError


@dataclass(frozen=True)
class LineInput:
    """Pricing inputs of one document line."""

    quantity: int
    unit_price: int
    discount_amount: int = 0
    discount_rate_bps: int = 0
    tax_rate_bps: int = 0

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValidationError("quantity", f"must be positive, got {self.quantity}")
        if self.unit_price < 0:
            raise ValidationError("unit_price", "cannot be negative")
        if self.discount_amount < 0:
            raise ValidationError("discount_amount", "cannot be negative")
        if not 0 <= self.discount_rate_bps <= BASIS_POINTS:
            raise ValidationError("discount_rate_bps", "must be between 0 and 10000")
        if self.discount_amount and self.discount_rate_bps:
            raise ValidationError("discount", "give either an amount or a rate, not both")
        if self.tax_rate_bps < 0:
            raise ValidationError("tax_rate_bps", "cannot be negative")


@dataclass(frozen=True)
class LineAmounts:
    gross: int
    discount: int
    net: int
    tax: int

    @property
    def total(self) -> int:
        return self.net + self.tax


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: int
    discount_total: int
    tax_total: int
    total_amount: int
    lines: tuple[LineAmounts, ...]

    @property
    def net_total(self) -> int:
        return self.subtotal - self.discount_total


def compute_line(line: LineInput) -> LineAmounts:
    gross = line.quantity * line.unit_price
    if line.discount_rate_bps:
        discount = apply_basis_points(gross, line.discount_rate_bps)
    else:
        discount = line.discount_amount
    if discount > gross:
        raise ValidationError(
            "discount_amount", f"discount {discount} exceeds line amount {gross}",
        )
    net = gross - discount
    tax = apply_basis_points(net, line.tax_rate_bps)
    return LineAmounts(gross=gross, discount=discount, net=net, tax=tax)


def compute_document_totals(lines: Sequence[LineInput]) -> DocumentTotals:
    """Totals of a document; raises ValidationError on an empty line set."""
    if not lines:
        raise ValidationError("lines", "a document needs at least one line")
    amounts = tuple(compute_line(line) for line in lines)
    subtotal = sum(a.gross for a in amounts)
    discount_total = sum(a.discount for a in amounts)
    tax_total = sum(a.tax for a in amounts)
    return DocumentTotals(
        subtotal=subtotal,
        discount_total=discount_total,
        tax_total=tax_total,
        total_amount=subtotal - discount_total + tax_total,
        lines=amounts,
    )
