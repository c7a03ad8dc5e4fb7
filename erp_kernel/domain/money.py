"""
Integer money arithmetic.

All amounts are integer tiyin.  Division results are rounded half-up, which
matches ``round()`` on the non-negative values the ledger produces
(quantities and unit costs are never negative).
"""

BASIS_POINTS = 10_000


def divide_half_up(numerator: int, denominator: int) -> int:
    """``numerator / denominator`` rounded half away from zero."""
    if denominator == 0:
        raise ZeroDivisionError("denominator must be non-zero")
    sign = -1 if (numerator < 0) != (denominator < 0) else 1
    n, d = abs(numerator), abs(denominator)
    return sign * ((2 * n + d) // (2 * d))


def apply_basis_points(amount: int, basis_points: int) -> int:
    """``amount * basis_points / 10000`` rounded half-up."""
    return divide_half_up(amount * basis_points, BASIS_POINTS)
