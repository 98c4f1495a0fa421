from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
MONEY_TOLERANCE = 0.01


def round2(value) -> float:
    """Round to 2 decimals, halves away from zero."""
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def within_tolerance(a, b, tolerance: float = MONEY_TOLERANCE) -> bool:
    return abs(float(a) - float(b)) < tolerance
