from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

def to_decimal(value) -> Decimal:
    """Accept Decimal, int, float or numeric str. Floats go through str so 0.1 stays 0.1."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)

def round_money(value) -> Decimal:
    # ROUND_HALF_UP in decimal rounds half away from zero for both signs.
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
