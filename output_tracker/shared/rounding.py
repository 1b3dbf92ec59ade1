from decimal import Decimal, ROUND_HALF_UP


def round_half_up(value: float, digits: int = 0):
    """
    Round halves away from zero instead of to even (2.5 -> 3, not 2).

    Returns an int when digits == 0, otherwise a float.
    """
    exponent = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)
    if digits == 0:
        return int(rounded)
    return float(rounded)
