"""
Numeric helpers shared by the engine.

Rounding goes through Decimal so that results do not depend on binary
float artefacts: halves round toward positive infinity, as accounting
tables produced by the extraction collaborator do.
"""
from decimal import Decimal, ROUND_FLOOR
from typing import Optional, Union

Number = Union[int, float]


def round_half_up(value: Number, digits: int = 0) -> Number:
    """
    Round to ``digits`` decimals, halves toward +infinity.

    Returns an int when ``digits`` is 0.
    """
    quantum = Decimal(1).scaleb(-digits)
    half = quantum / 2
    rounded = (Decimal(repr(float(value))) + half).quantize(quantum, rounding=ROUND_FLOOR)
    if digits == 0:
        return int(rounded)
    return float(rounded)


def percent_of(value: Number, base: Number, digits: int = 2) -> float:
    """Share of ``base`` as a rounded percentage, 0 when base is not positive."""
    if base <= 0:
        return 0.0
    return round_half_up(value / base * 100, digits)


def deviation_pct(value: Number, reference: Number) -> Optional[float]:
    """Absolute deviation of ``value`` from ``reference`` in percent of |reference|."""
    if reference == 0:
        return None
    return abs(value - reference) / abs(reference) * 100
