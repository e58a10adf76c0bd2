"""Decimal helpers shared by the engine."""

from decimal import Decimal, ROUND_HALF_UP
import math


def round_half_up(value: float, places: int) -> float:
    """Round to `places` decimals, halves away from zero.

    Works on the shortest repr of the float so that 2.675 rounds to 2.68
    the way a person reading the number expects.
    """
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def format_plain(value: float) -> str:
    """Render a number in positional notation, never with an exponent."""
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, int):
        return str(value)
    text = format(Decimal(repr(float(value))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
