"""Conversions between token units and the scaled per-second base."""

from .constants import AMT_PER_SEC_MULTIPLIER


def to_fixed_point(amount: int) -> int:
    """Scale a token amount up to the base used by `amount_per_sec`."""
    return amount * AMT_PER_SEC_MULTIPLIER


def from_fixed_point(value: int) -> int:
    """
    Scale a fixed-point value back down to token units.

    Truncates toward zero, so sub-unit dust is dropped.
    """
    quotient = abs(value) // AMT_PER_SEC_MULTIPLIER
    return quotient if value >= 0 else -quotient
