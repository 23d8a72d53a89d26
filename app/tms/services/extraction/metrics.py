"""
Derived figures computed from a normalized load.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ...models import DerivedMetrics, LoadRecord

_CENTS = Decimal("0.01")


def compute_rate_per_mile(miles: float, booked_rate: float) -> str | None:
    """
    Compute revenue per mile, rounded half-up to 2 decimal places.

    Returns None (not computable) unless both miles and booked rate are
    positive. ``compute_rate_per_mile(500, 1250.0) == "2.50"``.
    """
    try:
        miles_dec = Decimal(str(miles))
        rate_dec = Decimal(str(booked_rate))
    except (InvalidOperation, ValueError):
        return None

    if not miles_dec.is_finite() or not rate_dec.is_finite():
        return None
    if miles_dec <= 0 or rate_dec <= 0:
        return None

    return str((rate_dec / miles_dec).quantize(_CENTS, rounding=ROUND_HALF_UP))


def compute_metrics(load: LoadRecord) -> DerivedMetrics:
    """Compute every derived figure for a load."""
    return DerivedMetrics(
        rate_per_mile=compute_rate_per_mile(load.miles, load.booked_rate),
    )
