"""
Money helpers.

Amounts are integer minor units (cents/paise). Commission rates are integer
basis points, 10000 bps = 100%. All arithmetic stays in integers; Decimal is
only used at the text boundary.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import ValidationError

BPS_PER_UNIT = 10_000
MAX_COMMISSION_BPS = 10_000


def percent_to_bps(value) -> int:
    """
    Convert a percent given as int/str/Decimal ("20", "12.5") to basis points.

    Floats are accepted only when they convert exactly at two decimals, so
    JSON numbers like 12.5 work while 12.345 is rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError("commission rate is required")
    try:
        pct = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"commission rate {value!r} is not a number")
    if not pct.is_finite():
        raise ValidationError(f"commission rate {value!r} is not a number")

    bps = pct * 100
    if bps != bps.to_integral_value():
        raise ValidationError("commission rate allows at most two decimal places")
    bps = int(bps)
    if bps < 0 or bps > MAX_COMMISSION_BPS:
        raise ValidationError("commission rate must be between 0 and 100")
    return bps


def bps_to_percent(bps: int) -> str:
    """2000 -> "20", 1250 -> "12.5"."""
    pct = (Decimal(bps) / 100).normalize()
    return format(pct, "f")


def commission_cents(gross_cents: int, rate_bps: int) -> int:
    """Commission on a gross amount, rounded half-up to the minor unit."""
    return (gross_cents * rate_bps * 2 + BPS_PER_UNIT) // (2 * BPS_PER_UNIT)


def effective_rate_percent(commission: int, gross: int) -> str:
    """Blended commission rate over a set of lines, e.g. "17.5"."""
    if gross <= 0:
        return "0"
    pct = (Decimal(commission) * 100 / Decimal(gross)).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
    return format(pct.normalize(), "f")


def cents_to_str(cents: int) -> str:
    """1000 -> "10.00" (machine friendly, used in CSV)."""
    return format(Decimal(cents) / 100, ".2f")


def format_cents(cents: int, symbol: str = "") -> str:
    """123456 -> "1,234.56", prefixed with `symbol`."""
    return f"{symbol}{Decimal(cents) / 100:,.2f}"
