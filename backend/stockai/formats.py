# Overview: Shared conversions for timestamps and money amounts.

"""
Canonical representations:
- Datetimes are stored UTC-naive; API responses serialize them as ISO-8601 with 'Z'.
- Money is stored as integer cents; API payloads carry decimal amounts (10.00).
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: str | None) -> datetime | None:
    """
    Parse an ISO-8601 string (date or datetime) into a UTC-naive datetime.

    Accepts a trailing 'Z' and numeric offsets. Blank input returns None;
    malformed input raises ValueError.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"


def amount_to_cents(value) -> int:
    """
    Convert a decimal amount (number or numeric string) to integer cents.

    Rounds half-up to the nearest cent. Raises ValueError on anything that
    is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("amount must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError("amount must be a number")
    if not amount.is_finite():
        raise ValueError("amount must be a number")
    return int((amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def cents_to_amount(cents: int | None) -> float | None:
    if cents is None:
        return None
    return float(Decimal(cents) / 100)
