"""
Values -- lenient coercion of raw form and API values into domain types.

Responsibility:
    Converts the loosely typed values that arrive from forms and the
    inventory API (strings, ints, floats, None, ISO timestamps) into the
    types the engines compute with: ``Decimal`` quantities, timezone-aware
    ``datetime`` and ``date``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Quantities are always ``Decimal``; floats are converted through
      ``str()`` so binary noise is not imported.
    - NaN and infinities never leave this module; they coerce to the
      caller's default like any other non-numeric input.
    - Timestamps are always timezone-aware (naive values are taken as UTC)
      so that ordering never mixes naive and aware datetimes.

Failure modes:
    - None. Every function degrades to its default instead of raising.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")


def coerce_quantity(value: Any, default: Decimal | None = ZERO) -> Decimal | None:
    """Coerce a raw value to a finite ``Decimal``.

    Non-numeric input (blank strings, garbage text, booleans, None, NaN,
    infinities) yields ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        result = Decimal(str(value))
        return result if result.is_finite() else default
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            result = Decimal(text)
        except InvalidOperation:
            return default
        return result if result.is_finite() else default
    return default


def optional_quantity(value: Any) -> Decimal | None:
    """Coerce to ``Decimal`` but keep absence (None, blank, garbage) as None."""
    return coerce_quantity(value, default=None)


def non_negative(value: Decimal) -> Decimal:
    """Clamp a quantity at zero."""
    return value if value > ZERO else ZERO


def is_blank(value: Any) -> bool:
    """True for None, empty and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted) into an aware datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_date(value: Any) -> date | None:
    """Parse a calendar date from a ``date``, ``datetime`` or ISO string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None
