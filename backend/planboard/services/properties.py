"""Property access and value coercion shared by the lookup and rollup engines.

Field definitions are authored at runtime, so entity records are handled as
generic key/value data and properties are addressed by dot-paths such as
``"extra_data.points"``.
"""

import math
from collections.abc import Mapping
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any

import orjson

CHECKED_VALUES = ("completed", "done")

# Largest magnitude where every integer is an exact float (and fits JSON int64)
MAX_EXACT_INT = 2**53


def get_property_value(record: Any, path: str) -> Any:
    """Walk a dot-path; a missing or None step yields None."""
    if record is None or not path:
        return None

    value = record
    for part in path.split("."):
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
    return value


# =============================================================================
# Predicates
# =============================================================================


def is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def is_checked(value: Any) -> bool:
    """True-ish: ``True`` or a completed/done status."""
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value in CHECKED_VALUES


def strict_equals(left: Any, right: Any) -> bool:
    """Equality that does not conflate booleans with numbers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, (int, float, Decimal)) and isinstance(right, (int, float, Decimal)):
        return left == right
    return type(left) is type(right) and left == right


# =============================================================================
# Coercion
# =============================================================================


def to_number(value: Any) -> float | None:
    """Numeric cast; None when the value is not numeric."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_datetime(value: Any) -> datetime | None:
    """Parse a date-like value into an aware datetime (naive values are UTC)."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def stringify(value: Any) -> str:
    """String form used for display, containment tests and de-duplication."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal):
        return stringify(float(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ", ".join(stringify(item) for item in value)
    if isinstance(value, dict):
        return orjson.dumps(to_jsonable(value)).decode()
    return str(value)


def as_integral(number: float) -> int | float:
    """Integral floats as int while exactly representable, else unchanged."""
    if number.is_integer() and abs(number) <= MAX_EXACT_INT:
        return int(number)
    return number


def to_jsonable(value: Any) -> Any:
    """Normalise a value for JSON storage (dates as ISO-8601 strings)."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    return value


# =============================================================================
# Number and date formatting
# =============================================================================


def round_half_up(number: float, decimals: int = 0) -> Decimal:
    """Round like a fixed-point display (2.5 -> 3, not banker's rounding).

    Precision grows with the magnitude so large values keep every integer digit.
    """
    places = max(decimals, 0)
    value = Decimal(str(number))
    context = Context(prec=max(value.adjusted(), 0) + places + 2, rounding=ROUND_HALF_UP)
    return value.quantize(Decimal(1).scaleb(-places), context=context)


def to_fixed(number: float, decimals: int = 0) -> str:
    """Fixed-point string with exactly ``decimals`` digits after the point."""
    return f"{round_half_up(number, decimals):f}"


def format_grouped(number: float) -> str:
    """Thousands-grouped number with at most three fraction digits."""
    if float(number).is_integer():
        return f"{int(number):,}"
    return f"{round_half_up(number, 3):,f}".rstrip("0").rstrip(".")


def format_date(value: date) -> str:
    return f"{value.month}/{value.day}/{value.year}"


def format_datetime(value: datetime) -> str:
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{format_date(value)}, {hour}:{value.minute:02d}:{value.second:02d} {meridiem}"
