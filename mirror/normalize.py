"""Value normalization shared by every transform.

Business Central encodes "nothing" with sentinels instead of nulls: an
all-zero GUID for an empty reference, 0001-01-01 for an empty date and 0 for
an empty entry-number link. Every transform routes such fields through the
helpers below so sentinel handling lives in one place.

Helpers that may correct data accept an optional `warnings` list and append
a human-readable message when they do.
"""

import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional

ZERO_GUID = "00000000-0000-0000-0000-000000000000"
SENTINEL_DATE = date(1, 1, 1)

_TWO_PLACES = Decimal("0.01")
_HUNDRED = Decimal("100")
_ZERO = Decimal("0")
_ONE = Decimal("1")

_DATETIME_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})"
    r"(?:[T ](?P<time>\d{2}:\d{2}(?::\d{2})?)(?:\.(?P<fraction>\d+))?"
    r"(?P<tz>Z|[+-]\d{2}:?\d{2})?)?$"
)


def _warn(warnings: Optional[List[str]], message: str) -> None:
    if warnings is not None:
        warnings.append(message)


# =============================================================================
# References
# =============================================================================

def normalize_reference(value: Any) -> Optional[str]:
    """Return a GUID-shaped reference, or None for the zero GUID / empty."""
    if value is None:
        return None
    s = str(value).strip()
    if s.startswith("{") and s.endswith("}"):
        s = s[1:-1]
    if s == "" or s.lower() == ZERO_GUID:
        return None
    return s


def normalize_entry_reference(value: Any) -> Optional[int]:
    """Entry-number links (e.g. closedByEntryNo) use 0 for "not linked"."""
    number = normalize_int(value)
    if not number:
        return None
    return number


# =============================================================================
# Scalars
# =============================================================================

def normalize_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = value if isinstance(value, str) else str(value)
    if s.strip() == "":
        return None
    return s


def normalize_bool(value: Any) -> Optional[bool]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    s = str(value).strip().lower()
    if s in ("true", "yes", "1"):
        return True
    if s in ("false", "no", "0"):
        return False
    return None


def normalize_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    s = str(value).strip().replace(",", "")
    if s == "":
        return None
    try:
        return int(Decimal(s))
    except (InvalidOperation, ValueError):
        return None


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a number; None for missing, raises ValueError for garbage."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        s = str(value).strip().replace(",", "")
        if s == "":
            return None
        try:
            result = Decimal(s)
        except InvalidOperation:
            raise ValueError(f"not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def normalize_decimal(value: Any, warnings: Optional[List[str]] = None, field: str = "amount") -> Optional[Decimal]:
    """Coerce an amount; unparseable values become None with a warning."""
    try:
        return _to_decimal(value)
    except ValueError:
        _warn(warnings, f"{field}: non-numeric value {value!r} dropped")
        return None


def normalize_percent(
    value: Any,
    warnings: Optional[List[str]] = None,
    field: str = "discount_percent",
) -> Optional[Decimal]:
    """Normalize a percentage into [0, 100] with two decimal places.

    Fractions in [0, 1) are scaled by 100. Values above 100 clamp to 100 and
    negatives clamp to 0, each with a warning. Non-numeric input becomes 0
    with a warning; a missing value stays None.
    """
    try:
        p = _to_decimal(value)
    except ValueError:
        _warn(warnings, f"{field}: non-numeric value {value!r} replaced with 0")
        return _ZERO.quantize(_TWO_PLACES)
    if p is None:
        return None

    if _ZERO <= p < _ONE:
        return (p * _HUNDRED).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    if p > _HUNDRED:
        _warn(warnings, f"{field}: {value} exceeds 100, clamped to 100")
        return _HUNDRED.quantize(_TWO_PLACES)
    if p < _ZERO:
        _warn(warnings, f"{field}: {value} is negative, clamped to 0")
        return _ZERO.quantize(_TWO_PLACES)
    return p.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


# =============================================================================
# Dates
# =============================================================================

def _match_datetime(value: str):
    return _DATETIME_RE.match(value.strip())


def normalize_date(value: Any, warnings: Optional[List[str]] = None, field: str = "date") -> Optional[date]:
    """Parse an ISO date (or datetime) string; 0001-01-01 means no date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        result = value.date()
    elif isinstance(value, date):
        result = value
    else:
        s = str(value).strip()
        if s == "":
            return None
        m = _match_datetime(s)
        if not m:
            _warn(warnings, f"{field}: unparseable date {value!r} dropped")
            return None
        try:
            result = date.fromisoformat(m.group("date"))
        except ValueError:
            _warn(warnings, f"{field}: invalid date {value!r} dropped")
            return None
    if result == SENTINEL_DATE:
        return None
    return result


def normalize_datetime(value: Any, warnings: Optional[List[str]] = None, field: str = "timestamp") -> Optional[datetime]:
    """Parse an ISO timestamp into an aware UTC datetime.

    BC emits a variable number of fractional digits (e.g. `.48Z`), which
    `datetime.fromisoformat` does not accept on every supported Python, so
    the fraction is padded here.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        result = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    else:
        s = str(value).strip()
        if s == "":
            return None
        m = _match_datetime(s)
        if not m:
            _warn(warnings, f"{field}: unparseable timestamp {value!r} dropped")
            return None
        time_part = m.group("time") or "00:00:00"
        if len(time_part) == 5:
            time_part += ":00"
        fraction = (m.group("fraction") or "0")[:6].ljust(6, "0")
        tz = m.group("tz") or "Z"
        if tz == "Z":
            tz = "+00:00"
        elif ":" not in tz:
            tz = f"{tz[:3]}:{tz[3:]}"
        try:
            result = datetime.fromisoformat(f"{m.group('date')}T{time_part}.{fraction}{tz}")
        except ValueError:
            _warn(warnings, f"{field}: invalid timestamp {value!r} dropped")
            return None
    if result.date() == SENTINEL_DATE:
        return None
    return result.astimezone(timezone.utc)
