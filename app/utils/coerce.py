from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a numeric payload value; blank means absent, garbage raises ValueError."""
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Not a number: {value!r}")
    return result


def to_int(value: Any) -> Optional[int]:
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not an integer: {value!r}")
    return int(str(value).strip()) if isinstance(value, str) else int(value)


def to_date(value: Any) -> Optional[date]:
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        raise ValueError(f"Not a date: {value!r}") from None


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)
