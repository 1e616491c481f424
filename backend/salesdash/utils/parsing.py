"""
Helpers for the loosely-typed values stored in the sales collections.

Uploaded spreadsheets leave amounts as Brazilian-formatted strings
("R$ 1.234,56") and dates as Firestore timestamps, ISO strings or
``datetime`` objects.
"""
import re
from datetime import date, datetime, time, timezone
from typing import Any, Optional

# "1.500", "12.345.678": dots as thousands separators
_THOUSANDS_RE = re.compile(r"^-?[1-9]\d{0,2}(?:\.\d{3})+$")


def parse_brl(value: Any) -> float:
    """Parse a number written in pt-BR notation. Unparseable values give 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        s = value.replace("\u00a0", " ").replace("R$", "").replace(" ", "").strip()
        if not s:
            return 0.0
        if "," in s:
            s = s.replace(".", "").replace(",", ".")
        elif _THOUSANDS_RE.match(s):
            s = s.replace(".", "")
        try:
            return float(s)
        except ValueError:
            return 0.0
    return 0.0


def to_datetime(value: Any) -> Optional[datetime]:
    """Coerce a stored date value to an aware UTC ``datetime``."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    elif hasattr(value, "to_datetime"):
        dt = value.to_datetime()
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def epoch_millis(value: Optional[datetime]) -> int:
    """Millisecond timestamp of ``value``; 0 when missing."""
    if value is None:
        return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)
