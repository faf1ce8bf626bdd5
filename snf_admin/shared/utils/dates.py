"""Date parsing/formatting for backend timestamps (ISO dates or ISO datetimes)."""

from datetime import date, datetime
from typing import Any


def parse_date(value: Any) -> date | None:
    """Parse '2024-01-15', '2024-01-15T10:00:00.000Z' or date/datetime objects."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def format_date(value: Any) -> str:
    """Short display date, e.g. '15 Jan 2024'; empty string when unparseable."""
    d = parse_date(value)
    return d.strftime("%d %b %Y") if d else ""


def format_date_dmy(value: Any) -> str:
    """Numeric display date, e.g. '15/01/2024'; unparseable input is returned as text."""
    d = parse_date(value)
    if d:
        return d.strftime("%d/%m/%Y")
    return "" if value is None else str(value)
