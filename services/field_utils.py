"""Column-name and cell-value helpers shared by the parser and normalizer."""

import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

# Template column order
CANONICAL_COLUMNS = [
    'type', 'title', 'description', 'owner_email', 'department',
    'status', 'progress', 'start_date', 'end_date', 'parent_title',
]

# Excel's day zero, accounting for the 1900 leap-year bug
EXCEL_EPOCH = date(1899, 12, 30)
MAX_EXCEL_SERIAL = 2958465  # 9999-12-31

_WHITESPACE = re.compile(r'\s+')
_DAY_FIRST = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')


def canonical_key(header: Any) -> str:
    """Map a header cell to its canonical field name ("Owner  Email" -> "owner_email")."""
    if header is None:
        return ''
    return _WHITESPACE.sub('_', str(header).strip().lower())


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a cell value into a calendar date.

    Accepts date/datetime objects, ISO strings, DD/MM/YYYY strings and Excel
    serial numbers. Returns None when the value cannot be interpreted.
    """
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if 0 < value <= MAX_EXCEL_SERIAL:
            return EXCEL_EPOCH + timedelta(days=int(value))
        return None

    text = str(value).strip()
    match = _DAY_FIRST.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None
