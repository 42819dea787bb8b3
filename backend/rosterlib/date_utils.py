"""Spreadsheet serial dates, weekday names and month helpers."""
import calendar
from datetime import date, timedelta
from typing import Dict, List, Optional, Union

# Legacy spreadsheet epoch: serial 1 is 1899-12-31 and serial 60 is the
# nonexistent 1900-02-29, so counting from 1899-12-30 lines up from serial 61.
SPREADSHEET_EPOCH = date(1899, 12, 30)

WEEKDAY_ABBREVS = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']
WEEKEND_ABBREVS = {'Sat', 'Sun'}

MONTH_NAMES = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
]


def excel_serial_to_date(serial: int) -> date:
    """Convert a spreadsheet serial day number to a calendar date."""
    return SPREADSHEET_EPOCH + timedelta(days=int(serial))


def parse_int(value: str) -> Optional[int]:
    """Parse a leading integer the way spreadsheet cells are read ('12', ' 7 ', '3.0').

    Returns None for blank or non-numeric cells.
    """
    s = (value or '').strip()
    if not s:
        return None
    digits = ''
    for i, ch in enumerate(s):
        if ch.isdigit() or (i == 0 and ch in '+-'):
            digits += ch
        else:
            break
    if digits in ('', '+', '-'):
        return None
    return int(digits)


def weekday_abbrev(d: date) -> str:
    """Return 'Mon'..'Sun' for a date."""
    return WEEKDAY_ABBREVS[d.weekday()]


def is_weekend(value: Union[date, str]) -> bool:
    """True for Saturday/Sunday. Accepts a date or a weekday abbreviation."""
    if isinstance(value, date):
        return value.weekday() >= 5
    return (value or '').strip() in WEEKEND_ABBREVS


def month_index(month_name: str) -> Optional[int]:
    """Return 1..12 for an English month name (case-insensitive), else None."""
    name = (month_name or '').strip().lower()
    for i, m in enumerate(MONTH_NAMES, start=1):
        if m.lower() == name:
            return i
    return None


def normalize_month_name(month_name: str) -> str:
    """Return the canonical capitalized month name or raise ValueError."""
    idx = month_index(month_name)
    if idx is None:
        raise ValueError(f"Unknown month: {month_name!r}")
    return MONTH_NAMES[idx - 1]


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def generate_month_days(year: int, month: int) -> List[Dict]:
    """Every day of a month with its weekday name and weekend flag."""
    result = []
    for day in range(1, days_in_month(year, month) + 1):
        d = date(year, month, day)
        result.append({
            'day': day,
            'date': d.isoformat(),
            'weekday': weekday_abbrev(d),
            'is_weekend': is_weekend(d),
        })
    return result
