"""Monday-to-Sunday month grid for the shift calendar view."""
from datetime import date, timedelta
from typing import Optional, Union

from .date_utils import days_in_month, month_index, parse_int
from .models import MonthGrid, ShiftData


def _resolve_month(month: Union[int, str, None]) -> Optional[int]:
    if isinstance(month, int):
        return month if 1 <= month <= 12 else None
    if month is None:
        return None
    s = str(month).strip()
    if s.isdigit():
        return _resolve_month(int(s))
    return month_index(s)


def build_month_grid(
    shift_data: ShiftData,
    month: Union[int, str, None] = None,
    year: Union[int, str, None] = None,
) -> MonthGrid:
    """Lay the month covered by shift_data onto whole Monday–Sunday weeks.

    month/year default to the values parsed from the file. Days outside
    the month are ignored; the grid is padded outward to full weeks, so
    leading and trailing cells may belong to the adjacent months. Returns
    an empty grid when the month, year or day set cannot be resolved.
    """
    month_num = _resolve_month(shift_data.month if month is None else month)
    year_num = parse_int(str(shift_data.year if year is None else year))
    if month_num is None or year_num is None or not (1 <= year_num <= 9999):
        return MonthGrid(weeks=[], current_month=month_num or 0)

    last_day = days_in_month(year_num, month_num)
    valid_days = [d for d in shift_data.dates if 1 <= d <= last_day]
    if not valid_days:
        return MonthGrid(weeks=[], current_month=month_num)

    first = date(year_num, month_num, min(valid_days))
    last = date(year_num, month_num, max(valid_days))
    start = first - timedelta(days=first.weekday())        # Monday on/before
    end = last + timedelta(days=6 - last.weekday())         # Sunday on/after

    weeks = []
    current = start
    while current <= end:
        weeks.append([current + timedelta(days=i) for i in range(7)])
        current += timedelta(days=7)
    return MonthGrid(weeks=weeks, current_month=month_num)
