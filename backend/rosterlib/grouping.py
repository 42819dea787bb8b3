"""Grouping and filtering of parsed roster rows."""
from typing import List, Optional, Sequence, TypeVar

from .models import DAY_HOURS, NIGHT_HOURS, WHPair, WHRow

PLACEHOLDER_NAME = '///'

T = TypeVar('T')


def _to_hours(value: str) -> float:
    try:
        return float((value or '').strip().replace(',', '.') or 0)
    except ValueError:
        return 0.0


def pair_wh_rows(rows: Sequence[WHRow]) -> List[WHPair]:
    """Group Day-hours rows with the Night-hours row directly after them."""
    pairs: List[WHPair] = []
    i = 0
    while i < len(rows):
        row = rows[i]
        if row.day_night != DAY_HOURS:
            i += 1
            continue
        night: Optional[WHRow] = None
        if i + 1 < len(rows) and rows[i + 1].day_night == NIGHT_HOURS:
            night = rows[i + 1]
            i += 2
        else:
            i += 1
        pairs.append(WHPair(
            name=row.name_surname,
            day_row=row,
            night_row=night,
            sum_hours=_to_hours(row.total_hours) + (_to_hours(night.total_hours) if night else 0.0),
        ))
    return pairs


def _name_of(item) -> str:
    if isinstance(item, WHPair):
        return item.name
    return getattr(item, 'name_surname', '') or ''


def is_placeholder_name(name: str) -> bool:
    """'///' divider rows and blank names are not real people."""
    s = (name or '').strip()
    return not s or s == PLACEHOLDER_NAME


def drop_placeholders(items: Sequence[T]) -> List[T]:
    return [item for item in items if not is_placeholder_name(_name_of(item))]


def filter_by_name(items: Sequence[T], full_name: Optional[str]) -> List[T]:
    """Keep rows whose name equals full_name, ignoring case.

    None means no filter; a blank name matches nothing.
    """
    if full_name is None:
        return list(items)
    target = full_name.strip().lower()
    if not target:
        return []
    return [item for item in items if _name_of(item).strip().lower() == target]
