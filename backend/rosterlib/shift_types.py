"""Catalogue of shift codes with their working times and day/night hour split."""
from typing import Dict, NamedTuple, Optional


class ShiftTime(NamedTuple):
    label: str
    start: str
    end: str
    day_hours: float
    night_hours: float


SHIFT_TYPES: Dict[str, ShiftTime] = {
    '08F': ShiftTime('8:30–20:30', '08:30', '20:30', 12, 0),
    '08H': ShiftTime('8:30–14:30', '08:30', '14:30', 6, 0),
    '08H+': ShiftTime('8:30–16:00', '08:30', '16:00', 7.5, 0),
    '16H': ShiftTime('16:00–20:30', '16:00', '20:30', 4.5, 0),
    '16F': ShiftTime('16:00–02:30', '16:00', '02:30', 6, 4.5),
    '14H': ShiftTime('14:30–20:30', '14:30', '20:30', 6, 0),
    '14F': ShiftTime('14:30–02:30', '14:30', '02:30', 7.5, 4.5),
    '20F': ShiftTime('20:30–08:30', '20:30', '08:30', 1.5, 10.5),
    '20H': ShiftTime('20:30–02:30', '20:30', '02:30', 1.5, 4.5),
    '02H': ShiftTime('02:30–08:30', '02:30', '08:30', 3.5, 2.5),
    'X': ShiftTime('Day Off', '', '', 0, 0),
    'V': ShiftTime('Vacation', '', '', 0, 0),
    '/': ShiftTime('No Shift Available', '', '', 0, 0),
    '-': ShiftTime('Not Selected', '', '', 0, 0),
}


def shift_hours(code: str) -> Optional[ShiftTime]:
    """Look up a shift code; call-back markers ('16F!') resolve to their base shift."""
    v = (code or '').strip()
    if v in SHIFT_TYPES:
        return SHIFT_TYPES[v]
    return SHIFT_TYPES.get(v.rstrip('!'))
