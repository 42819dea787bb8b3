"""Immutable records produced by the roster parsers."""
from datetime import date
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict

DAY_HOURS = 'Day hours'
NIGHT_HOURS = 'Night hours'

DayNight = Literal['Day hours', 'Night hours', '']


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


# ── Daily mistakes (Daily_Stats) ─────────────────────────────

class DailyStatsRow(_Record):
    name_surname: str
    nickname: str = ''
    total: str = ''
    days: Dict[int, str] = {}


class DailyStatsData(_Record):
    month: str
    year: str
    dates: Dict[int, str]       # day → ISO date
    weekdays: Dict[int, str]    # day → 'Mon'..'Sun'
    total_row: DailyStatsRow
    rows: List[DailyStatsRow]


# ── Shift rosters (Dealer_Shift / SM_Shift) ──────────────────

class ShiftRow(_Record):
    name_surname: str
    shifts: Dict[int, str] = {}
    total_shifts: str = ''
    day_shifts: str = ''
    night_shifts: str = ''
    by_call: str = ''


class ShiftData(_Record):
    month: str
    year: str
    dates: Dict[int, int]
    weekdays: Dict[int, str]
    rows: List[ShiftRow]


# ── Working hours (Dealer_WH / SM_WH) ────────────────────────

class WHRow(_Record):
    name_surname: str
    day_night: DayNight = ''
    hours: Dict[int, str] = {}
    total_hours: str = ''
    sum: str = ''
    holiday: str = ''


class WHData(_Record):
    month: str
    year: str
    dates: Dict[int, int]
    weekdays: Dict[int, str]
    rows: List[WHRow]
    layout: str = ''


class WHPair(_Record):
    """One person's Day-hours row and, when present, the Night-hours row after it."""
    name: str
    day_row: WHRow
    night_row: Optional[WHRow] = None
    sum_hours: float = 0.0


# ── Mistake statistics (Dealer_Stats) ────────────────────────

class MistakeCategories(_Record):
    category1: List[str] = []
    category2: List[str] = []
    category3: List[str] = []
    category4: List[str] = []
    category_other: List[str] = []

    def all_codes(self) -> List[str]:
        return (self.category1 + self.category2 + self.category3
                + self.category4 + self.category_other)


class MistakeStatsRow(_Record):
    name_surname: str
    nickname: str = ''
    total: str = ''
    mistakes: Dict[str, str] = {}


class MistakeStatsData(_Record):
    month: str
    year: str
    error_codes: Dict[str, str]    # code → description
    categories: MistakeCategories
    total_row: MistakeStatsRow
    rows: List[MistakeStatsRow]


# ── Calendar grid ────────────────────────────────────────────

class MonthGrid(_Record):
    weeks: List[List[date]]
    current_month: int   # 1..12, 0 when the month name is unknown

    @property
    def dates(self) -> List[date]:
        return [d for week in self.weeks for d in week]
