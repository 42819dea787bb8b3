"""
Column layouts of the roster CSV exports.

Every export carries a header row and two metadata rows before the
per-person rows. Positions are zero-based column indices; trailing columns
are counted back from the header length.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

Cell = Tuple[int, int]  # (row, column)

NAME_COL = 2
DATA_START_ROW = 3


@dataclass(frozen=True)
class ColumnLayout:
    name: str
    month_cell: Cell
    year_cell: Cell
    first_data_col: int
    trailing_fields: Tuple[str, ...] = ()
    name_col: int = NAME_COL
    data_start_row: int = DATA_START_ROW
    extra_cols: Dict[str, int] = field(default_factory=dict)
    day_range: Tuple[int, int] = (0, 0)   # (min, max) day number; (0, 0) = unbounded
    totals_row: int = -1
    description_row: int = -1

    @property
    def min_rows(self) -> int:
        return self.data_start_row

    def data_columns(self, header_len: int) -> range:
        """Columns between the fixed leading block and the reserved trailing block."""
        end = header_len - len(self.trailing_fields)
        return range(self.first_data_col, max(end, self.first_data_col))

    def trailing_columns(self, header_len: int) -> Dict[str, int]:
        """Map each trailing summary field to its column index (−1 when the header is too short)."""
        start = header_len - len(self.trailing_fields)
        return {
            name: (start + i if start + i >= self.first_data_col else -1)
            for i, name in enumerate(self.trailing_fields)
        }

    def accepts_day(self, day: int) -> bool:
        low, high = self.day_range
        if low == high == 0:
            return True
        return low <= day <= high


DAILY_STATS = ColumnLayout(
    name='daily_stats',
    month_cell=(1, 2),
    year_cell=(1, 3),
    first_data_col=5,
    extra_cols={'nickname': 3, 'total': 4},
    totals_row=2,
)

SHIFT = ColumnLayout(
    name='shift',
    month_cell=(1, 2),
    year_cell=(2, 2),
    first_data_col=3,
    trailing_fields=('total_shifts', 'day_shifts', 'night_shifts', 'by_call'),
)

# Working hours, newer export: summary columns found by their header labels
WH_LABELLED = ColumnLayout(
    name='wh_labelled',
    month_cell=(1, 2),
    year_cell=(2, 2),
    first_data_col=4,
    extra_cols={'day_night': 3},
    day_range=(1, 31),
)

# Working hours, older export without a 'Sum' header: last three columns are positional
WH_FIXED = ColumnLayout(
    name='wh_fixed',
    month_cell=(1, 2),
    year_cell=(2, 2),
    first_data_col=4,
    trailing_fields=('total_hours', 'sum', 'holiday'),
    extra_cols={'day_night': 3},
    day_range=(1, 31),
)

MISTAKE_STATS = ColumnLayout(
    name='mistake_stats',
    month_cell=(1, 2),
    year_cell=(1, 3),
    first_data_col=5,
    extra_cols={'nickname': 3, 'total': 4},
    totals_row=2,
    description_row=1,
)


def find_header(headers: Sequence[str], needle: str, exact: bool = False) -> int:
    """Index of the first header matching needle case-insensitively, or −1."""
    needle = needle.lower()
    for i, h in enumerate(headers):
        h = (h or '').strip().lower()
        if not h:
            continue
        if (exact and h == needle) or (not exact and needle in h):
            return i
    return -1


def detect_wh_layout(headers: List[str]) -> ColumnLayout:
    """Pick the working-hours layout: labelled when a 'Sum' column is present."""
    if find_header(headers, 'sum', exact=True) >= 0:
        return WH_LABELLED
    return WH_FIXED
