"""
Parsers for the four roster CSV shapes.

Each parser takes tokenized rows (see csv_reader.tokenize) or raw CSV text
and returns a fresh immutable record. Short rows read as empty cells and
non-numeric day headers are skipped; only a file without its header and
two metadata rows is rejected.
"""
import logging
from typing import Dict, List, Sequence, Union

from .csv_reader import Row, cell, tokenize
from .date_utils import excel_serial_to_date, parse_int, weekday_abbrev
from .layouts import (
    DAILY_STATS, MISTAKE_STATS, SHIFT, ColumnLayout, detect_wh_layout, find_header,
)
from .mistakes import partition_codes
from .models import (
    DAY_HOURS, NIGHT_HOURS,
    DailyStatsData, DailyStatsRow, MistakeCategories, MistakeStatsData,
    MistakeStatsRow, ShiftData, ShiftRow, WHData, WHRow,
)

logger = logging.getLogger(__name__)

CSVInput = Union[str, Sequence[Row]]


class UnparseableCSVError(ValueError):
    """The data is too short to hold the header and metadata rows of its shape."""


def _rows(data: CSVInput, layout: ColumnLayout) -> List[Row]:
    rows = tokenize(data) if isinstance(data, str) else [list(r) for r in data]
    if len(rows) < layout.min_rows:
        raise UnparseableCSVError(
            f"{layout.name}: expected at least {layout.min_rows} rows, got {len(rows)}"
        )
    return rows


def _meta(rows: List[Row], position) -> str:
    r, c = position
    return cell(rows[r], c)


def _person_name(row: Row, layout: ColumnLayout) -> str:
    """Stripped name cell, or '' for rows that are not a person ('0', blank)."""
    name = cell(row, layout.name_col).strip()
    if name == '0':
        return ''
    return name


def _day_columns(headers: Row, layout: ColumnLayout) -> Dict[int, int]:
    """Map column index → day number for every header cell holding a valid day."""
    result: Dict[int, int] = {}
    for i in layout.data_columns(len(headers)):
        day = parse_int(headers[i])
        if day is None or not layout.accepts_day(day):
            logger.debug("%s: column %d header %r is not a day", layout.name, i, headers[i])
            continue
        result[i] = day
    return result


def _values_by_day(row: Row, day_cols: Dict[int, int]) -> Dict[int, str]:
    return {day: cell(row, i) for i, day in day_cols.items()}


# ── Daily_Stats ──────────────────────────────────────────────

def parse_daily_stats(data: CSVInput) -> DailyStatsData:
    """Daily mistakes per person and day.

    Row 1 holds the month, year and the serial date of every day column;
    row 2 is the totals row.
    """
    layout = DAILY_STATS
    rows = _rows(data, layout)
    headers, serial_row, totals = rows[0], rows[1], rows[layout.totals_row]
    day_cols = _day_columns(headers, layout)

    dates: Dict[int, str] = {}
    weekdays: Dict[int, str] = {}
    for i, day in day_cols.items():
        serial = parse_int(cell(serial_row, i))
        if serial is None or serial <= 0:
            continue
        d = excel_serial_to_date(serial)
        dates[day] = d.isoformat()
        weekdays[day] = weekday_abbrev(d)

    nick_col = layout.extra_cols['nickname']
    total_col = layout.extra_cols['total']

    def build(row: Row, name: str) -> DailyStatsRow:
        return DailyStatsRow(
            name_surname=name,
            nickname=cell(row, nick_col),
            total=cell(row, total_col),
            days=_values_by_day(row, day_cols),
        )

    people = []
    for row in rows[layout.data_start_row:]:
        name = _person_name(row, layout)
        if name:
            people.append(build(row, name))

    return DailyStatsData(
        month=_meta(rows, layout.month_cell),
        year=_meta(rows, layout.year_cell),
        dates=dates,
        weekdays=weekdays,
        total_row=build(totals, cell(totals, layout.name_col)),
        rows=people,
    )


# ── Dealer_Shift / SM_Shift ──────────────────────────────────

def parse_shift_data(data: CSVInput) -> ShiftData:
    """Shift codes per person and day, plus the four summary columns at the end."""
    layout = SHIFT
    rows = _rows(data, layout)
    headers, row1, row2 = rows[0], rows[1], rows[2]
    day_cols = _day_columns(headers, layout)
    summary = layout.trailing_columns(len(headers))

    dates: Dict[int, int] = {}
    weekdays: Dict[int, str] = {}
    for i, day in day_cols.items():
        dates[day] = parse_int(cell(row1, i)) or day
        weekdays[day] = cell(row2, i)

    people = []
    for row in rows[layout.data_start_row:]:
        name = _person_name(row, layout)
        if not name:
            continue
        people.append(ShiftRow(
            name_surname=name,
            shifts=_values_by_day(row, day_cols),
            **{field: cell(row, idx) for field, idx in summary.items()},
        ))

    return ShiftData(
        month=_meta(rows, layout.month_cell),
        year=_meta(rows, layout.year_cell),
        dates=dates,
        weekdays=weekdays,
        rows=people,
    )


# ── Dealer_WH / SM_WH ────────────────────────────────────────

def _wh_summary_columns(headers: Row, layout: ColumnLayout) -> Dict[str, int]:
    if layout.trailing_fields:
        return layout.trailing_columns(len(headers))
    return {
        'total_hours': find_header(headers, 'total'),
        'sum': find_header(headers, 'sum', exact=True),
        'holiday': find_header(headers, 'holiday'),
    }


def parse_wh_data(data: CSVInput) -> WHData:
    """Working hours as alternating Day-hours / Night-hours rows per person.

    The person's name sits on the Day row; a Night row with a blank name
    directly after it belongs to the same person. The carried name is
    cleared after each Night row and at every divider, so a Day row with a
    blank name stays blank. Rows whose Day/Night cell is anything else are
    dividers and are skipped.
    """
    rows = tokenize(data) if isinstance(data, str) else [list(r) for r in data]
    headers = rows[0] if rows else []
    layout = detect_wh_layout(headers)
    rows = _rows(rows, layout)
    row1, row2 = rows[1], rows[2]
    day_cols = _day_columns(headers, layout)
    summary = _wh_summary_columns(headers, layout)
    day_night_col = layout.extra_cols['day_night']

    dates: Dict[int, int] = {}
    weekdays: Dict[int, str] = {}
    for i, day in day_cols.items():
        dates[day] = parse_int(cell(row1, i)) or day
        weekdays[day] = cell(row2, i)

    people = []
    day_row_name = ''
    for row in rows[layout.data_start_row:]:
        day_night = cell(row, day_night_col).strip()
        if day_night not in (DAY_HOURS, NIGHT_HOURS):
            day_row_name = ''
            continue
        name = cell(row, layout.name_col).strip()
        if day_night == DAY_HOURS:
            day_row_name = name
        else:
            if not name:
                name = day_row_name
            day_row_name = ''
        people.append(WHRow(
            name_surname=name,
            day_night=day_night,
            hours=_values_by_day(row, day_cols),
            **{field: cell(row, idx) for field, idx in summary.items()},
        ))

    logger.debug("WH file parsed with layout %s: %d rows", layout.name, len(people))
    return WHData(
        month=_meta(rows, layout.month_cell),
        year=_meta(rows, layout.year_cell),
        dates=dates,
        weekdays=weekdays,
        rows=people,
        layout=layout.name,
    )


# ── Dealer_Stats ─────────────────────────────────────────────

def parse_mistake_stats(data: CSVInput) -> MistakeStatsData:
    """Mistake counts per person and error code.

    Header cells from column 5 are the codes, row 1 carries their
    descriptions and row 2 the totals.
    """
    layout = MISTAKE_STATS
    rows = _rows(data, layout)
    headers = rows[0]
    descriptions = rows[layout.description_row]
    totals = rows[layout.totals_row]

    code_cols: Dict[int, str] = {}
    for i in layout.data_columns(len(headers)):
        code = headers[i].strip()
        if code:
            code_cols[i] = code

    error_codes = {code: cell(descriptions, i) for i, code in code_cols.items()}
    categories = MistakeCategories(**partition_codes(code_cols.values()))

    nick_col = layout.extra_cols['nickname']
    total_col = layout.extra_cols['total']

    def build(row: Row, name: str) -> MistakeStatsRow:
        return MistakeStatsRow(
            name_surname=name,
            nickname=cell(row, nick_col),
            total=cell(row, total_col),
            mistakes={code: cell(row, i) for i, code in code_cols.items()},
        )

    people = []
    for row in rows[layout.data_start_row:]:
        name = _person_name(row, layout)
        if name:
            people.append(build(row, name))

    return MistakeStatsData(
        month=_meta(rows, layout.month_cell),
        year=_meta(rows, layout.year_cell),
        error_codes=error_codes,
        categories=categories,
        total_row=build(totals, cell(totals, layout.name_col)),
        rows=people,
    )
