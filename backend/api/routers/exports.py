"""Exports router: shift roster downloads as CSV or XLSX."""
import csv
import io
from fastapi import APIRouter, HTTPException, Query, Depends, Request
from fastapi.responses import Response as _Response
from typing import Literal
from rosterlib.color_utils import classify_shift
from rosterlib.date_utils import is_weekend
from rosterlib.grouping import drop_placeholders, filter_by_name
from rosterlib.parsers import UnparseableCSVError
from rosterlib.store import CSVFileNotFound, STAFF_FILE_TYPES
from ..dependencies import (
    get_store, require_auth, personal_name, check_file_access, country_name, month_name, limiter,
)

router = APIRouter()

_SUMMARY_COLUMNS = (
    ('total_shifts', 'Total Shifts'),
    ('day_shifts', 'Day Shifts'),
    ('night_shifts', 'Night Shifts'),
    ('by_call', 'By Call'),
)


def _csv_response(rows: list, filename: str) -> _Response:
    buf = io.StringIO()
    if rows:
        writer = csv.DictWriter(buf, fieldnames=rows[0].keys(), lineterminator='\r\n')
        writer.writeheader()
        writer.writerows(rows)
    return _Response(
        content=buf.getvalue(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _xlsx_response(content: bytes, filename: str) -> _Response:
    return _Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _shift_workbook(data, title: str) -> bytes:
    import openpyxl
    from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
    from openpyxl.utils import get_column_letter

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = title[:31]
    thin = Side(border_style="thin", color="CBD5E1")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    header_font = Font(bold=True, color="FFFFFF", size=9)
    days = sorted(data.dates)

    name_cell = ws.cell(1, 1, "Name Surname")
    name_cell.font = header_font
    name_cell.fill = PatternFill(fill_type="solid", fgColor="1E293B")
    name_cell.border = border
    ws.column_dimensions['A'].width = 24
    for i, day in enumerate(days):
        col = i + 2
        weekday = data.weekdays.get(day, '')
        cell = ws.cell(1, col, f"{day}\n{weekday}".strip())
        cell.font = header_font
        cell.fill = PatternFill(fill_type="solid", fgColor="475569" if is_weekend(weekday) else "1E293B")
        cell.alignment = Alignment(horizontal="center", wrap_text=True)
        cell.border = border
        ws.column_dimensions[get_column_letter(col)].width = 5.5
    first_summary = len(days) + 2
    for j, (_, label) in enumerate(_SUMMARY_COLUMNS):
        cell = ws.cell(1, first_summary + j, label)
        cell.font = header_font
        cell.fill = PatternFill(fill_type="solid", fgColor="1E293B")
        cell.border = border
        ws.column_dimensions[get_column_letter(first_summary + j)].width = 12
    ws.row_dimensions[1].height = 28

    for r_idx, row in enumerate(data.rows, start=2):
        cell = ws.cell(r_idx, 1, row.name_surname)
        cell.font = Font(size=9)
        cell.border = border
        for i, day in enumerate(days):
            code = row.shifts.get(day, '')
            cell = ws.cell(r_idx, i + 2, code or None)
            color = classify_shift(code)
            if color is not None:
                cell.fill = PatternFill(fill_type="solid", fgColor=color.background.lstrip('#'))
                cell.font = Font(bold=True, size=8, color=(color.text or '#000000').lstrip('#'))
            cell.alignment = Alignment(horizontal="center")
            cell.border = border
        for j, (field, _) in enumerate(_SUMMARY_COLUMNS):
            cell = ws.cell(r_idx, first_summary + j, getattr(row, field))
            cell.font = Font(size=9)
            cell.border = border

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@router.get(
    "/api/export/schedule/{country_id}/{month}",
    tags=["Export"],
    summary="Export shift roster",
    description=(
        "Download the parsed shift roster of a month as CSV (default) or XLSX.\n\n"
        "XLSX cells are filled with the shift colors. Dealers and shift managers "
        "only get their own row."
    ),
    responses={
        200: {"description": "File download (CSV/XLSX)"},
        400: {"description": "Invalid month"},
        404: {"description": "No shift roster for the month"},
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit("10/minute")
def export_schedule(
    request: Request,
    country_id: str,
    month: str,
    staff: Literal['dealer', 'sm'] = Query('dealer'),
    format: Literal['csv', 'xlsx'] = Query('csv', description="csv or xlsx"),
    user: dict = Depends(require_auth),
):
    name = country_name(user, country_id)
    month = month_name(month)
    shift_type, _ = STAFF_FILE_TYPES[staff]
    check_file_access(user, shift_type)
    try:
        data = get_store().get_shift_data(name, staff, month)
    except CSVFileNotFound:
        raise HTTPException(status_code=404, detail=f"No {staff} shift roster for {month}")
    except UnparseableCSVError as e:
        raise HTTPException(status_code=422, detail=f"Unparseable file {name}/{shift_type}_{month}: {e}")

    rows = drop_placeholders(filter_by_name(data.rows, personal_name(user)))
    data = data.model_copy(update={'rows': rows})
    filename = f"{name}_{shift_type}_{month}"

    if format == 'xlsx':
        return _xlsx_response(_shift_workbook(data, f"{month} {data.year}".strip()), f"{filename}.xlsx")

    days = sorted(data.dates)
    out = []
    for row in rows:
        entry = {"Name Surname": row.name_surname}
        for day in days:
            entry[str(day)] = row.shifts.get(day, '')
        for field, label in _SUMMARY_COLUMNS:
            entry[label] = getattr(row, field)
        out.append(entry)
    return _csv_response(out, f"{filename}.csv")
