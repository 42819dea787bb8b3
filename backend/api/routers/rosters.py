"""Roster router: countries, available months, schedule, daily mistakes, mistake statistics."""
from fastapi import APIRouter, HTTPException, Query, Depends
from typing import Literal, Optional
from rosterlib.calendar_grid import build_month_grid
from rosterlib.color_utils import classify_shift
from rosterlib.date_utils import MONTH_NAMES, generate_month_days
from rosterlib.grouping import drop_placeholders, filter_by_name, pair_wh_rows
from rosterlib.mistakes import CATEGORY_LABELS
from rosterlib.parsers import UnparseableCSVError
from rosterlib.shift_types import SHIFT_TYPES, shift_hours
from rosterlib.store import CSVFileNotFound, ROLE_FILE_TYPES, STAFF_FILE_TYPES
from ..dependencies import (
    get_store, require_auth, personal_name, check_file_access, country_name, month_name,
    _logger, _sanitize_500,
)

router = APIRouter()


def _load(fn, *args, context: str):
    """Call a store getter; None when the file is missing."""
    try:
        return fn(*args)
    except CSVFileNotFound:
        _logger.info("CSV missing: %s", context)
        return None
    except UnparseableCSVError as e:
        raise HTTPException(status_code=422, detail=f"Unparseable file {context}: {e}")
    except Exception as e:
        raise _sanitize_500(e, context)


def _legend(codes) -> dict:
    """Working times of the known shift codes among codes."""
    legend = {}
    for code in codes:
        times = shift_hours(code)
        if times is not None:
            legend[code] = times._asdict()
    return legend


# ── Countries & months ───────────────────────────────────────

@router.get("/api/countries", tags=["Countries"], summary="List countries", description="Countries visible to the caller (global_admin sees all).")
def get_countries(user: dict = Depends(require_auth)):
    countries = get_store().get_countries()
    if user.get('role') == 'global_admin':
        return countries
    return [c for c in countries if str(c.get('id')) == str(user.get('country_id'))]


@router.get("/api/countries/{country_id}/months", tags=["Countries"], summary="Available months", description="Months for which Daily_Stats, Dealer_Shift and Dealer_Stats all exist.")
def get_available_months(country_id: str, user: dict = Depends(require_auth)):
    name = country_name(user, country_id)
    return {"country": name, "months": get_store().detect_available_months(name)}


@router.get("/api/countries/{country_id}/files", tags=["Countries"], summary="Files of a month", description="Roster file types present for the month that the caller's role may read.")
def get_month_files(
    country_id: str,
    month: str = Query(..., description="English month name"),
    user: dict = Depends(require_auth),
):
    name = country_name(user, country_id)
    month = month_name(month)
    allowed = ROLE_FILE_TYPES.get(user.get('role', ''), ())
    files = [ft for ft in get_store().available_files(name, month) if ft in allowed]
    return {"country": name, "month": month, "files": files}


# ── Schedule ─────────────────────────────────────────────────

@router.get("/api/schedule/{country_id}/{month}", tags=["Schedule"], summary="Shift calendar and working hours", description="Parsed shift roster with its month grid, plus working hours grouped into Day/Night pairs.")
def get_schedule(
    country_id: str,
    month: str,
    staff: Literal['dealer', 'sm'] = Query('dealer', description="dealer or sm rosters"),
    user: dict = Depends(require_auth),
):
    name = country_name(user, country_id)
    month = month_name(month)
    shift_type, wh_type = STAFF_FILE_TYPES[staff]
    check_file_access(user, shift_type)
    person = personal_name(user)
    store = get_store()

    shifts = None
    shift_data = _load(store.get_shift_data, name, staff, month, context=f"{name}/{shift_type}_{month}")
    if shift_data is not None:
        rows = drop_placeholders(filter_by_name(shift_data.rows, person))
        codes = sorted({code for row in rows for code in row.shifts.values() if code.strip()})
        shifts = {
            **shift_data.model_dump(exclude={'rows'}),
            "rows": rows,
            "grid": build_month_grid(shift_data, month, shift_data.year or None),
            "colors": {code: classify_shift(code) for code in codes},
            "legend": _legend(codes),
        }

    working_hours = None
    wh_data = _load(store.get_wh_data, name, staff, month, context=f"{name}/{wh_type}_{month}")
    if wh_data is not None:
        pairs = filter_by_name(drop_placeholders(pair_wh_rows(wh_data.rows)), person)
        working_hours = {
            **wh_data.model_dump(exclude={'rows'}),
            "pairs": pairs,
        }

    if shifts is None and working_hours is None:
        raise HTTPException(status_code=404, detail=f"No {staff} roster for {month}")
    return {"country": name, "month": month, "staff": staff, "shifts": shifts, "working_hours": working_hours}


# ── Statistics ───────────────────────────────────────────────

@router.get("/api/daily-stats/{country_id}/{month}", tags=["Statistics"], summary="Daily mistakes", description="Parsed Daily_Stats export. Dealers and shift managers only get their own row.")
def get_daily_stats(country_id: str, month: str, user: dict = Depends(require_auth)):
    name = country_name(user, country_id)
    month = month_name(month)
    check_file_access(user, 'Daily_Stats')
    data = _load(get_store().get_daily_stats, name, month, context=f"{name}/Daily_Stats_{month}")
    if data is None:
        raise HTTPException(status_code=404, detail=f"No daily statistics for {month}")
    person = personal_name(user)
    return {
        **data.model_dump(exclude={'rows', 'total_row'}),
        "rows": filter_by_name(data.rows, person),
        "total_row": data.total_row if person is None else None,
    }


@router.get("/api/mistake-stats/{country_id}/{month}", tags=["Statistics"], summary="Mistake statistics", description="Parsed Dealer_Stats export with one table per mistake category.")
def get_mistake_stats(country_id: str, month: str, user: dict = Depends(require_auth)):
    name = country_name(user, country_id)
    month = month_name(month)
    check_file_access(user, 'Dealer_Stats')
    data = _load(get_store().get_mistake_stats, name, month, context=f"{name}/Dealer_Stats_{month}")
    if data is None:
        raise HTTPException(status_code=404, detail=f"No mistake statistics for {month}")
    person = personal_name(user)
    categories = data.categories.model_dump()
    tables = [
        {"key": key, "label": label, "codes": categories[key]}
        for key, label in CATEGORY_LABELS.items()
        if categories[key]
    ]
    return {
        **data.model_dump(exclude={'rows', 'total_row'}),
        "rows": filter_by_name(data.rows, person),
        "total_row": data.total_row if person is None else None,
        "tables": tables,
    }


@router.get("/api/shift-color", tags=["Schedule"], summary="Shift code color", description="Display color for a shift code; null when the code renders unstyled.")
def get_shift_color(code: str = Query(..., description="Shift code, e.g. 08H"), _user: dict = Depends(require_auth)):
    color = classify_shift(code)
    return {"code": code, "color": color}


@router.get("/api/schedule/{country_id}/{month}/grid", tags=["Schedule"], summary="Month grid only", description="Monday–Sunday weeks covering the shift roster's month.")
def get_schedule_grid(
    country_id: str,
    month: str,
    staff: Literal['dealer', 'sm'] = Query('dealer'),
    year: Optional[int] = Query(None, ge=1900, le=9999, description="Overrides the year read from the file"),
    user: dict = Depends(require_auth),
):
    name = country_name(user, country_id)
    month = month_name(month)
    shift_type, _ = STAFF_FILE_TYPES[staff]
    check_file_access(user, shift_type)
    data = _load(get_store().get_shift_data, name, staff, month, context=f"{name}/{shift_type}_{month}")
    if data is None:
        raise HTTPException(status_code=404, detail=f"No {staff} shift roster for {month}")
    return build_month_grid(data, month, year if year is not None else (data.year or None))


@router.get("/api/shift-types", tags=["Schedule"], summary="Shift type catalogue", description="Known shift codes with working times and day/night hour split.")
def get_shift_types(_user: dict = Depends(require_auth)):
    return [
        {"code": code, "color": classify_shift(code), **times._asdict()}
        for code, times in SHIFT_TYPES.items()
    ]


@router.get("/api/calendar/{year}/{month}", tags=["Schedule"], summary="Days of a month", description="Every day of the month with weekday name and weekend flag.")
def get_month_days(year: int, month: str, _user: dict = Depends(require_auth)):
    if not 1900 <= year <= 9999:
        raise HTTPException(status_code=400, detail=f"Invalid year: {year}")
    month = month_name(month)
    month_num = MONTH_NAMES.index(month) + 1
    return {"year": year, "month": month, "days": generate_month_days(year, month_num)}
