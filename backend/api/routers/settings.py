"""Settings router: visible months per section, schedule display count, CSV cache."""
from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, Field
from typing import Optional
from rosterlib.store import SECTIONS, MAX_VISIBLE_MONTHS
from ..dependencies import (
    get_store, require_auth, require_admin, country_name, _logger,
)

router = APIRouter()


class VisibleMonthBody(BaseModel):
    section: str
    priority: int = Field(..., ge=1, le=MAX_VISIBLE_MONTHS)
    month: Optional[str] = None


class DisplayCountBody(BaseModel):
    display_count: int = Field(..., ge=1, le=MAX_VISIBLE_MONTHS)


def _check_country(user: dict, country_id: str) -> None:
    country_name(user, country_id)


@router.get("/api/config/visible-months/{country_id}", tags=["Config"], summary="Visible months", description="Months shown per section and the schedule display count.")
def get_visible_months(country_id: str, user: dict = Depends(require_auth)):
    _check_country(user, country_id)
    store = get_store()
    return {
        "country_id": country_id,
        "sections": store.get_all_visible_months(country_id),
        "display_count": store.get_display_count(country_id),
    }


@router.put("/api/config/visible-months/{country_id}", tags=["Config"], summary="Set a visible month", description="Set the month at a priority slot (1-3) of a section; an empty month clears the slot. Admin only.")
def set_visible_month(country_id: str, body: VisibleMonthBody, user: dict = Depends(require_admin)):
    _check_country(user, country_id)
    if body.section not in SECTIONS:
        raise HTTPException(status_code=400, detail=f"Unknown section: {body.section!r}")
    try:
        months = get_store().set_visible_month(country_id, body.section, body.priority, body.month or '')
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _logger.info(
        "CONFIG visible_months | country=%s section=%s priority=%d month=%s user=%s",
        country_id, body.section, body.priority, body.month or '-', user.get('NAME', '?'),
    )
    return {"ok": True, "section": body.section, "months": months}


@router.put("/api/config/display-count/{country_id}", tags=["Config"], summary="Set display count", description="Number of schedule months shown side by side (1-3). Admin only.")
def set_display_count(country_id: str, body: DisplayCountBody, user: dict = Depends(require_admin)):
    _check_country(user, country_id)
    try:
        count = get_store().set_display_count(country_id, body.display_count)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, "display_count": count}


@router.post("/api/cache/invalidate", tags=["Config"], summary="Invalidate CSV cache", description="Drop every cached CSV file so the next request re-reads the exports. Admin only.")
def invalidate_cache(user: dict = Depends(require_admin)):
    removed = get_store().cache.invalidate()
    _logger.info("CACHE invalidated | entries=%d user=%s", removed, user.get('NAME', '?'))
    return {"ok": True, "removed": removed}
