from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query

from babycare.api.deps import get_session, to_http_exception
from babycare.core.logging import logger
from babycare.schemas.child import Child, ChildCreate, ChildResponse
from babycare.schemas.summary import DailySummary, RangeStatistics, WeeklyTrend
from babycare.services.session import CareSession

router = APIRouter()

def child_response(child: Child, session: CareSession) -> ChildResponse:
    months, days = child.age_on(session.normalizer.local_today())
    return ChildResponse(
        id=child.id,
        name=child.name,
        date_of_birth=child.date_of_birth.isoformat(),
        gender=child.gender,
        notes=child.notes,
        photo=child.photo,
        age_months=months,
        age_days=days,
        created_at=session.normalizer.to_local_display(child.created_at),
    )

@router.get("", response_model=List[ChildResponse])
async def get_children(session: CareSession = Depends(get_session)):
    """
    Get all children, oldest entry first.
    """
    try:
        children = await session.list_children()
        return [child_response(child, session) for child in children]
    except Exception as e:
        raise to_http_exception(e, "fetching children")

@router.post("", response_model=ChildResponse)
async def create_child(child_data: ChildCreate, seed_milestones: bool = True, session: CareSession = Depends(get_session)):
    """
    Create a new child, seeding the default milestone list.
    """
    try:
        child = await session.add_child(child_data, seed_milestones=seed_milestones)
        logger.info(f"Created child {child.id}")
        return child_response(child, session)
    except Exception as e:
        raise to_http_exception(e, "creating child")

@router.get("/{child_id}", response_model=ChildResponse)
async def get_child(child_id: str, session: CareSession = Depends(get_session)):
    try:
        child = await session.require_child(child_id)
        return child_response(child, session)
    except Exception as e:
        raise to_http_exception(e, "fetching child")

@router.put("/{child_id}", response_model=ChildResponse)
async def update_child(child_id: str, child_data: ChildCreate, session: CareSession = Depends(get_session)):
    """
    Update a child's details. The identifier and creation time never change.
    """
    try:
        child = await session.update_child(child_id, child_data)
        return child_response(child, session)
    except Exception as e:
        raise to_http_exception(e, "updating child")

@router.delete("/{child_id}")
async def delete_child(child_id: str, session: CareSession = Depends(get_session)):
    """
    Delete a child and its records. Record deletes are independent; failures are reported, not rolled back.
    """
    try:
        result = await session.delete_child(child_id)
        return {"status": "success", "message": "Child deleted successfully", **result}
    except Exception as e:
        raise to_http_exception(e, "deleting child")

@router.post("/{child_id}/select", response_model=ChildResponse)
async def select_child(child_id: str, session: CareSession = Depends(get_session)):
    try:
        child = await session.select_child(child_id)
        return child_response(child, session)
    except Exception as e:
        raise to_http_exception(e, "selecting child")

@router.get("/{child_id}/summary", response_model=DailySummary)
async def get_daily_summary(child_id: str, day: Optional[str] = None, session: CareSession = Depends(get_session)):
    """
    Feeding, diaper and sleep totals for one local calendar day (default: today).
    """
    try:
        return await session.daily_summary(child_id, day)
    except Exception as e:
        raise to_http_exception(e, "building daily summary")

@router.get("/{child_id}/trend", response_model=WeeklyTrend)
async def get_weekly_trend(
    child_id: str,
    end_day: Optional[str] = None,
    days: int = Query(7, ge=1, le=31),
    session: CareSession = Depends(get_session),
):
    """
    Feeding count and sleep hours per local day, oldest first, ending today by default.
    """
    try:
        return await session.weekly_trend(child_id, end_day, days)
    except Exception as e:
        raise to_http_exception(e, "building weekly trend")

@router.get("/{child_id}/statistics", response_model=RangeStatistics)
async def get_statistics(
    child_id: str,
    range_name: str = Query("week", alias="range"),
    today: Optional[str] = None,
    session: CareSession = Depends(get_session),
):
    """
    Feeding, sleep, diaper and weight statistics over a week, month, 3months or year.
    """
    try:
        return await session.range_statistics(range_name, child_id, today)
    except Exception as e:
        raise to_http_exception(e, "building statistics")

@router.get("/{child_id}/recent", response_model=List[Dict[str, Any]])
async def get_recent_records(
    child_id: str,
    limit: int = Query(5, ge=1, le=100),
    collection: str = "all",
    session: CareSession = Depends(get_session),
):
    try:
        return await session.recent_records(child_id, limit, collection)
    except Exception as e:
        raise to_http_exception(e, "fetching recent records")
