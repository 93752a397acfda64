"""Temporal/Calendar 기능 API 라우터입니다. 날짜와 ISO 주차 기준으로 주간 계획을 조회합니다."""

from datetime import date, datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from planner.database import get_db
from planner.middleware.auth_middleware import get_current_user
from planner.models.user import User
from planner.schemas.calendar import CalendarView, IsoWeekOut, PlanningStats
from planner.schemas.weekly_plan import WeeklyPlanOut
from planner.services import temporal_access_service, temporal_calendar, weekly_plan_service

router = APIRouter(tags=["temporal"])


@router.get("/api/temporal/iso-week", response_model=IsoWeekOut)
def get_iso_week(target_date: Optional[str] = Query(None, alias="date")):
    value = target_date or date.today()
    iso = temporal_calendar.iso_week(value)
    return IsoWeekOut(
        year=iso.year,
        week=iso.week,
        week_start=temporal_calendar.week_start(value),
        week_end=temporal_calendar.week_end(value),
    )


@router.get("/api/temporal/weekly-plans/adjacent")
def get_adjacent_weekly_plans(
    target_date: Optional[str] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    plans = temporal_access_service.get_adjacent_week_plans(db, current_user.id, target_date or date.today())
    return {
        key: WeeklyPlanOut.model_validate(weekly_plan_service.to_full_response(db, plan), from_attributes=True)
        if plan else None
        for key, plan in plans.items()
    }


@router.get("/api/temporal/weekly-plans/{year}/{week}", response_model=WeeklyPlanOut)
def get_weekly_plan_by_iso_week(
    year: int,
    week: int,
    auto_create: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    plan = temporal_access_service.get_weekly_plan_by_iso_week(db, current_user.id, year, week, auto_create)
    if plan is None:
        raise HTTPException(status_code=404, detail="해당 주의 주간 계획이 없습니다.")
    return weekly_plan_service.to_full_response(db, plan)


@router.get("/api/temporal/history")
def get_weekly_plan_history_snapshot(
    target_date: str = Query(..., alias="date"),
    as_of: datetime = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    snapshot = temporal_access_service.get_historical_snapshot(db, current_user.id, target_date, as_of)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="해당 시점의 주간 계획이 없습니다.")
    return snapshot


@router.get("/api/temporal/stats", response_model=PlanningStats)
def get_planning_stats(
    start: str = Query(...),
    end: str = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return temporal_access_service.get_planning_stats(db, current_user.id, start, end)


@router.get("/api/calendar", response_model=CalendarView)
def get_calendar(
    year: int = Query(..., ge=2, le=9998),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return temporal_access_service.get_calendar_view(db, current_user.id, year, month)
