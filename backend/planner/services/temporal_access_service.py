"""날짜/ISO 주차/월 단위로 주간 계획을 찾거나 생성하는 시간 기반 접근 서비스입니다.

과거/현재/미래 어느 주의 계획이든 같은 방식으로 조회할 수 있으며, 자동 생성은
``WEEKLY_PLAN_MAX_FUTURE_DAYS`` 이내의 날짜에만 허용합니다.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from planner.config import settings
from planner.exceptions import InvalidDate, StorageError
from planner.models.entity_version import EntityVersion
from planner.models.enums import ChangeType, EntityType
from planner.models.weekly_plan import WeeklyPlan
from planner.services import temporal_calendar, weekly_plan_service
from planner.services.temporal_calendar import DateLike
from planner.utils.storage import parse_snapshot, storage_guard

logger = logging.getLogger(__name__)


def get_or_create_weekly_plan(
    db: Session, user_id: str, value: DateLike, auto_create: bool = False
) -> Optional[WeeklyPlan]:
    target = temporal_calendar.to_datetime(value)
    week_start = temporal_calendar.week_start(target).date()
    plan = weekly_plan_service.find_plan_for_week(db, user_id, week_start)
    if plan is not None or not auto_create:
        return plan

    horizon = date.today() + timedelta(days=settings.WEEKLY_PLAN_MAX_FUTURE_DAYS)
    if target.date() > horizon:
        raise InvalidDate(
            "자동 생성 가능한 기간을 벗어난 날짜입니다.",
            {"date": target.date().isoformat(), "max_date": horizon.isoformat()},
        )
    try:
        plan = weekly_plan_service.create_plan_for_week(db, user_id, week_start)
    except StorageError:
        # Another request may have created the same week first.
        plan = weekly_plan_service.find_plan_for_week(db, user_id, week_start)
        if plan is None:
            raise
        return plan
    logger.info("[temporal] auto-created weekly plan %s for %s week of %s", plan.id, user_id, week_start)
    return plan


def get_weekly_plan_by_iso_week(
    db: Session, user_id: str, year: int, week: int, auto_create: bool = False
) -> Optional[WeeklyPlan]:
    monday = temporal_calendar.date_from_iso_week(year, week)
    return get_or_create_weekly_plan(db, user_id, monday, auto_create)


def get_weekly_plans_in_range(db: Session, user_id: str, start: DateLike, end: DateLike) -> List[WeeklyPlan]:
    range_start = temporal_calendar.week_start(start).date()
    range_end = temporal_calendar.week_end(end).date()
    if range_end < range_start:
        raise InvalidDate("종료일은 시작일보다 빠를 수 없습니다.")
    with storage_guard("temporal.plans_in_range"):
        return (
            db.query(WeeklyPlan)
            .filter(
                WeeklyPlan.user_id == user_id,
                WeeklyPlan.week_start_date >= range_start,
                WeeklyPlan.week_start_date <= range_end,
            )
            .order_by(WeeklyPlan.week_start_date.asc())
            .all()
        )


def get_calendar_view(db: Session, user_id: str, year: int, month: Optional[int] = None) -> Dict[str, Any]:
    if month is not None:
        first_day, last_day = temporal_calendar.month_bounds(year, month)
    else:
        first_day, last_day = temporal_calendar.year_bounds(year)

    range_start = temporal_calendar.week_start(first_day).date()
    range_end = temporal_calendar.week_end(last_day).date()
    plans = get_weekly_plans_in_range(db, user_id, range_start, range_end)
    plan_by_week = {p.week_start_date: p for p in plans}
    reflections = weekly_plan_service.get_reflections(db, [p.id for p in plans])

    weeks = []
    current = range_start
    while current <= range_end:
        iso = temporal_calendar.iso_week(current)
        plan = plan_by_week.get(current)
        weeks.append({
            "week_number": iso.week,
            "iso_year": iso.year,
            "week_start": current,
            "week_end": current + timedelta(days=6),
            "has_plan": plan is not None,
            "has_reflection": bool(plan and reflections.get(plan.id)),
            "plan_id": plan.id if plan else None,
            "plan_status": plan.status if plan else None,
            "goal_count": len(plan.goals) if plan else 0,
        })
        current += timedelta(days=7)

    return {"year": year, "month": month, "weeks": weeks}


def get_adjacent_week_plans(db: Session, user_id: str, value: DateLike) -> Dict[str, Optional[WeeklyPlan]]:
    current = temporal_calendar.week_start(value)
    return {
        "previous": get_or_create_weekly_plan(db, user_id, temporal_calendar.add_weeks(current, -1)),
        "current": get_or_create_weekly_plan(db, user_id, current),
        "next": get_or_create_weekly_plan(db, user_id, temporal_calendar.add_weeks(current, 1)),
    }


def get_planning_stats(db: Session, user_id: str, start: DateLike, end: DateLike) -> Dict[str, Any]:
    plans = get_weekly_plans_in_range(db, user_id, start, end)
    range_start = temporal_calendar.week_start(start).date()
    range_end = temporal_calendar.week_start(end).date()
    total_weeks = (range_end - range_start).days // 7 + 1

    reflections = weekly_plan_service.get_reflections(db, [p.id for p in plans])
    weeks_with_plans = len(plans)
    weeks_with_reflections = sum(1 for p in plans if reflections.get(p.id))
    total_goals = sum(len(p.goals) for p in plans)
    average = total_goals / weeks_with_plans if weeks_with_plans else 0.0
    consistency = weeks_with_plans / total_weeks * 100 if total_weeks else 0.0

    return {
        "total_weeks": total_weeks,
        "weeks_with_plans": weeks_with_plans,
        "weeks_with_reflections": weeks_with_reflections,
        "average_goals_per_week": round(average, 1),
        "planning_consistency": round(consistency, 1),
    }


def get_historical_snapshot(
    db: Session, user_id: str, value: DateLike, as_of: datetime
) -> Optional[Dict[str, Any]]:
    """``as_of`` 시점에 활성화되어 있던 주간 계획 스냅샷을 반환합니다."""
    week_start = temporal_calendar.week_start(value).date()
    plan = weekly_plan_service.find_plan_for_week(db, user_id, week_start)
    if plan is None:
        return None
    with storage_guard("temporal.historical_snapshot"):
        version = (
            db.query(EntityVersion)
            .filter(
                EntityVersion.entity_type == EntityType.WEEKLY_PLAN.value,
                EntityVersion.entity_id == plan.id,
                EntityVersion.created_at <= as_of,
            )
            .order_by(EntityVersion.version.desc())
            .first()
        )
    if version is None or version.change_type == ChangeType.DELETE.value:
        return None
    snapshot = parse_snapshot(version.version_data) or {}
    return {**snapshot, "id": plan.id, "version": version.version, "as_of": as_of}
