"""ISO 주차/캘린더 조회 응답 스키마입니다."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel


class IsoWeekOut(BaseModel):
    year: int
    week: int
    week_start: datetime
    week_end: datetime


class CalendarWeek(BaseModel):
    week_number: int
    iso_year: int
    week_start: date
    week_end: date
    has_plan: bool
    has_reflection: bool
    plan_id: Optional[str] = None
    plan_status: Optional[str] = None
    goal_count: int = 0


class CalendarView(BaseModel):
    year: int
    month: Optional[int] = None
    weeks: List[CalendarWeek]


class PlanningStats(BaseModel):
    total_weeks: int
    weeks_with_plans: int
    weeks_with_reflections: int
    average_goals_per_week: float
    planning_consistency: float  # percent
