"""주간 계획/회고 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from planner.models.enums import WeeklyPlanStatus


class WeeklyGoal(BaseModel):
    id: str
    title: str = Field(min_length=1)
    description: Optional[str] = None
    priority: int = Field(ge=1, le=5)
    completed: bool = False


class WeeklyPlanCreate(BaseModel):
    week_start_date: date  # 주 안의 아무 날짜나 허용, 월요일로 정규화
    weekly_goals: List[WeeklyGoal] = Field(default_factory=list)
    intentions: Optional[str] = ""
    status: WeeklyPlanStatus = WeeklyPlanStatus.DRAFT


class WeeklyPlanUpdate(BaseModel):
    weekly_goals: Optional[List[WeeklyGoal]] = None
    intentions: Optional[str] = None
    status: Optional[WeeklyPlanStatus] = None


class WeeklyReflectionCreate(BaseModel):
    weekly_plan_id: str
    accomplishments: Optional[str] = None
    challenges: Optional[str] = None
    lessons: Optional[str] = None
    next_week_goals: Optional[str] = None
    satisfaction_rating: Optional[int] = Field(default=None, ge=1, le=10)
    progress_notes: Optional[str] = None


class WeeklyReflectionUpdate(BaseModel):
    accomplishments: Optional[str] = None
    challenges: Optional[str] = None
    lessons: Optional[str] = None
    next_week_goals: Optional[str] = None
    satisfaction_rating: Optional[int] = Field(default=None, ge=1, le=10)
    progress_notes: Optional[str] = None


class WeeklyReflectionOut(BaseModel):
    id: str
    user_id: str
    weekly_plan_id: str
    week_end_date: date
    accomplishments: Optional[str] = None
    challenges: Optional[str] = None
    lessons: Optional[str] = None
    next_week_goals: Optional[str] = None
    satisfaction_rating: Optional[int] = None
    progress_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class WeeklyPlanOut(BaseModel):
    id: str
    user_id: str
    week_start_date: date
    week_end_date: date
    iso_year: int
    iso_week: int
    weekly_goals: List[Dict[str, Any]]
    intentions: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    reflections: List[WeeklyReflectionOut] = []


class WeeklyPlanPage(BaseModel):
    items: List[WeeklyPlanOut]
    page: int
    limit: int
    total: int
    total_pages: int
