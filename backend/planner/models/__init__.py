"""SQLAlchemy 모델 패키지 초기화 모듈입니다."""

from planner.models.user import User
from planner.models.weekly_plan import WeeklyPlan, WeeklyReflection
from planner.models.task import Task, Goal
from planner.models.entity_version import EntityVersion, AuditLog
from planner.models.enums import EntityType, ChangeType, WeeklyPlanStatus

__all__ = [
    "User",
    "WeeklyPlan", "WeeklyReflection",
    "Task", "Goal",
    "EntityVersion", "AuditLog",
    "EntityType", "ChangeType", "WeeklyPlanStatus",
]
