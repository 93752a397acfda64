"""버전 관리 대상 엔티티 종류와 변경 유형을 정의하는 닫힌 열거형입니다."""

import enum


class EntityType(str, enum.Enum):
    WEEKLY_PLAN = "WEEKLY_PLAN"
    WEEKLY_REFLECTION = "WEEKLY_REFLECTION"
    TASK = "TASK"
    GOAL = "GOAL"


class ChangeType(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    RESTORE = "RESTORE"


class WeeklyPlanStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"
