"""주간 계획/회고 도메인의 SQLAlchemy 모델 정의입니다."""

import json

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.sql import func
from planner.database import Base
from planner.models.base import new_id


class WeeklyPlan(Base):
    __tablename__ = "weekly_plans"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    week_start_date = Column(Date, nullable=False)  # ISO week Monday
    weekly_goals = Column(Text, nullable=False, default="[]")  # JSON: [{id, title, description, priority, completed}]
    intentions = Column(Text)
    status = Column(String(20), nullable=False, default="DRAFT")  # DRAFT/ACTIVE/COMPLETED/ARCHIVED
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def goals(self):
        try:
            parsed = json.loads(self.weekly_goals or "[]")
        except json.JSONDecodeError:
            return []
        return parsed if isinstance(parsed, list) else []

    __table_args__ = (
        UniqueConstraint("user_id", "week_start_date", name="uq_weekly_plan_user_week"),
    )


class WeeklyReflection(Base):
    __tablename__ = "weekly_reflections"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    weekly_plan_id = Column(String(32), nullable=False)  # plain link, survives plan delete/restore
    week_end_date = Column(Date, nullable=False)
    accomplishments = Column(Text)
    challenges = Column(Text)
    lessons = Column(Text)
    next_week_goals = Column(Text)
    satisfaction_rating = Column(Integer)  # 1~10
    progress_notes = Column(Text)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_weekly_reflection_plan", "weekly_plan_id"),
    )
