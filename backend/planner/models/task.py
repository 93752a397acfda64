"""Task/Goal 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.sql import func
from planner.database import Base
from planner.models.base import new_id


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    weekly_plan_id = Column(String(32), nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    status = Column(String(20), default="TODO")  # TODO/IN_PROGRESS/COMPLETED/BLOCKED
    priority = Column(Integer, default=2)  # 1=high, 2=medium, 3=low
    due_date = Column(Date)
    planned_date = Column(Date)
    big_three_rank = Column(Integer)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_task_user", "user_id"),
        Index("idx_task_weekly_plan", "weekly_plan_id"),
    )


class Goal(Base):
    __tablename__ = "goals"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    weekly_plan_id = Column(String(32), nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    priority = Column(Integer, default=3)  # 1~5
    completed = Column(Boolean, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_goal_user", "user_id"),
    )
