"""User 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from planner.database import Base
from planner.models.base import new_id


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    email = Column(String(200), unique=True, nullable=False)
    name = Column(String(100))
    timezone = Column(String(50), default="UTC")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
