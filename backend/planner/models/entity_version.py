"""엔티티 스냅샷 버전과 감사 로그를 저장하는 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Index, UniqueConstraint
from sqlalchemy.sql import func

from planner.database import Base
from planner.models.base import new_id


class EntityVersion(Base):
    __tablename__ = "entity_versions"

    id = Column(String(32), primary_key=True, default=new_id)
    entity_type = Column(String(30), nullable=False)  # WEEKLY_PLAN/WEEKLY_REFLECTION/TASK/GOAL
    entity_id = Column(String(32), nullable=False)
    version = Column(Integer, nullable=False)
    change_type = Column(String(20), nullable=False)  # CREATE/UPDATE/DELETE/RESTORE
    version_data = Column(Text, nullable=False)  # JSON string
    created_by = Column(String(32), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    is_active = Column(Boolean, nullable=False, default=False)
    tags = Column(Text)  # JSON array string

    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "version", name="uq_entity_version_no"),
        Index("idx_entity_version_active", "entity_type", "entity_id", "is_active"),
    )


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(String(32), primary_key=True, default=new_id)
    entity_type = Column(String(30), nullable=False)
    entity_id = Column(String(32), nullable=False)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    change_type = Column(String(20), nullable=False)
    before_data = Column(Text)  # JSON string, null for CREATE
    after_data = Column(Text)  # JSON string, null for DELETE
    change_description = Column(Text)
    timestamp = Column(DateTime, nullable=False)
    version = Column(Integer, nullable=False)
    parent_version = Column(Integer)
    is_undone = Column(Boolean, nullable=False, default=False)
    undone_at = Column(DateTime)
    undo_of_id = Column(String(32), ForeignKey("audit_log.id"), nullable=True)

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id", "version"),
        Index("idx_audit_user_time", "user_id", "timestamp"),
    )
