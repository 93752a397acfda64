"""엔티티 버전 이력/감사 로그/diff 응답 계약을 위한 Pydantic 스키마입니다."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class EntityVersionOut(BaseModel):
    id: str
    entity_type: str
    entity_id: str
    version: int
    change_type: str
    version_data: Dict[str, Any]
    created_by: str
    created_at: Optional[datetime] = None
    is_active: bool
    tags: List[str] = []


class AuditLogOut(BaseModel):
    id: str
    entity_type: str
    entity_id: str
    user_id: str
    change_type: str
    before_data: Optional[Dict[str, Any]] = None
    after_data: Optional[Dict[str, Any]] = None
    change_description: Optional[str] = None
    timestamp: datetime
    version: int
    parent_version: Optional[int] = None
    is_undone: bool
    undo_of_id: Optional[str] = None


class DiffOut(BaseModel):
    added: Dict[str, Any]
    removed: Dict[str, Any]
    changed: Dict[str, Any]


class RevertResult(BaseModel):
    success: bool = True
    message: str
    version: int
    data: Dict[str, Any]


class VersionTagRequest(BaseModel):
    tag: str
