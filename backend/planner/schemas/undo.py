"""Undo 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class UndoResult(BaseModel):
    success: bool
    message: str
    reason: Optional[str] = None  # nothing_to_undo/not_undoable
    description: Optional[str] = None
    audit_log_id: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    version: Optional[int] = None
    data: Dict[str, Any] = {}


class UndoHistoryItem(BaseModel):
    id: str
    description: str
    timestamp: datetime
    entity_type: str
    entity_id: str
    change_type: str
    version: int
    is_undone: bool
    can_undo: bool


class UndoStats(BaseModel):
    total_actions: int
    undoable_actions: int
    last_action_at: Optional[datetime] = None
