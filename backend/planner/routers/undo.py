"""Undo 기능 API 라우터입니다."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from planner.database import get_db
from planner.middleware.auth_middleware import get_current_user
from planner.models.enums import EntityType
from planner.models.user import User
from planner.schemas.undo import UndoHistoryItem, UndoResult, UndoStats
from planner.schemas.version import AuditLogOut
from planner.services import audit_trail, undo_service

router = APIRouter(prefix="/api/undo", tags=["undo"])


def _respond(result: UndoResult):
    if not result.success:
        return JSONResponse(status_code=400, content=result.model_dump(mode="json"))
    return result


@router.post("", response_model=UndoResult)
def undo_last_action(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _respond(undo_service.undo_last_action(db, current_user.id))


@router.post("/{audit_log_id}", response_model=UndoResult)
def undo_action(audit_log_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _respond(undo_service.undo_action(db, audit_log_id, current_user.id))


@router.get("", response_model=List[UndoHistoryItem])
def get_undo_history(
    limit: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return undo_service.get_undo_history(db, current_user.id, limit)


@router.get("/stats", response_model=UndoStats)
def get_undo_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return undo_service.get_user_action_stats(db, current_user.id)


@router.get("/actions")
def list_actions(
    entity_type: Optional[EntityType] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items, total = audit_trail.find_many(
        db, entity_type=entity_type, user_id=current_user.id, page=page, limit=limit
    )
    return {
        "items": [AuditLogOut(**audit_trail.to_response(item)) for item in items],
        "page": page,
        "limit": limit,
        "total": total,
    }
