"""엔티티 변경 감사 로그(append-only) 조회/기록 서비스입니다.

감사 로그는 VersionManager 트랜잭션 안에서만 기록되며, 이 모듈은 commit 하지
않습니다. 기록 이후 허용되는 유일한 변경은 undo 처리 표시입니다.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from planner.exceptions import Conflict
from planner.models.entity_version import AuditLog
from planner.models.enums import ChangeType, EntityType
from planner.utils.storage import dump_snapshot, parse_snapshot, storage_guard


def _type_value(entity_type: Union[EntityType, str]) -> str:
    return EntityType(entity_type).value


def next_version_number(db: Session, entity_type: Union[EntityType, str], entity_id: str) -> int:
    with storage_guard("audit.next_version_number"):
        current_max = (
            db.query(func.max(AuditLog.version))
            .filter(
                AuditLog.entity_type == _type_value(entity_type),
                AuditLog.entity_id == entity_id,
            )
            .scalar()
        )
    return (current_max or 0) + 1


def append_entry(
    db: Session,
    *,
    entity_type: Union[EntityType, str],
    entity_id: str,
    user_id: str,
    change_type: ChangeType,
    before: Optional[Dict[str, Any]],
    after: Optional[Dict[str, Any]],
    version: int,
    parent_version: Optional[int],
    description: Optional[str] = None,
    undo_of_id: Optional[str] = None,
) -> AuditLog:
    change_type = ChangeType(change_type)
    entry = AuditLog(
        entity_type=_type_value(entity_type),
        entity_id=entity_id,
        user_id=user_id,
        change_type=change_type.value,
        before_data=None if change_type == ChangeType.CREATE else dump_snapshot(before),
        after_data=None if change_type == ChangeType.DELETE else dump_snapshot(after),
        change_description=description,
        timestamp=datetime.utcnow(),
        version=version,
        parent_version=parent_version,
        is_undone=False,
        undo_of_id=undo_of_id,
    )
    db.add(entry)
    db.flush()
    return entry


def get_entry(db: Session, entry_id: str) -> Optional[AuditLog]:
    with storage_guard("audit.get_entry"):
        return db.query(AuditLog).filter(AuditLog.id == entry_id).first()


def list_entries(
    db: Session,
    entity_type: Union[EntityType, str],
    entity_id: str,
    *,
    descending: bool = False,
    limit: Optional[int] = None,
) -> List[AuditLog]:
    order = AuditLog.version.desc() if descending else AuditLog.version.asc()
    with storage_guard("audit.list_entries"):
        query = (
            db.query(AuditLog)
            .filter(
                AuditLog.entity_type == _type_value(entity_type),
                AuditLog.entity_id == entity_id,
            )
            .order_by(order)
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()


def _undoable_filter(query):
    return query.filter(AuditLog.is_undone == False, AuditLog.undo_of_id.is_(None))  # noqa: E712


def latest_for_user(db: Session, user_id: str, *, undoable_only: bool = True) -> Optional[AuditLog]:
    with storage_guard("audit.latest_for_user"):
        query = db.query(AuditLog).filter(AuditLog.user_id == user_id)
        if undoable_only:
            query = _undoable_filter(query)
        return query.order_by(AuditLog.timestamp.desc(), AuditLog.version.desc()).first()


def recent_for_user(db: Session, user_id: str, limit: int) -> List[AuditLog]:
    with storage_guard("audit.recent_for_user"):
        return (
            db.query(AuditLog)
            .filter(AuditLog.user_id == user_id)
            .order_by(AuditLog.timestamp.desc(), AuditLog.version.desc())
            .limit(limit)
            .all()
        )


def count_for_user(db: Session, user_id: str, *, undoable_only: bool = False) -> int:
    with storage_guard("audit.count_for_user"):
        query = db.query(func.count(AuditLog.id)).filter(AuditLog.user_id == user_id)
        if undoable_only:
            query = _undoable_filter(query)
        return int(query.scalar() or 0)


def find_many(
    db: Session,
    *,
    entity_type: Optional[Union[EntityType, str]] = None,
    entity_id: Optional[str] = None,
    user_id: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[AuditLog], int]:
    page = max(page, 1)
    limit = max(limit, 1)
    with storage_guard("audit.find_many"):
        query = db.query(AuditLog)
        if entity_type is not None:
            query = query.filter(AuditLog.entity_type == _type_value(entity_type))
        if entity_id is not None:
            query = query.filter(AuditLog.entity_id == entity_id)
        if user_id is not None:
            query = query.filter(AuditLog.user_id == user_id)
        total = query.count()
        items = (
            query.order_by(AuditLog.timestamp.desc(), AuditLog.version.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
    return items, total


def mark_undone(db: Session, entry: AuditLog) -> None:
    updated = (
        db.query(AuditLog)
        .filter(AuditLog.id == entry.id, AuditLog.is_undone == False)  # noqa: E712
        .update({"is_undone": True, "undone_at": datetime.utcnow()}, synchronize_session="fetch")
    )
    if updated != 1:
        raise Conflict("이미 되돌린 작업입니다.", {"audit_log_id": entry.id})


def has_later_changes(db: Session, entry: AuditLog) -> bool:
    with storage_guard("audit.has_later_changes"):
        query = db.query(AuditLog.id).filter(
            AuditLog.entity_type == entry.entity_type,
            AuditLog.entity_id == entry.entity_id,
            AuditLog.version > entry.version,
        )
        return _undoable_filter(query).first() is not None


def to_response(entry: AuditLog) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "entity_type": entry.entity_type,
        "entity_id": entry.entity_id,
        "user_id": entry.user_id,
        "change_type": entry.change_type,
        "before_data": parse_snapshot(entry.before_data),
        "after_data": parse_snapshot(entry.after_data),
        "change_description": entry.change_description,
        "timestamp": entry.timestamp,
        "version": entry.version,
        "parent_version": entry.parent_version,
        "is_undone": bool(entry.is_undone),
        "undo_of_id": entry.undo_of_id,
    }
