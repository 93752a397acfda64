"""사용자의 최근 작업을 되돌리는(undo) 도메인 서비스입니다.

되돌리기는 감사 로그 항목의 역연산을 새 버전으로 기록하고, 실데이터 반영과 원본
항목의 undo 표시까지 같은 트랜잭션에서 처리합니다. 역연산으로 생성된 항목은
``undo_of_id`` 를 가지며 다시 되돌리기 대상이 되지 않습니다.
"""

import logging
from typing import Any, List, Mapping, Optional, Union

from sqlalchemy.orm import Session

from planner.config import settings
from planner.exceptions import Forbidden, NotFound
from planner.models.entity_version import AuditLog
from planner.models.enums import ChangeType, EntityType
from planner.schemas.undo import UndoHistoryItem, UndoResult, UndoStats
from planner.services import audit_trail, version_service
from planner.utils.storage import parse_snapshot

logger = logging.getLogger(__name__)

NOTHING_TO_UNDO = "nothing_to_undo"
NOT_UNDOABLE = "not_undoable"

_VERBS = {
    ChangeType.CREATE.value: "Created",
    ChangeType.UPDATE.value: "Updated",
    ChangeType.DELETE.value: "Deleted",
    ChangeType.RESTORE.value: "Restored",
}


def _field(entry: Union[AuditLog, Mapping[str, Any]], name: str, camel: str) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(name, entry.get(camel))
    return getattr(entry, name, None)


def generate_action_description(entry: Union[AuditLog, Mapping[str, Any]]) -> str:
    custom = _field(entry, "change_description", "changeDescription")
    if custom:
        return custom
    change_type = str(_field(entry, "change_type", "changeType") or "")
    entity_type = str(_field(entry, "entity_type", "entityType") or "")
    entity_label = entity_type.replace("_", " ").lower()
    return f"{_VERBS.get(change_type, 'Modified')} {entity_label}"


def _failure(message: str, reason: str, entry: Optional[AuditLog] = None) -> UndoResult:
    return UndoResult(
        success=False,
        message=message,
        reason=reason,
        audit_log_id=entry.id if entry else None,
        entity_type=entry.entity_type if entry else None,
        entity_id=entry.entity_id if entry else None,
    )


def _apply_inverse(db: Session, entry: AuditLog, user_id: str) -> UndoResult:
    entity_type = EntityType(entry.entity_type)
    entity_id = entry.entity_id
    change_type = ChangeType(entry.change_type)
    entry_id = entry.id
    description = generate_action_description(entry)
    before = parse_snapshot(entry.before_data)

    def restore_before(current):
        return current, before

    if change_type == ChangeType.CREATE or (change_type == ChangeType.RESTORE and before is None):
        inverse, inverse_after = ChangeType.DELETE, None
        build = version_service.remove_current(entity_type, entity_id)
        message = "Creation undone - entity removed"
    elif change_type in (ChangeType.UPDATE, ChangeType.RESTORE):
        if before is None:
            return _failure("No previous state to revert to", NOT_UNDOABLE, entry)
        inverse, inverse_after = ChangeType.RESTORE, before
        build = restore_before
        message = "Update undone - reverted to previous state"
    else:
        if before is None:
            return _failure("No data to restore", NOT_UNDOABLE, entry)
        inverse, inverse_after = ChangeType.RESTORE, before
        build = restore_before
        message = "Deletion undone - entity restored"

    try:
        outcome = version_service.record_change(
            db,
            entity_type=entity_type,
            entity_id=entity_id,
            change_type=inverse,
            user_id=user_id,
            build=build,
            description=f"Undo: {description}",
            undo_of_id=entry_id,
            after_write=lambda: audit_trail.mark_undone(db, entry),
        )
    except NotFound:
        return _failure("Entity no longer exists", NOT_UNDOABLE, entry)
    logger.info("[undo] %s undid %s (%s:%s) as v%d", user_id, entry_id, entity_type.value, entity_id, outcome.version)
    return UndoResult(
        success=True,
        message=message,
        description=description,
        audit_log_id=entry_id,
        entity_type=entity_type.value,
        entity_id=entity_id,
        version=outcome.version,
        data=inverse_after or {},
    )


def undo_last_action(db: Session, user_id: str) -> UndoResult:
    entry = audit_trail.latest_for_user(db, user_id, undoable_only=True)
    if entry is None:
        return _failure("Nothing to undo", NOTHING_TO_UNDO)
    return _apply_inverse(db, entry, user_id)


def undo_action(db: Session, audit_log_id: str, user_id: str) -> UndoResult:
    entry = audit_trail.get_entry(db, audit_log_id)
    if entry is None:
        raise NotFound("작업 이력을 찾을 수 없습니다.", {"audit_log_id": audit_log_id})
    if entry.user_id != user_id:
        raise Forbidden("본인의 작업만 되돌릴 수 있습니다.")
    if entry.is_undone or entry.undo_of_id is not None:
        return _failure("Action cannot be undone", NOT_UNDOABLE, entry)
    if audit_trail.has_later_changes(db, entry):
        return _failure("Entity has been changed since this action", NOT_UNDOABLE, entry)
    return _apply_inverse(db, entry, user_id)


def can_undo(db: Session, entry: AuditLog) -> bool:
    if entry.is_undone or entry.undo_of_id is not None:
        return False
    return not audit_trail.has_later_changes(db, entry)


def _history_limit(limit: Optional[int]) -> int:
    if limit is None or limit < 1:
        return settings.UNDO_HISTORY_DEFAULT_LIMIT
    return min(limit, settings.UNDO_HISTORY_MAX_LIMIT)


def get_undo_history(db: Session, user_id: str, limit: Optional[int] = None) -> List[UndoHistoryItem]:
    entries = audit_trail.recent_for_user(db, user_id, _history_limit(limit))
    return [
        UndoHistoryItem(
            id=entry.id,
            description=generate_action_description(entry),
            timestamp=entry.timestamp,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            change_type=entry.change_type,
            version=entry.version,
            is_undone=bool(entry.is_undone),
            can_undo=can_undo(db, entry),
        )
        for entry in entries
    ]


def get_user_action_stats(db: Session, user_id: str) -> UndoStats:
    latest = audit_trail.latest_for_user(db, user_id, undoable_only=False)
    return UndoStats(
        total_actions=audit_trail.count_for_user(db, user_id),
        undoable_actions=audit_trail.count_for_user(db, user_id, undoable_only=True),
        last_action_at=latest.timestamp if latest else None,
    )