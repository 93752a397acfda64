"""엔티티 버전 기록/이력 조회/되돌리기를 담당하는 도메인 서비스입니다.

버전 행 추가, 이전 활성 버전 비활성화, 감사 로그 추가, 그리고 호출자가 넘긴
실데이터 반영(``apply``)은 하나의 트랜잭션으로 커밋됩니다. 활성 버전이 트랜잭션
도중 바뀌면 ``Conflict`` 가 발생하며, 설정된 횟수만큼 처음부터 다시 시도한 뒤에도
실패하면 호출자에게 전달합니다.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from planner.config import settings
from planner.exceptions import Conflict, NotFound, PlannerError, StorageError
from planner.models.entity_version import AuditLog, EntityVersion
from planner.models.enums import ChangeType, EntityType
from planner.services import audit_trail, diff_service
from planner.services.domain_store import get_store
from planner.utils.storage import dump_snapshot, parse_snapshot, storage_guard

logger = logging.getLogger(__name__)

T = TypeVar("T")
Snapshot = Dict[str, Any]


@dataclass
class RevertOutcome:
    version: int
    target_version: int
    data: Snapshot
    previous_data: Optional[Snapshot]


def run_versioned_transaction(db: Session, work: Callable[[], T], *, operation: str) -> T:
    attempts = 1 + max(settings.VERSION_CONFLICT_MAX_RETRIES, 0)
    for attempt in range(1, attempts + 1):
        try:
            result = work()
            db.commit()
            return result
        except Conflict as exc:
            db.rollback()
            if attempt >= attempts:
                logger.warning(
                    "[version] %s conflict unresolved after %d attempts: %s", operation, attempts, exc.details
                )
                raise
            logger.info("[version] %s conflict, retrying (%d/%d)", operation, attempt, attempts)
        except PlannerError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("[version] %s failed", operation)
            raise StorageError("버전 기록 중 저장소 오류가 발생했습니다.", {"operation": operation}) from exc
        except Exception:
            db.rollback()
            raise
    raise Conflict("버전 충돌이 해결되지 않았습니다.", {"operation": operation})


def _find_active(db: Session, entity_type: str, entity_id: str) -> Optional[EntityVersion]:
    return (
        db.query(EntityVersion)
        .filter(
            EntityVersion.entity_type == entity_type,
            EntityVersion.entity_id == entity_id,
            EntityVersion.is_active == True,  # noqa: E712
        )
        .order_by(EntityVersion.version.desc())
        .first()
    )


def _find_by_version(db: Session, entity_type: str, entity_id: str, version: int) -> Optional[EntityVersion]:
    return (
        db.query(EntityVersion)
        .filter(
            EntityVersion.entity_type == entity_type,
            EntityVersion.entity_id == entity_id,
            EntityVersion.version == version,
        )
        .first()
    )


def _live_snapshot(active: Optional[EntityVersion]) -> Optional[Snapshot]:
    """활성 버전의 스냅샷. 삭제된 엔티티는 활성 버전이 없으므로 None 입니다."""
    if active is None:
        return None
    return parse_snapshot(active.version_data)


def get_current_snapshot(db: Session, entity_type: Union[EntityType, str], entity_id: str) -> Optional[Snapshot]:
    with storage_guard("version.current_snapshot"):
        return _live_snapshot(_find_active(db, EntityType(entity_type).value, entity_id))


def _validate_payload(change_type: ChangeType, before: Optional[Snapshot], after: Optional[Snapshot]) -> None:
    if change_type == ChangeType.DELETE:
        if before is None:
            raise ValueError("DELETE requires the snapshot before deletion")
    elif after is None:
        raise ValueError(f"{change_type.value} requires an after snapshot")


def _write_version(
    db: Session,
    *,
    entity_type: EntityType,
    entity_id: str,
    change_type: ChangeType,
    before: Optional[Snapshot],
    after: Optional[Snapshot],
    user_id: str,
    description: Optional[str],
    undo_of_id: Optional[str] = None,
    expected_version: Optional[int] = None,
    check_active: bool = False,
) -> AuditLog:
    # check_active compares even when expected_version is None (entity had no active version)
    active = _find_active(db, entity_type.value, entity_id)
    active_no = active.version if active else None
    if (check_active or expected_version is not None) and active_no != expected_version:
        raise Conflict(
            "활성 버전이 변경되었습니다.",
            {"expected_version": expected_version, "active_version": active_no},
        )

    version_no = audit_trail.next_version_number(db, entity_type, entity_id)
    if active is not None:
        flipped = (
            db.query(EntityVersion)
            .filter(
                EntityVersion.id == active.id,
                EntityVersion.version == active.version,
                EntityVersion.is_active == True,  # noqa: E712
            )
            .update({"is_active": False}, synchronize_session="fetch")
        )
        if flipped != 1:
            raise Conflict("활성 버전이 동시에 변경되었습니다.", {"active_version": active_no})

    # A DELETE keeps the last known state as its snapshot but leaves no active version.
    snapshot = before if change_type == ChangeType.DELETE else after
    db.add(
        EntityVersion(
            entity_type=entity_type.value,
            entity_id=entity_id,
            version=version_no,
            change_type=change_type.value,
            version_data=dump_snapshot(snapshot or {}),
            created_by=user_id,
            created_at=datetime.utcnow(),
            is_active=change_type != ChangeType.DELETE,
        )
    )
    try:
        db.flush()
    except IntegrityError as exc:
        raise Conflict("같은 버전 번호가 이미 기록되었습니다.", {"version": version_no}) from exc

    return audit_trail.append_entry(
        db,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        change_type=change_type,
        before=before,
        after=after,
        version=version_no,
        parent_version=version_no - 1 if version_no > 1 else None,
        description=description,
        undo_of_id=undo_of_id,
    )


def record_version(
    db: Session,
    *,
    entity_type: Union[EntityType, str],
    entity_id: str,
    change_type: Union[ChangeType, str],
    before: Optional[Snapshot],
    after: Optional[Snapshot],
    user_id: str,
    description: Optional[str] = None,
    apply: Optional[Callable[[], Any]] = None,
    undo_of_id: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> int:
    """새 버전과 감사 로그를 기록하고 새 버전 번호를 반환합니다.

    ``apply`` 는 실데이터 테이블 반영 콜백으로, 버전 기록과 같은 트랜잭션에서
    실행되며 충돌 재시도 시 다시 호출됩니다. 호출 전에 세션에 커밋되지 않은
    변경을 남겨두면 안 됩니다.
    """
    entity_type = EntityType(entity_type)
    change_type = ChangeType(change_type)
    _validate_payload(change_type, before, after)

    diff = diff_service.generate_diff(before, after)
    logger.debug(
        "[version] %s %s:%s added=%s removed=%s changed=%s",
        change_type.value, entity_type.value, entity_id,
        sorted(diff["added"]), sorted(diff["removed"]), sorted(diff["changed"]),
    )

    def work() -> int:
        entry = _write_version(
            db,
            entity_type=entity_type,
            entity_id=entity_id,
            change_type=change_type,
            before=before,
            after=after,
            user_id=user_id,
            description=description,
            undo_of_id=undo_of_id,
            expected_version=expected_version,
        )
        if apply is not None:
            apply()
        return entry.version

    return run_versioned_transaction(
        db, work, operation=f"{change_type.value} {entity_type.value}:{entity_id}"
    )


@dataclass
class ChangeOutcome:
    version: int
    before: Optional[Snapshot]
    after: Optional[Snapshot]


def _require_live(current: Optional[Snapshot], entity_type: EntityType, entity_id: str) -> Snapshot:
    if current is None:
        raise NotFound("대상을 찾을 수 없습니다.", {"entity_type": entity_type.value, "entity_id": entity_id})
    return current


def record_change(
    db: Session,
    *,
    entity_type: Union[EntityType, str],
    entity_id: str,
    change_type: Union[ChangeType, str],
    user_id: str,
    build: Callable[[Optional[Snapshot]], Tuple[Optional[Snapshot], Optional[Snapshot]]],
    description: Optional[str] = None,
    undo_of_id: Optional[str] = None,
    after_write: Optional[Callable[[], Any]] = None,
) -> ChangeOutcome:
    """기존 엔티티 변경을 기록하고 실데이터 행에 반영합니다.

    매 시도마다 실데이터 행과 활성 버전을 새로 읽고 ``build(current)`` 로
    ``(before, after)`` 를 다시 계산하므로, 다른 요청이 먼저 커밋한 변경 위에
    덮어쓰지 않습니다. 읽은 뒤 활성 버전이 바뀌면 ``Conflict`` 로 재시도합니다.
    ``after_write`` 는 같은 트랜잭션에서 실행할 추가 작업입니다.
    """
    entity_type = EntityType(entity_type)
    change_type = ChangeType(change_type)
    store = get_store(entity_type)

    def work() -> ChangeOutcome:
        active = _find_active(db, entity_type.value, entity_id)
        row = store.get(db, entity_id, fresh=True)
        current = store.snapshot(row) if row is not None else None
        before, after = build(current)
        _validate_payload(change_type, before, after)

        entry = _write_version(
            db,
            entity_type=entity_type,
            entity_id=entity_id,
            change_type=change_type,
            before=before,
            after=after,
            user_id=user_id,
            description=description,
            undo_of_id=undo_of_id,
            expected_version=active.version if active else None,
            check_active=True,
        )
        if change_type == ChangeType.DELETE:
            store.delete(db, entity_id)
        else:
            store.upsert(db, entity_id, after)
        if after_write is not None:
            after_write()
        return ChangeOutcome(version=entry.version, before=before, after=after)

    outcome = run_versioned_transaction(
        db, work, operation=f"{change_type.value} {entity_type.value}:{entity_id}"
    )
    diff = diff_service.generate_diff(outcome.before, outcome.after)
    logger.debug(
        "[version] %s %s:%s v%d changed=%s",
        change_type.value, entity_type.value, entity_id, outcome.version, sorted(diff["changed"]),
    )
    return outcome


def merge_into_current(updates: Snapshot, entity_type: Union[EntityType, str], entity_id: str):
    """현재 스냅샷에 ``updates`` 를 덮어쓰는 UPDATE 용 ``build`` 함수를 만듭니다."""
    entity_type = EntityType(entity_type)

    def build(current: Optional[Snapshot]) -> Tuple[Snapshot, Snapshot]:
        current = _require_live(current, entity_type, entity_id)
        return current, {**current, **updates}

    return build


def remove_current(entity_type: Union[EntityType, str], entity_id: str):
    entity_type = EntityType(entity_type)

    def build(current: Optional[Snapshot]) -> Tuple[Snapshot, None]:
        return _require_live(current, entity_type, entity_id), None

    return build


def get_version_history(db: Session, entity_type: Union[EntityType, str], entity_id: str) -> List[EntityVersion]:
    with storage_guard("version.history"):
        return (
            db.query(EntityVersion)
            .filter(
                EntityVersion.entity_type == EntityType(entity_type).value,
                EntityVersion.entity_id == entity_id,
            )
            .order_by(EntityVersion.version.desc())
            .all()
        )


def get_active_version(db: Session, entity_type: Union[EntityType, str], entity_id: str) -> Optional[EntityVersion]:
    with storage_guard("version.active"):
        return _find_active(db, EntityType(entity_type).value, entity_id)


def get_version(db: Session, entity_type: Union[EntityType, str], entity_id: str, version: int) -> EntityVersion:
    with storage_guard("version.get"):
        row = _find_by_version(db, EntityType(entity_type).value, entity_id, version)
    if not row:
        raise NotFound("버전 이력을 찾을 수 없습니다.", {"version": version})
    return row


def get_latest_version(db: Session, entity_type: Union[EntityType, str], entity_id: str) -> Optional[EntityVersion]:
    with storage_guard("version.latest"):
        return (
            db.query(EntityVersion)
            .filter(
                EntityVersion.entity_type == EntityType(entity_type).value,
                EntityVersion.entity_id == entity_id,
            )
            .order_by(EntityVersion.version.desc())
            .first()
        )


def revert_to_version(
    db: Session,
    *,
    entity_type: Union[EntityType, str],
    entity_id: str,
    target_version: int,
    user_id: str,
    apply: Optional[Callable[[Snapshot], Any]] = None,
) -> RevertOutcome:
    """대상 버전의 스냅샷으로 새 RESTORE 버전을 추가합니다. 기존 이력은 그대로 둡니다.

    ``apply`` 는 대상 스냅샷을 받아 실데이터 행을 덮어쓰는 콜백입니다.
    """
    entity_type = EntityType(entity_type)

    def work() -> RevertOutcome:
        target = _find_by_version(db, entity_type.value, entity_id, target_version)
        if target is None:
            raise NotFound("되돌릴 버전을 찾을 수 없습니다.", {"version": target_version})
        active = _find_active(db, entity_type.value, entity_id)
        target_data = parse_snapshot(target.version_data) or {}
        previous = _live_snapshot(active)
        entry = _write_version(
            db,
            entity_type=entity_type,
            entity_id=entity_id,
            change_type=ChangeType.RESTORE,
            before=previous,
            after=target_data,
            user_id=user_id,
            description=f"Reverted to version {target_version}",
            expected_version=active.version if active else None,
            check_active=True,
        )
        if apply is not None:
            apply(target_data)
        return RevertOutcome(
            version=entry.version,
            target_version=target_version,
            data=target_data,
            previous_data=previous,
        )

    outcome = run_versioned_transaction(
        db, work, operation=f"REVERT {entity_type.value}:{entity_id}->{target_version}"
    )
    logger.info(
        "[version] %s:%s reverted to v%d as v%d by %s",
        entity_type.value, entity_id, target_version, outcome.version, user_id,
    )
    return outcome


def generate_diff(before: Optional[Snapshot], after: Optional[Snapshot]) -> Dict[str, Dict[str, Any]]:
    return diff_service.generate_diff(before, after)


def compare_versions(
    db: Session,
    entity_type: Union[EntityType, str],
    entity_id: str,
    from_version: int,
    to_version: int,
) -> Dict[str, Dict[str, Any]]:
    before = get_version(db, entity_type, entity_id, from_version)
    after = get_version(db, entity_type, entity_id, to_version)
    return diff_service.generate_diff(parse_snapshot(before.version_data), parse_snapshot(after.version_data))


def get_audit_trail(
    db: Session,
    entity_type: Union[EntityType, str],
    entity_id: str,
    limit: Optional[int] = None,
) -> List[AuditLog]:
    return audit_trail.list_entries(
        db,
        entity_type,
        entity_id,
        descending=True,
        limit=limit or settings.AUDIT_TRAIL_DEFAULT_LIMIT,
    )


def parse_tags(row: EntityVersion) -> List[str]:
    try:
        parsed = json.loads(row.tags or "[]")
    except json.JSONDecodeError:
        return []
    return [str(tag) for tag in parsed] if isinstance(parsed, list) else []


def tag_version(
    db: Session,
    entity_type: Union[EntityType, str],
    entity_id: str,
    version: int,
    tag: str,
) -> EntityVersion:
    row = get_version(db, entity_type, entity_id, version)
    tags = parse_tags(row)
    if tag not in tags:
        tags.append(tag)
    with storage_guard("version.tag"):
        try:
            row.tags = json.dumps(tags, ensure_ascii=False)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        db.refresh(row)
    return row


def to_response(row: EntityVersion) -> Dict[str, Any]:
    return {
        "id": row.id,
        "entity_type": row.entity_type,
        "entity_id": row.entity_id,
        "version": row.version,
        "change_type": row.change_type,
        "version_data": parse_snapshot(row.version_data) or {},
        "created_by": row.created_by,
        "created_at": row.created_at,
        "is_active": bool(row.is_active),
        "tags": parse_tags(row),
    }
