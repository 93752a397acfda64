"""엔티티 소유권 확인 공용 헬퍼입니다."""

from typing import Optional, Union

from sqlalchemy.orm import Session

from planner.exceptions import Forbidden, NotFound
from planner.models.enums import EntityType
from planner.models.user import User
from planner.services import version_service
from planner.services.domain_store import get_store
from planner.utils.storage import parse_snapshot, storage_guard


def resolve_owner_id(db: Session, entity_type: Union[EntityType, str], entity_id: str) -> Optional[str]:
    with storage_guard("permissions.resolve_owner"):
        row = get_store(entity_type).get(db, entity_id)
    if row is not None:
        return row.user_id
    # Deleted entities are resolved through their latest snapshot.
    latest = version_service.get_latest_version(db, entity_type, entity_id)
    if latest is None:
        return None
    return (parse_snapshot(latest.version_data) or {}).get("user_id") or latest.created_by


def ensure_owner(db: Session, entity_type: Union[EntityType, str], entity_id: str, user: User) -> None:
    owner_id = resolve_owner_id(db, entity_type, entity_id)
    if owner_id is None:
        raise NotFound("대상을 찾을 수 없습니다.", {"entity_type": EntityType(entity_type).value, "entity_id": entity_id})
    if owner_id != user.id:
        raise Forbidden("이 항목에 접근할 권한이 없습니다.")
