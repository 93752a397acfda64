"""Weekly Reflection 도메인 서비스 레이어입니다."""

from sqlalchemy.orm import Session

from planner.exceptions import Conflict, NotFound
from planner.models.base import new_id
from planner.models.enums import ChangeType, EntityType
from planner.models.user import User
from planner.models.weekly_plan import WeeklyReflection
from planner.schemas.weekly_plan import WeeklyReflectionCreate, WeeklyReflectionUpdate
from planner.services import temporal_calendar, version_service, weekly_plan_service
from planner.services.domain_store import get_store
from planner.utils.permissions import ensure_owner
from planner.utils.storage import storage_guard

ENTITY = EntityType.WEEKLY_REFLECTION


def get_reflection(db: Session, reflection_id: str, current_user: User) -> WeeklyReflection:
    with storage_guard("reflection.get"):
        row = db.query(WeeklyReflection).filter(WeeklyReflection.id == reflection_id).first()
    if not row:
        raise NotFound("주간 회고를 찾을 수 없습니다.")
    ensure_owner(db, ENTITY, reflection_id, current_user)
    return row


def create_reflection(db: Session, data: WeeklyReflectionCreate, current_user: User) -> WeeklyReflection:
    plan = weekly_plan_service.get_plan(db, data.weekly_plan_id, current_user)
    if weekly_plan_service.get_reflections(db, [plan.id]).get(plan.id):
        raise Conflict("이 주간 계획에는 이미 회고가 있습니다.")
    reflection_id = new_id()
    after = {
        "user_id": current_user.id,
        "week_end_date": temporal_calendar.week_end(plan.week_start_date).date().isoformat(),
        **data.model_dump(mode="json"),
    }
    store = get_store(ENTITY)
    version_service.record_version(
        db,
        entity_type=ENTITY,
        entity_id=reflection_id,
        change_type=ChangeType.CREATE,
        before=None,
        after=after,
        user_id=current_user.id,
        description="Created weekly reflection",
        apply=lambda: store.upsert(db, reflection_id, after),
    )
    return db.get(WeeklyReflection, reflection_id)


def update_reflection(
    db: Session, reflection_id: str, data: WeeklyReflectionUpdate, current_user: User
) -> WeeklyReflection:
    get_reflection(db, reflection_id, current_user)
    version_service.record_change(
        db,
        entity_type=ENTITY,
        entity_id=reflection_id,
        change_type=ChangeType.UPDATE,
        user_id=current_user.id,
        build=version_service.merge_into_current(
            data.model_dump(exclude_unset=True, mode="json"), ENTITY, reflection_id
        ),
        description="Updated weekly reflection",
    )
    return db.get(WeeklyReflection, reflection_id)


def delete_reflection(db: Session, reflection_id: str, current_user: User) -> None:
    get_reflection(db, reflection_id, current_user)
    version_service.record_change(
        db,
        entity_type=ENTITY,
        entity_id=reflection_id,
        change_type=ChangeType.DELETE,
        user_id=current_user.id,
        build=version_service.remove_current(ENTITY, reflection_id),
        description="Deleted weekly reflection",
    )
