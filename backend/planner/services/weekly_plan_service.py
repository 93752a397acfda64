"""Weekly Plan 도메인 서비스 레이어입니다. 모든 변경은 버전 기록과 같은 트랜잭션으로 반영됩니다."""

import math
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from planner.exceptions import Conflict, NotFound
from planner.models.base import new_id
from planner.models.enums import ChangeType, EntityType, WeeklyPlanStatus
from planner.models.user import User
from planner.models.weekly_plan import WeeklyPlan, WeeklyReflection
from planner.schemas.version import RevertResult
from planner.schemas.weekly_plan import WeeklyPlanCreate, WeeklyPlanUpdate
from planner.services import audit_trail, temporal_calendar, version_service
from planner.services.domain_store import get_store
from planner.utils.permissions import ensure_owner
from planner.utils.storage import storage_guard

ENTITY = EntityType.WEEKLY_PLAN


def find_plan_for_week(db: Session, user_id: str, week_start: date) -> Optional[WeeklyPlan]:
    with storage_guard("weekly_plan.find_for_week"):
        return (
            db.query(WeeklyPlan)
            .filter(WeeklyPlan.user_id == user_id, WeeklyPlan.week_start_date == week_start)
            .first()
        )


def get_reflections(db: Session, plan_ids: List[str]) -> Dict[str, List[WeeklyReflection]]:
    if not plan_ids:
        return {}
    with storage_guard("weekly_plan.reflections"):
        rows = (
            db.query(WeeklyReflection)
            .filter(WeeklyReflection.weekly_plan_id.in_(plan_ids))
            .order_by(WeeklyReflection.week_end_date.asc())
            .all()
        )
    grouped: Dict[str, List[WeeklyReflection]] = {}
    for row in rows:
        grouped.setdefault(row.weekly_plan_id, []).append(row)
    return grouped


def to_response(plan: WeeklyPlan, reflections: Optional[List[WeeklyReflection]] = None) -> Dict[str, Any]:
    iso = temporal_calendar.iso_week(plan.week_start_date)
    return {
        "id": plan.id,
        "user_id": plan.user_id,
        "week_start_date": plan.week_start_date,
        "week_end_date": temporal_calendar.week_end(plan.week_start_date).date(),
        "iso_year": iso.year,
        "iso_week": iso.week,
        "weekly_goals": plan.goals,
        "intentions": plan.intentions,
        "status": plan.status,
        "created_at": plan.created_at,
        "updated_at": plan.updated_at,
        "reflections": reflections or [],
    }


def to_full_response(db: Session, plan: WeeklyPlan) -> Dict[str, Any]:
    return to_response(plan, get_reflections(db, [plan.id]).get(plan.id))


def get_plan(db: Session, plan_id: str, current_user: User) -> WeeklyPlan:
    with storage_guard("weekly_plan.get"):
        plan = db.query(WeeklyPlan).filter(WeeklyPlan.id == plan_id).first()
    if not plan:
        raise NotFound("주간 계획을 찾을 수 없습니다.")
    ensure_owner(db, ENTITY, plan_id, current_user)
    return plan


def list_plans(db: Session, current_user: User, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    with storage_guard("weekly_plan.list"):
        query = db.query(WeeklyPlan).filter(WeeklyPlan.user_id == current_user.id)
        total = query.count()
        plans = (
            query.order_by(WeeklyPlan.week_start_date.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
    reflections = get_reflections(db, [p.id for p in plans])
    return {
        "items": [to_response(p, reflections.get(p.id)) for p in plans],
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if total else 0,
    }


def create_plan_for_week(
    db: Session,
    user_id: str,
    week_start: date,
    *,
    weekly_goals: Optional[List[Dict[str, Any]]] = None,
    intentions: Optional[str] = "",
    status: WeeklyPlanStatus = WeeklyPlanStatus.DRAFT,
) -> WeeklyPlan:
    plan_id = new_id()
    after = {
        "user_id": user_id,
        "week_start_date": week_start.isoformat(),
        "weekly_goals": weekly_goals or [],
        "intentions": intentions,
        "status": WeeklyPlanStatus(status).value,
    }
    store = get_store(ENTITY)
    version_service.record_version(
        db,
        entity_type=ENTITY,
        entity_id=plan_id,
        change_type=ChangeType.CREATE,
        before=None,
        after=after,
        user_id=user_id,
        description="Created weekly plan",
        apply=lambda: store.upsert(db, plan_id, after),
    )
    return db.get(WeeklyPlan, plan_id)


def create_plan(db: Session, data: WeeklyPlanCreate, current_user: User) -> WeeklyPlan:
    week_start = temporal_calendar.week_start(data.week_start_date).date()
    if find_plan_for_week(db, current_user.id, week_start):
        raise Conflict("해당 주의 주간 계획이 이미 있습니다.", {"week_start_date": week_start.isoformat()})
    return create_plan_for_week(
        db,
        current_user.id,
        week_start,
        weekly_goals=[goal.model_dump() for goal in data.weekly_goals],
        intentions=data.intentions,
        status=data.status,
    )


def update_plan(db: Session, plan_id: str, data: WeeklyPlanUpdate, current_user: User) -> WeeklyPlan:
    get_plan(db, plan_id, current_user)
    updates = data.model_dump(exclude_unset=True, mode="json")
    updates = {k: v for k, v in updates.items() if v is not None}
    version_service.record_change(
        db,
        entity_type=ENTITY,
        entity_id=plan_id,
        change_type=ChangeType.UPDATE,
        user_id=current_user.id,
        build=version_service.merge_into_current(updates, ENTITY, plan_id),
        description="Updated weekly plan",
    )
    return db.get(WeeklyPlan, plan_id)


def delete_plan(db: Session, plan_id: str, current_user: User) -> None:
    get_plan(db, plan_id, current_user)
    version_service.record_change(
        db,
        entity_type=ENTITY,
        entity_id=plan_id,
        change_type=ChangeType.DELETE,
        user_id=current_user.id,
        build=version_service.remove_current(ENTITY, plan_id),
        description="Deleted weekly plan",
    )


def get_plan_versions(db: Session, plan_id: str, current_user: User) -> List[Dict[str, Any]]:
    ensure_owner(db, ENTITY, plan_id, current_user)
    rows = version_service.get_version_history(db, ENTITY, plan_id)
    return [version_service.to_response(row) for row in rows]


def get_plan_audit_trail(db: Session, plan_id: str, current_user: User, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    ensure_owner(db, ENTITY, plan_id, current_user)
    rows = version_service.get_audit_trail(db, ENTITY, plan_id, limit)
    return [audit_trail.to_response(row) for row in rows]


def diff_plan_versions(
    db: Session, plan_id: str, from_version: int, to_version: int, current_user: User
) -> Dict[str, Dict[str, Any]]:
    ensure_owner(db, ENTITY, plan_id, current_user)
    return version_service.compare_versions(db, ENTITY, plan_id, from_version, to_version)


def tag_plan_version(db: Session, plan_id: str, version: int, tag: str, current_user: User) -> Dict[str, Any]:
    ensure_owner(db, ENTITY, plan_id, current_user)
    return version_service.to_response(version_service.tag_version(db, ENTITY, plan_id, version, tag))


def revert_plan(db: Session, plan_id: str, version: int, current_user: User) -> RevertResult:
    ensure_owner(db, ENTITY, plan_id, current_user)
    store = get_store(ENTITY)
    outcome = version_service.revert_to_version(
        db,
        entity_type=ENTITY,
        entity_id=plan_id,
        target_version=version,
        user_id=current_user.id,
        apply=lambda snapshot: store.upsert(db, plan_id, snapshot),
    )
    return RevertResult(
        message=f"Reverted to version {version}",
        version=outcome.version,
        data=outcome.data,
    )
