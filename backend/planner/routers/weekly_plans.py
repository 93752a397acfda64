"""Weekly Plan 기능 API 라우터입니다. 요청을 검증하고 서비스 레이어로 비즈니스 로직을 위임합니다."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from planner.database import get_db
from planner.middleware.auth_middleware import get_current_user
from planner.models.user import User
from planner.schemas.version import AuditLogOut, DiffOut, EntityVersionOut, RevertResult, VersionTagRequest
from planner.schemas.weekly_plan import WeeklyPlanCreate, WeeklyPlanOut, WeeklyPlanPage, WeeklyPlanUpdate
from planner.services import temporal_access_service, weekly_plan_service

router = APIRouter(prefix="/api/weekly-plans", tags=["weekly-plans"])


@router.get("", response_model=WeeklyPlanPage)
def list_weekly_plans(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return weekly_plan_service.list_plans(db, current_user, page, limit)


@router.post("", response_model=WeeklyPlanOut, status_code=201)
def create_weekly_plan(
    data: WeeklyPlanCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    plan = weekly_plan_service.create_plan(db, data, current_user)
    return weekly_plan_service.to_full_response(db, plan)


@router.get("/current", response_model=WeeklyPlanOut)
def get_current_week_plan(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    plan = temporal_access_service.get_or_create_weekly_plan(db, current_user.id, date.today(), auto_create=True)
    return weekly_plan_service.to_full_response(db, plan)


@router.get("/date/{target_date}", response_model=WeeklyPlanOut)
def get_week_plan_by_date(
    target_date: str,
    auto_create: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    plan = temporal_access_service.get_or_create_weekly_plan(db, current_user.id, target_date, auto_create)
    if plan is None:
        raise HTTPException(status_code=404, detail="해당 주의 주간 계획이 없습니다.")
    return weekly_plan_service.to_full_response(db, plan)


@router.get("/{plan_id}", response_model=WeeklyPlanOut)
def get_weekly_plan(plan_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    plan = weekly_plan_service.get_plan(db, plan_id, current_user)
    return weekly_plan_service.to_full_response(db, plan)


@router.put("/{plan_id}", response_model=WeeklyPlanOut)
def update_weekly_plan(
    plan_id: str,
    data: WeeklyPlanUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    plan = weekly_plan_service.update_plan(db, plan_id, data, current_user)
    return weekly_plan_service.to_full_response(db, plan)


@router.delete("/{plan_id}")
def delete_weekly_plan(plan_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    weekly_plan_service.delete_plan(db, plan_id, current_user)
    return {"message": "삭제되었습니다."}


@router.get("/{plan_id}/versions", response_model=List[EntityVersionOut])
def list_weekly_plan_versions(
    plan_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return weekly_plan_service.get_plan_versions(db, plan_id, current_user)


@router.post("/{plan_id}/versions/{version}/tags", response_model=EntityVersionOut)
def tag_weekly_plan_version(
    plan_id: str,
    version: int,
    data: VersionTagRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return weekly_plan_service.tag_plan_version(db, plan_id, version, data.tag, current_user)


@router.get("/{plan_id}/audit", response_model=List[AuditLogOut])
def list_weekly_plan_audit(
    plan_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return weekly_plan_service.get_plan_audit_trail(db, plan_id, current_user, limit)


@router.get("/{plan_id}/diff", response_model=DiffOut)
def diff_weekly_plan_versions(
    plan_id: str,
    from_version: int = Query(..., alias="from", ge=1),
    to_version: int = Query(..., alias="to", ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return weekly_plan_service.diff_plan_versions(db, plan_id, from_version, to_version, current_user)


@router.post("/{plan_id}/revert/{version}", response_model=RevertResult)
def revert_weekly_plan(
    plan_id: str,
    version: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return weekly_plan_service.revert_plan(db, plan_id, version, current_user)
