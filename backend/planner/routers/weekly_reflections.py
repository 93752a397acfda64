from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from planner.database import get_db
from planner.middleware.auth_middleware import get_current_user
from planner.models.user import User
from planner.schemas.weekly_plan import WeeklyReflectionCreate, WeeklyReflectionOut, WeeklyReflectionUpdate
from planner.services import reflection_service

router = APIRouter(prefix="/api/weekly-reflections", tags=["weekly-reflections"])


@router.post("", response_model=WeeklyReflectionOut, status_code=201)
def create_weekly_reflection(
    data: WeeklyReflectionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return reflection_service.create_reflection(db, data, current_user)


@router.get("/{reflection_id}", response_model=WeeklyReflectionOut)
def get_weekly_reflection(
    reflection_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return reflection_service.get_reflection(db, reflection_id, current_user)


@router.put("/{reflection_id}", response_model=WeeklyReflectionOut)
def update_weekly_reflection(
    reflection_id: str,
    data: WeeklyReflectionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return reflection_service.update_reflection(db, reflection_id, data, current_user)


@router.delete("/{reflection_id}")
def delete_weekly_reflection(
    reflection_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    reflection_service.delete_reflection(db, reflection_id, current_user)
    return {"message": "삭제되었습니다."}
