"""버전 관리 대상 엔티티 종류별 실데이터 테이블 접근(get/upsert/delete)을 제공합니다.

``EntityType`` 은 닫힌 열거형이며 각 값은 ``STORES`` 에 명시적으로 등록된
``DomainStore`` 하나에 대응합니다. 스냅샷은 JSON 직렬화 가능한 dict 이고 항상
``user_id`` 를 포함하므로 삭제된 엔티티도 스냅샷만으로 다시 만들 수 있습니다.
"""

import json
from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence, Type, Union

from sqlalchemy.orm import Session

from planner.database import Base
from planner.models.enums import EntityType
from planner.models.task import Goal, Task
from planner.models.weekly_plan import WeeklyPlan, WeeklyReflection


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


class DomainStore:
    def __init__(
        self,
        model: Type[Base],
        fields: Sequence[str],
        *,
        date_fields: Sequence[str] = (),
        json_fields: Sequence[str] = (),
    ):
        self.model = model
        self.fields = tuple(fields)
        self.date_fields = frozenset(date_fields)
        self.json_fields = frozenset(json_fields)

    def get(self, db: Session, entity_id: str, fresh: bool = False):
        # fresh=True reloads attributes already held in the identity map
        return db.get(self.model, entity_id, populate_existing=fresh)

    def snapshot(self, row) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"user_id": row.user_id}
        for field in self.fields:
            value = getattr(row, field)
            if field in self.date_fields:
                value = value.isoformat() if value else None
            elif field in self.json_fields:
                try:
                    value = json.loads(value) if value else []
                except json.JSONDecodeError:
                    value = []
            payload[field] = value
        return payload

    def upsert(self, db: Session, entity_id: str, data: Dict[str, Any]):
        row = self.get(db, entity_id)
        if row is None:
            row = self.model(id=entity_id)
            db.add(row)
        if "user_id" in data:
            row.user_id = data["user_id"]
        for field in self.fields:
            if field not in data:
                continue
            value = data[field]
            if field in self.date_fields:
                value = _parse_date(value)
            elif field in self.json_fields:
                value = json.dumps(value if value is not None else [], ensure_ascii=False)
            setattr(row, field, value)
        db.flush()
        return row

    def delete(self, db: Session, entity_id: str) -> bool:
        row = self.get(db, entity_id)
        if row is None:
            return False
        db.delete(row)
        db.flush()
        return True


STORES: Dict[EntityType, DomainStore] = {
    EntityType.WEEKLY_PLAN: DomainStore(
        WeeklyPlan,
        ("week_start_date", "weekly_goals", "intentions", "status"),
        date_fields=("week_start_date",),
        json_fields=("weekly_goals",),
    ),
    EntityType.WEEKLY_REFLECTION: DomainStore(
        WeeklyReflection,
        (
            "weekly_plan_id", "week_end_date", "accomplishments", "challenges", "lessons",
            "next_week_goals", "satisfaction_rating", "progress_notes",
        ),
        date_fields=("week_end_date",),
    ),
    EntityType.TASK: DomainStore(
        Task,
        (
            "weekly_plan_id", "title", "description", "status", "priority",
            "due_date", "planned_date", "big_three_rank",
        ),
        date_fields=("due_date", "planned_date"),
    ),
    EntityType.GOAL: DomainStore(
        Goal,
        ("weekly_plan_id", "title", "description", "priority", "completed"),
    ),
}


def get_store(entity_type: Union[EntityType, str]) -> DomainStore:
    return STORES[EntityType(entity_type)]
