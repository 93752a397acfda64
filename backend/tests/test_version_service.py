"""버전 기록/되돌리기 트랜잭션의 불변식과 충돌 재시도를 검증하는 테스트입니다."""

import json
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from planner.config import settings
from planner.exceptions import Conflict, NotFound, StorageError
from planner.models.entity_version import AuditLog, EntityVersion
from planner.models.enums import ChangeType, EntityType, WeeklyPlanStatus
from planner.models.user import User
from planner.models.weekly_plan import WeeklyPlan
from planner.schemas.weekly_plan import WeeklyPlanCreate, WeeklyPlanUpdate
from planner.services import version_service, weekly_plan_service
from planner.services.domain_store import get_store
from tests.conftest import TestingSession


def _plan_data(user_id, intentions="focus"):
    return {
        "user_id": user_id,
        "week_start_date": "2025-01-13",
        "weekly_goals": [],
        "intentions": intentions,
        "status": "DRAFT",
    }


def _record(db, user_id, change_type, before, after, entity_id="plan-1"):
    store = get_store(EntityType.WEEKLY_PLAN)
    if change_type == ChangeType.DELETE:
        apply = lambda: store.delete(db, entity_id)  # noqa: E731
    else:
        apply = lambda: store.upsert(db, entity_id, after)  # noqa: E731
    return version_service.record_version(
        db,
        entity_type=EntityType.WEEKLY_PLAN,
        entity_id=entity_id,
        change_type=change_type,
        before=before,
        after=after,
        user_id=user_id,
        apply=apply,
    )


def _active_count(db, entity_id="plan-1"):
    return (
        db.query(EntityVersion)
        .filter(EntityVersion.entity_id == entity_id, EntityVersion.is_active == True)  # noqa: E712
        .count()
    )


def test_versions_are_sequential_with_single_active(db, seed_users):
    uid = seed_users["alice"].id
    v1 = _plan_data(uid, "one")
    v2 = _plan_data(uid, "two")
    v3 = _plan_data(uid, "three")

    assert _record(db, uid, ChangeType.CREATE, None, v1) == 1
    assert _active_count(db) == 1
    assert _record(db, uid, ChangeType.UPDATE, v1, v2) == 2
    assert _active_count(db) == 1
    assert _record(db, uid, ChangeType.UPDATE, v2, v3) == 3
    assert _active_count(db) == 1

    history = version_service.get_version_history(db, EntityType.WEEKLY_PLAN, "plan-1")
    assert [row.version for row in history] == [3, 2, 1]
    assert version_service.get_active_version(db, EntityType.WEEKLY_PLAN, "plan-1").version == 3
    assert db.get(WeeklyPlan, "plan-1").intentions == "three"

    audit = db.query(AuditLog).order_by(AuditLog.version.asc()).all()
    assert [entry.version for entry in audit] == [1, 2, 3]
    assert [entry.parent_version for entry in audit] == [None, 1, 2]
    assert audit[0].before_data is None


def test_delete_keeps_last_state_and_leaves_no_active_version(db, seed_users):
    uid = seed_users["alice"].id
    data = _plan_data(uid)
    _record(db, uid, ChangeType.CREATE, None, data)
    assert _record(db, uid, ChangeType.DELETE, data, None) == 2

    assert db.get(WeeklyPlan, "plan-1") is None
    assert _active_count(db) == 0
    assert version_service.get_active_version(db, EntityType.WEEKLY_PLAN, "plan-1") is None
    deleted = version_service.get_version(db, EntityType.WEEKLY_PLAN, "plan-1", 2)
    assert deleted.change_type == "DELETE"
    assert deleted.is_active is False
    assert deleted.version_data is not None
    assert version_service.get_current_snapshot(db, EntityType.WEEKLY_PLAN, "plan-1") is None
    entry = db.query(AuditLog).filter(AuditLog.version == 2).one()
    assert entry.after_data is None
    assert entry.before_data is not None


def test_revert_is_append_only(db, seed_users):
    uid = seed_users["alice"].id
    v1 = _plan_data(uid, "one")
    v2 = _plan_data(uid, "two")
    _record(db, uid, ChangeType.CREATE, None, v1)
    _record(db, uid, ChangeType.UPDATE, v1, v2)
    before_history = version_service.get_version_history(db, EntityType.WEEKLY_PLAN, "plan-1")
    before_rows = {(row.version, row.version_data) for row in before_history}

    store = get_store(EntityType.WEEKLY_PLAN)
    outcome = version_service.revert_to_version(
        db,
        entity_type=EntityType.WEEKLY_PLAN,
        entity_id="plan-1",
        target_version=1,
        user_id=uid,
        apply=lambda snapshot: store.upsert(db, "plan-1", snapshot),
    )

    history = version_service.get_version_history(db, EntityType.WEEKLY_PLAN, "plan-1")
    assert len(history) == len(before_history) + 1
    assert before_rows <= {(row.version, row.version_data) for row in history}
    newest = history[0]
    assert newest.version == outcome.version == 3
    assert newest.change_type == "RESTORE"
    assert version_service.compare_versions(db, EntityType.WEEKLY_PLAN, "plan-1", 1, 3) == {
        "added": {}, "removed": {}, "changed": {},
    }
    assert outcome.previous_data["intentions"] == "two"
    db.expire_all()
    assert db.get(WeeklyPlan, "plan-1").intentions == "one"
    entry = version_service.get_audit_trail(db, EntityType.WEEKLY_PLAN, "plan-1")[0]
    assert entry.change_description == "Reverted to version 1"


def test_revert_to_missing_version_raises_not_found(db, seed_users):
    uid = seed_users["alice"].id
    _record(db, uid, ChangeType.CREATE, None, _plan_data(uid))
    with pytest.raises(NotFound):
        version_service.revert_to_version(
            db, entity_type=EntityType.WEEKLY_PLAN, entity_id="plan-1", target_version=9, user_id=uid
        )
    assert len(version_service.get_version_history(db, EntityType.WEEKLY_PLAN, "plan-1")) == 1


def test_conflict_is_retried_then_succeeds(db, seed_users, monkeypatch):
    uid = seed_users["alice"].id
    real_write = version_service._write_version
    calls = {"count": 0}

    def flaky_write(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] <= 2:
            raise Conflict("simulated")
        return real_write(*args, **kwargs)

    monkeypatch.setattr(version_service, "_write_version", flaky_write)
    assert _record(db, uid, ChangeType.CREATE, None, _plan_data(uid)) == 1
    assert calls["count"] == 3
    assert _active_count(db) == 1
    assert db.query(AuditLog).count() == 1


def test_conflict_surfaces_after_bounded_retries(db, seed_users, monkeypatch):
    uid = seed_users["alice"].id
    monkeypatch.setattr(settings, "VERSION_CONFLICT_MAX_RETRIES", 2)
    calls = {"count": 0}

    def always_conflict(*args, **kwargs):
        calls["count"] += 1
        raise Conflict("simulated")

    monkeypatch.setattr(version_service, "_write_version", always_conflict)
    with pytest.raises(Conflict):
        _record(db, uid, ChangeType.CREATE, None, _plan_data(uid))
    assert calls["count"] == 3


def test_stale_expected_version_raises_conflict(db, seed_users):
    uid = seed_users["alice"].id
    data = _plan_data(uid)
    _record(db, uid, ChangeType.CREATE, None, data)
    with pytest.raises(Conflict) as exc:
        version_service.record_version(
            db,
            entity_type=EntityType.WEEKLY_PLAN,
            entity_id="plan-1",
            change_type=ChangeType.UPDATE,
            before=data,
            after=_plan_data(uid, "late"),
            user_id=uid,
            expected_version=5,
        )
    assert exc.value.status_code == 409
    assert len(version_service.get_version_history(db, EntityType.WEEKLY_PLAN, "plan-1")) == 1


def test_storage_failure_rolls_back_version_audit_and_live_row(db, seed_users):
    uid = seed_users["alice"].id
    store = get_store(EntityType.WEEKLY_PLAN)
    data = _plan_data(uid)

    def failing_apply():
        store.upsert(db, "plan-1", data)
        raise OperationalError("UPDATE weekly_plans", {}, Exception("disk full"))

    with pytest.raises(StorageError) as exc:
        version_service.record_version(
            db,
            entity_type=EntityType.WEEKLY_PLAN,
            entity_id="plan-1",
            change_type=ChangeType.CREATE,
            before=None,
            after=data,
            user_id=uid,
            apply=failing_apply,
        )
    assert exc.value.status_code == 503
    assert db.query(EntityVersion).count() == 0
    assert db.query(AuditLog).count() == 0
    assert db.get(WeeklyPlan, "plan-1") is None


def test_invalid_payload_is_rejected(db, seed_users):
    uid = seed_users["alice"].id
    with pytest.raises(ValueError):
        version_service.record_version(
            db,
            entity_type=EntityType.WEEKLY_PLAN,
            entity_id="plan-1",
            change_type=ChangeType.UPDATE,
            before=None,
            after=None,
            user_id=uid,
        )


def test_tag_version(db, seed_users):
    uid = seed_users["alice"].id
    _record(db, uid, ChangeType.CREATE, None, _plan_data(uid))
    version_service.tag_version(db, EntityType.WEEKLY_PLAN, "plan-1", 1, "baseline")
    row = version_service.tag_version(db, EntityType.WEEKLY_PLAN, "plan-1", 1, "baseline")
    assert version_service.parse_tags(row) == ["baseline"]
    with pytest.raises(NotFound):
        version_service.tag_version(db, EntityType.WEEKLY_PLAN, "plan-1", 2, "missing")


def test_update_builds_on_changes_committed_by_another_session(db, seed_users):
    alice = seed_users["alice"]
    plan = weekly_plan_service.create_plan(
        db, WeeklyPlanCreate(week_start_date=date(2025, 1, 13), intentions="start"), alice
    )
    plan_id = plan.id
    assert plan.status == "DRAFT"

    other = TestingSession()
    try:
        other_alice = other.get(User, alice.id)
        weekly_plan_service.update_plan(
            other, plan_id, WeeklyPlanUpdate(status=WeeklyPlanStatus.ACTIVE), other_alice
        )
    finally:
        other.close()

    weekly_plan_service.update_plan(db, plan_id, WeeklyPlanUpdate(intentions="A"), alice)

    entry = db.query(AuditLog).filter(AuditLog.entity_id == plan_id, AuditLog.version == 3).one()
    before = json.loads(entry.before_data)
    after = json.loads(entry.after_data)
    assert before["status"] == "ACTIVE"
    assert before["intentions"] == "start"
    assert after["status"] == "ACTIVE"
    assert after["intentions"] == "A"

    db.expire_all()
    live = get_store(EntityType.WEEKLY_PLAN).snapshot(db.get(WeeklyPlan, plan_id))
    active = version_service.get_active_version(db, EntityType.WEEKLY_PLAN, plan_id)
    assert active.version == 3
    assert json.loads(active.version_data) == live


def test_record_change_on_missing_entity_raises_not_found(db, seed_users):
    uid = seed_users["alice"].id
    with pytest.raises(NotFound):
        version_service.record_change(
            db,
            entity_type=EntityType.WEEKLY_PLAN,
            entity_id="plan-1",
            change_type=ChangeType.UPDATE,
            user_id=uid,
            build=version_service.merge_into_current({"intentions": "late"}, EntityType.WEEKLY_PLAN, "plan-1"),
        )
    assert db.query(EntityVersion).count() == 0
    assert db.query(AuditLog).count() == 0


def test_record_change_retries_with_fresh_state_on_conflict(db, seed_users, monkeypatch):
    uid = seed_users["alice"].id
    _record(db, uid, ChangeType.CREATE, None, _plan_data(uid, "one"))
    real_write = version_service._write_version
    raced = {"done": False}

    def flaky_write(*args, **kwargs):
        if not raced["done"]:
            raced["done"] = True
            # another writer lands between the read and the version write
            db.rollback()
            _record(db, uid, ChangeType.UPDATE, _plan_data(uid, "one"), _plan_data(uid, "two"))
            raise Conflict("simulated")
        return real_write(*args, **kwargs)

    monkeypatch.setattr(version_service, "_write_version", flaky_write)
    outcome = version_service.record_change(
        db,
        entity_type=EntityType.WEEKLY_PLAN,
        entity_id="plan-1",
        change_type=ChangeType.UPDATE,
        user_id=uid,
        build=version_service.merge_into_current({"status": "ACTIVE"}, EntityType.WEEKLY_PLAN, "plan-1"),
    )
    assert raced["done"] is True
    assert outcome.version == 3
    assert outcome.before["intentions"] == "two"
    assert outcome.after == {**_plan_data(uid, "two"), "status": "ACTIVE"}
    assert _active_count(db) == 1
