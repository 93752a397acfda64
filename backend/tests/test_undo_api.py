"""Undo API 응답 형식과 사용자 범위를 검증하는 테스트입니다."""

from tests.conftest import auth_headers


def _create(client, headers, week="2025-01-15"):
    resp = client.post("/api/weekly-plans", json={"week_start_date": week, "intentions": "first"}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_undo_without_actions_returns_nothing_to_undo(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    resp = client.post("/api/undo", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert resp.json()["reason"] == "nothing_to_undo"


def test_undo_endpoint_flow(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    plan = _create(client, headers)
    client.put(f"/api/weekly-plans/{plan['id']}", json={"intentions": "second"}, headers=headers)

    resp = client.post("/api/undo", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Update undone - reverted to previous state"
    assert client.get(f"/api/weekly-plans/{plan['id']}", headers=headers).json()["intentions"] == "first"

    history = client.get("/api/undo?limit=5", headers=headers).json()
    assert history[0]["description"] == "Undo: Updated weekly plan"
    assert history[0]["can_undo"] is False
    assert history[1]["is_undone"] is True

    stats = client.get("/api/undo/stats", headers=headers).json()
    assert stats["total_actions"] == 3
    assert stats["undoable_actions"] == 1

    actions = client.get("/api/undo/actions?entity_type=WEEKLY_PLAN", headers=headers).json()
    assert actions["total"] == 3


def test_undo_specific_action_permissions(client, seed_users):
    alice = auth_headers(client, "alice@example.com")
    bob = auth_headers(client, "bob@example.com")
    plan = _create(client, alice)
    entry_id = client.get(f"/api/weekly-plans/{plan['id']}/audit", headers=alice).json()[0]["id"]

    assert client.post(f"/api/undo/{entry_id}", headers=bob).status_code == 403
    assert client.post("/api/undo/unknown-entry", headers=alice).status_code == 404
    assert client.post(f"/api/undo/{entry_id}", headers=alice).status_code == 200
    assert client.get(f"/api/weekly-plans/{plan['id']}", headers=alice).status_code == 404


def test_history_limit_is_clamped(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    for week in ("2025-01-06", "2025-01-13", "2025-01-20"):
        _create(client, headers, week)
    assert len(client.get("/api/undo?limit=2", headers=headers).json()) == 2
    assert len(client.get("/api/undo?limit=0", headers=headers).json()) == 3
