"""스냅샷 diff 계산을 검증하는 테스트입니다."""

from planner.services import diff_service


def test_diff_of_none_inputs():
    snapshot = {"title": "Plan", "priority": 1}
    assert diff_service.generate_diff(None, snapshot) == {"added": snapshot, "removed": {}, "changed": {}}
    assert diff_service.generate_diff(snapshot, None) == {"added": {}, "removed": snapshot, "changed": {}}
    assert diff_service.generate_diff(None, None) == {"added": {}, "removed": {}, "changed": {}}
    assert diff_service.generate_diff({}, {}) == {"added": {}, "removed": {}, "changed": {}}


def test_diff_reports_added_removed_and_changed_fields():
    diff = diff_service.generate_diff(
        {"title": "Old", "priority": 1, "legacy": True},
        {"title": "New", "priority": 2, "newField": "added"},
    )
    assert diff["changed"]["title"] == {"before": "Old", "after": "New"}
    assert diff["changed"]["priority"] == {"before": 1, "after": 2}
    assert diff["added"] == {"newField": "added"}
    assert diff["removed"] == {"legacy": True}


def test_nested_values_compare_structurally():
    before = {"weekly_goals": [{"id": "g1", "title": "Run", "completed": False}]}
    after = {"weekly_goals": [{"completed": False, "title": "Run", "id": "g1"}]}
    diff = diff_service.generate_diff(before, after)
    assert not diff_service.has_changes(diff)

    after["weekly_goals"][0]["completed"] = True
    diff = diff_service.generate_diff(before, after)
    assert list(diff["changed"]) == ["weekly_goals"]


def test_inverted_diff_equals_swapped_diff():
    before = {"title": "Old", "status": "DRAFT", "gone": 1}
    after = {"title": "New", "status": "DRAFT", "extra": [1, 2]}
    forward = diff_service.generate_diff(before, after)
    assert diff_service.invert_diff(forward) == diff_service.generate_diff(after, before)
