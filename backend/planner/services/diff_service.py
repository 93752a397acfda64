"""두 스냅샷 사이의 구조적 차이(added/removed/changed)를 계산합니다."""

import json
from typing import Any, Dict, Optional

Snapshot = Dict[str, Any]


def _canonical(value: Any) -> str:
    # Key order and dict/list identity must not affect equality.
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


def values_equal(left: Any, right: Any) -> bool:
    return _canonical(left) == _canonical(right)


def empty_diff() -> Dict[str, Dict[str, Any]]:
    return {"added": {}, "removed": {}, "changed": {}}


def generate_diff(before: Optional[Snapshot], after: Optional[Snapshot]) -> Dict[str, Dict[str, Any]]:
    if before is None and after is not None:
        return {"added": dict(after), "removed": {}, "changed": {}}
    if after is None and before is not None:
        return {"added": {}, "removed": dict(before), "changed": {}}
    if before is None and after is None:
        return empty_diff()

    diff = empty_diff()
    for key, value in after.items():
        if key not in before:
            diff["added"][key] = value
        elif not values_equal(before[key], value):
            diff["changed"][key] = {"before": before[key], "after": value}
    for key, value in before.items():
        if key not in after:
            diff["removed"][key] = value
    return diff


def invert_diff(diff: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    return {
        "added": dict(diff.get("removed") or {}),
        "removed": dict(diff.get("added") or {}),
        "changed": {
            key: {"before": change["after"], "after": change["before"]}
            for key, change in (diff.get("changed") or {}).items()
        },
    }


def has_changes(diff: Dict[str, Dict[str, Any]]) -> bool:
    return any(diff.get(section) for section in ("added", "removed", "changed"))
