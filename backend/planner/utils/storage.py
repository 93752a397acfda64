"""저장소 예외를 도메인 ``StorageError`` 로 변환하는 공용 헬퍼입니다."""

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from planner.exceptions import StorageError

logger = logging.getLogger(__name__)


@contextmanager
def storage_guard(operation: str):
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("[storage] %s failed", operation)
        raise StorageError("저장소 처리 중 오류가 발생했습니다.", {"operation": operation}) from exc


def dump_snapshot(data: Optional[Dict[str, Any]]) -> Optional[str]:
    if data is None:
        return None
    return json.dumps(data, ensure_ascii=False, default=str)


def parse_snapshot(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}
