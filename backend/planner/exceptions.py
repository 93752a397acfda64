"""버전 관리/주간 계획 도메인에서 사용하는 오류 분류입니다.

모든 오류는 FastAPI ``HTTPException`` 을 상속하므로 서비스 레이어에서 그대로
raise 하면 라우터가 적절한 상태 코드로 응답합니다. ``code`` 속성은 테스트와
클라이언트가 오류 종류를 구분할 때 사용합니다.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class PlannerError(HTTPException):
    code = "PLANNER_ERROR"
    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=self.status_code_default, detail=detail)
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"


class InvalidDate(PlannerError):
    """날짜/ISO 주차 입력을 해석할 수 없거나 허용 범위를 벗어났습니다."""

    code = "INVALID_DATE"
    status_code_default = status.HTTP_400_BAD_REQUEST


class NotFound(PlannerError):
    code = "NOT_FOUND"
    status_code_default = status.HTTP_404_NOT_FOUND


class Forbidden(PlannerError):
    """엔티티는 존재하지만 요청 사용자의 소유가 아닙니다."""

    code = "FORBIDDEN"
    status_code_default = status.HTTP_403_FORBIDDEN


class Conflict(PlannerError):
    """낙관적 동시성 조건(활성 버전 번호)이 트랜잭션 도중 깨졌습니다."""

    code = "CONFLICT"
    status_code_default = status.HTTP_409_CONFLICT


class StorageError(PlannerError):
    code = "STORAGE_ERROR"
    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE
