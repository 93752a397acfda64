"""모델 공용 컬럼 기본값 헬퍼입니다."""

import uuid


def new_id() -> str:
    return uuid.uuid4().hex
