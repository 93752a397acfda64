"""Auth Service 도메인 서비스 레이어입니다. 이메일 기반 mock SSO 로그인과 토큰 발급을 담당합니다."""

import logging
from datetime import datetime, timedelta

from fastapi import HTTPException, status
from jose import jwt
from sqlalchemy.orm import Session

from planner.config import settings
from planner.models.user import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def create_access_token(user_id: str) -> str:
    expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def mock_sso_login(db: Session, email: str) -> User:
    normalized = (email or "").strip().lower()
    user = db.query(User).filter(User.email == normalized, User.is_active == True).first()  # noqa: E712
    if not user:
        logger.info("[auth] login rejected for %s", normalized)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"'{normalized}'에 해당하는 활성 사용자를 찾을 수 없습니다.",
        )
    return user
