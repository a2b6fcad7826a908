from __future__ import annotations

import logging
from datetime import datetime
from typing import Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.security import create_access_token, verify_password
from app.models.company import Company
from app.models.user import User
from app.schemas.auth import AuthSessionResponse, UserLogin, UserResponse

logger = logging.getLogger(__name__)
settings = get_settings()

DEFAULT_TOKEN_EXPIRY_MINUTES = settings.access_token_expire_minutes
REMEMBER_ME_TOKEN_EXPIRY_MINUTES = 60 * 24 * 30  # 30 days


class AuthService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def authenticate(self, payload: UserLogin) -> Tuple[User, str]:
        result = await self.db.execute(select(User).where(User.email == payload.email.lower()))
        user = result.scalar_one_or_none()

        if not user or not verify_password(payload.password, user.hashed_password):
            logger.warning(f"[AUTH] Invalid credentials for email: {payload.email}")
            raise ValueError("Invalid credentials")
        if not user.is_active:
            logger.warning(f"[AUTH] User disabled: {user.id}")
            raise ValueError("User disabled")

        company = await self.db.get(Company, user.company_id)
        if not company or not company.is_active:
            logger.warning(f"[AUTH] Company missing or inactive for user: {user.id}")
            raise ValueError("Company is not active")

        user.last_login_at = datetime.utcnow()
        await self.db.commit()

        expiry = REMEMBER_ME_TOKEN_EXPIRY_MINUTES if payload.remember_me else DEFAULT_TOKEN_EXPIRY_MINUTES
        access_token = create_access_token(
            {"sub": user.id, "role": user.role, "company_id": user.company_id},
            expires_minutes=expiry,
        )
        logger.info(f"[AUTH] Authentication successful for user: {user.id}")
        return user, access_token

    def build_session(self, user: User, token: str | None = None) -> AuthSessionResponse:
        return AuthSessionResponse(user=UserResponse.model_validate(user), access_token=token)
