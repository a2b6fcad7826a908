from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.api import deps
from app.core.db import get_db
from app.core.config import get_settings
from app.schemas.auth import AuthSessionResponse, UserLogin, UserResponse
from app.services.auth import AuthService, DEFAULT_TOKEN_EXPIRY_MINUTES, REMEMBER_ME_TOKEN_EXPIRY_MINUTES
from app.middleware.security import limiter

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


def set_auth_cookie(response: Response, token: str, remember_me: bool = False) -> None:
    """Set auth cookie with appropriate expiry based on remember_me."""
    max_age = (
        REMEMBER_ME_TOKEN_EXPIRY_MINUTES * 60 if remember_me
        else DEFAULT_TOKEN_EXPIRY_MINUTES * 60
    )
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.environment != "development",
        samesite="lax",
        max_age=max_age,
        path="/",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(settings.auth_cookie_name, path="/")


@router.post("/login", response_model=AuthSessionResponse)
@limiter.limit(settings.login_rate_limit)
async def login(
    request: Request,
    payload: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db)
) -> AuthSessionResponse:
    """
    Authenticate user and return session.

    Rate limited per client IP to slow down brute force attempts.
    """
    service = AuthService(db)
    try:
        user, token = await service.authenticate(payload)
    except ValueError as exc:
        logger.warning(f"Login failed for email {payload.email}: {str(exc)}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))

    set_auth_cookie(response, token, remember_me=payload.remember_me)
    return service.build_session(user, token=token)


@router.post("/logout")
async def logout(response: Response, current_user=Depends(deps.get_current_user)) -> dict:
    clear_auth_cookie(response)
    logger.info(f"User logged out: {current_user.id}")
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user=Depends(deps.get_current_user)) -> UserResponse:
    return deps.build_user_response(current_user)
