import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.db import get_db
from app.core.rbac import Action, Resource, role_has_permission
from app.core.security import decode_access_token
from app.models.user import User
from app.schemas.auth import UserResponse

logger = logging.getLogger(__name__)
settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    db: AsyncSession = Depends(get_db),
) -> User:
    cookie_token = request.cookies.get(settings.auth_cookie_name)
    credentials_token = cookie_token or token
    if not credentials_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing credentials")

    payload = decode_access_token(credentials_token)
    if not payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    result = await db.get(User, user_id)
    if not result:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if not result.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User disabled")
    return result


def build_user_response(user: User) -> UserResponse:
    return UserResponse.model_validate(user)


# =============================================================================
# Permission-based dependencies
# =============================================================================


def require_permission(resource: Resource | str, action: Action | str):
    """
    FastAPI dependency that requires a specific permission.

    Usage:
        @router.post("/quotes/{quote_id}/approve")
        async def approve(user = Depends(require_permission(Resource.QUOTES, Action.APPROVE))):
            ...
    """
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not role_has_permission(current_user.role, resource, action):
            resource_str = resource.value if isinstance(resource, Resource) else resource
            action_str = action.value if isinstance(action, Action) else action
            logger.warning(
                f"Permission denied: user={current_user.email}, "
                f"permission={resource_str}:{action_str}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {resource_str}:{action_str}",
            )

        return current_user

    return dependency
