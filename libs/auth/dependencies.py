from datetime import datetime, timezone
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import AuthUser
from libs.common.config import get_settings

settings = get_settings()
security = HTTPBearer()


async def get_current_user(
    request: Request,
    token: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> AuthUser:
    """
    Validate a Supabase JWT (HS256) and return the authenticated user.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token.credentials,
            settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            options={"verify_aud": False},
        )
        user = AuthUser(**payload)
    except (JWTError, ValidationError):
        raise credentials_exception

    # Rate limiting keys on the user when one is known
    request.state.user = user
    return user


async def require_admin(
    current_user: Annotated[AuthUser, Depends(get_current_user)],
) -> AuthUser:
    """Allow service-role tokens and users whose app_metadata marks them admin."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


async def require_service_role(
    current_user: Annotated[AuthUser, Depends(get_current_user)],
) -> AuthUser:
    """Internal endpoints (cron hooks, courier callbacks) accept only service tokens."""
    if current_user.role != "service_role":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Service role required",
        )
    return current_user


def service_role_jwt(service_name: str, ttl_seconds: int = 60) -> str:
    """Mint a short-lived service-role token for internal calls."""
    now = int(datetime.now(tz=timezone.utc).timestamp())
    payload = {
        "sub": f"service:{service_name}",
        "email": settings.ADMIN_EMAIL,
        "role": "service_role",
        "iat": now,
        "exp": now + ttl_seconds,
    }
    return jwt.encode(payload, settings.SUPABASE_JWT_SECRET, algorithm="HS256")
