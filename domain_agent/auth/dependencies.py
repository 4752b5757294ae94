# domain_agent/auth/dependencies.py
import uuid
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_async_db
from ..error_handlers import UnauthorizedException
from ..users.models import User
from .security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    db: AsyncSession = Depends(get_async_db),
) -> User:
    """Resolve the bearer token to an active user or raise 401"""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException()

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("id"):
        raise UnauthorizedException()

    try:
        user_id = uuid.UUID(str(payload["id"]))
    except ValueError:
        raise UnauthorizedException()

    user = await db.scalar(select(User).where(User.id == user_id))
    if user is None:
        raise UnauthorizedException("No user found with this token")
    if not user.is_active:
        raise UnauthorizedException("Account is deactivated")

    # Picked up by request logging
    request.state.user_id = str(user.id)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
