from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.auth.models import Role, User
from agroerp.auth.service import Principal, load_principal
from agroerp.auth.utils import decode_token
from agroerp.config import Settings

security = HTTPBearer()
security_optional = HTTPBearer(auto_error=False)


async def get_db(request: Request) -> AsyncSession:
    async with request.app.state.session_factory() as session:
        yield session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def _resolve_user(db: AsyncSession, raw_token: str, settings: Settings) -> User | None:
    token_data = decode_token(raw_token, settings)
    if token_data is None:
        return None
    result = await db.execute(select(User).where(User.id == token_data.sub))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    user = await _resolve_user(db, credentials.credentials, settings)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return user


async def get_principal(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Principal:
    return await load_principal(db, current_user)


async def get_optional_principal(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security_optional)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Principal | None:
    """Resolve the caller if a valid token was sent; the service decides what to do with None."""
    if credentials is None:
        return None
    user = await _resolve_user(db, credentials.credentials, settings)
    if user is None:
        return None
    return await load_principal(db, user)


def require_role(allowed_roles: list[Role]):
    """Dependency factory that checks if the current user has one of the allowed roles."""

    async def check_role(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return check_role
