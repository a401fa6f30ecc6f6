from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.auth.models import User
from agroerp.auth.schemas import TokenResponse
from agroerp.auth.utils import create_access_token, verify_password
from agroerp.config import Settings
from agroerp.core.exceptions import ValidationError
from agroerp.firms.models import UserFirmAccess


@dataclass(frozen=True)
class Principal:
    """The acting user and the firms they hold non-revoked access to."""

    user_id: uuid.UUID
    firm_ids: frozenset[uuid.UUID] = field(default_factory=frozenset)

    def can_access(self, firm_id: uuid.UUID) -> bool:
        return firm_id in self.firm_ids


async def authenticate_user(
    db: AsyncSession,
    email: str,
    password: str,
    settings: Settings,
) -> TokenResponse:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(password, user.hashed_password):
        raise ValidationError("Invalid email or password.")

    if not user.is_active:
        raise ValidationError("Account is deactivated.")

    access_token = create_access_token(user.id, user.role.value, settings)
    return TokenResponse(access_token=access_token)


async def load_principal(db: AsyncSession, user: User) -> Principal:
    """Build the Principal for *user* from their non-revoked firm access rows."""
    result = await db.execute(
        select(UserFirmAccess.firm_id).where(
            UserFirmAccess.user_id == user.id,
            UserFirmAccess.revoked_at.is_(None),
        )
    )
    return Principal(user_id=user.id, firm_ids=frozenset(result.scalars().all()))
