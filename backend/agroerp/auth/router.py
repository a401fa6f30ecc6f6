from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.auth.models import User
from agroerp.auth.schemas import PrincipalResponse, UserLogin, UserResponse
from agroerp.auth.service import Principal, authenticate_user
from agroerp.dependencies import get_current_user, get_db, get_principal

router = APIRouter()


@router.post("/login")
async def login(
    credentials: UserLogin,
    db: Annotated[AsyncSession, Depends(get_db)],
    request: Request,
) -> dict:
    tokens = await authenticate_user(
        db, credentials.email, credentials.password, request.app.state.settings
    )
    return {"data": tokens}


@router.get("/me")
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    return {"data": UserResponse.model_validate(current_user)}


@router.get("/me/access")
async def get_my_access(
    principal: Annotated[Principal, Depends(get_principal)],
) -> dict:
    """Return the firms the caller may act on."""
    return {
        "data": PrincipalResponse(
            user_id=principal.user_id,
            firm_ids=sorted(principal.firm_ids, key=str),
        )
    }
