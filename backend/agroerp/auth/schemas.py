
import uuid
from datetime import datetime

from pydantic import BaseModel

from agroerp.auth.models import Role


class UserLogin(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str
    role: Role
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PrincipalResponse(BaseModel):
    user_id: uuid.UUID
    firm_ids: list[uuid.UUID]
