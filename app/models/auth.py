from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.core.rbac import Role


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class TokenData(BaseModel):
    sub: str
    email: str
    role: Role


class UserPublic(BaseModel):
    user_id: str
    username: str
    email: str
    display_name: str
    role: Role
    team_id: Optional[str] = None
