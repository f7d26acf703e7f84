"""Request and response bodies for /auth"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")


class IdentityResponse(BaseModel):
    """Public view of an identity; never includes password_hash or ban details."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: Optional[str] = None
    is_admin: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime


class MeResponse(BaseModel):
    identity: IdentityResponse
    role: str
