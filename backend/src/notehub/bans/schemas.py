"""Pydantic schemas for ban endpoints"""

from typing import Optional

from pydantic import BaseModel, Field


class BanRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class BanEmailRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    reason: Optional[str] = Field(None, max_length=500)
