"""Pydantic schemas for family members.

Rows coming back from the data store are validated here before the rest of
the code sees them.
"""

from datetime import datetime
from typing import Optional

from libs.common.types import RecordId
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class Member(BaseModel):
    """A family member record as stored in ``family_members``."""

    id: RecordId
    user_id: Optional[RecordId] = None
    email: str
    name: str
    avatar_url: Optional[str] = None
    is_admin: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @property
    def first_name(self) -> str:
        return self.name.split(" ")[0] if self.name else ""


class MemberCreate(BaseModel):
    """Pre-registration of a family member by an admin."""

    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    avatar_url: Optional[str] = None
    is_admin: bool = False

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v
