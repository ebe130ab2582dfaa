"""User schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import EmailStr, Field

from studyhub.schemas.base import BaseSchema

UserRoleType = Literal["teacher", "student"]


class UserCreate(BaseSchema):
    """Schema for creating a user (internal use - users created via OAuth)."""

    email: EmailStr | None = None
    name: str = Field(..., min_length=1, max_length=255)
    role: UserRoleType


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: UUID
    email: str | None
    name: str
    role: UserRoleType
    created_at: datetime
    updated_at: datetime


class UserSummary(BaseSchema):
    """Public name/email shown on the other side of a connection or task."""

    id: UUID
    name: str
    email: str | None
