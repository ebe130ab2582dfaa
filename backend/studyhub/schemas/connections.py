"""Connection schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from studyhub.schemas.base import BaseSchema
from studyhub.schemas.user import UserSummary

ConnectionStatusType = Literal["pending", "accepted", "rejected"]
ConnectionActionType = Literal["accept", "reject"]


class ConnectionRequest(BaseSchema):
    """Open a connection with a teacher or student."""

    counterparty: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Account id of the other party, or a teacher join code (students only)",
    )


class ConnectionRespond(BaseSchema):
    """Accept or reject a pending connection."""

    action: str = Field(..., description="accept | reject")


class ConnectionRead(BaseSchema):
    """Connection with both parties' public details."""

    id: UUID
    teacher_id: UUID
    student_id: UUID
    status: ConnectionStatusType
    initiated_by: Literal["teacher", "student"] | None
    created_at: datetime
    responded_at: datetime | None
    teacher: UserSummary
    student: UserSummary
    counterparty: UserSummary | None = None
