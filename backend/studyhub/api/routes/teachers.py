"""Teacher profile and directory routes."""

from fastapi import APIRouter
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from studyhub.api.deps import CurrentUser, DbSession, TeacherActor
from studyhub.db.models import TeacherProfile, User
from studyhub.schemas.profiles import TeacherDirectoryEntry, TeacherProfileRead
from studyhub.services.errors import NotFoundError

router = APIRouter(prefix="/teachers", tags=["teachers"])


@router.get("/profile", response_model=TeacherProfileRead)
async def get_teacher_profile(teacher: TeacherActor, db: DbSession) -> TeacherProfileRead:
    """The caller's join code and currently connected students."""
    result = await db.execute(
        select(TeacherProfile)
        .options(selectinload(TeacherProfile.connected_students))
        .where(TeacherProfile.user_id == teacher.user_id)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        raise NotFoundError("Teacher profile", teacher.user_id)
    return TeacherProfileRead.model_validate(profile)


@router.get("", response_model=list[TeacherDirectoryEntry])
async def list_teachers(current_user: CurrentUser, db: DbSession) -> list[TeacherDirectoryEntry]:
    """All teachers with their join codes, by name."""
    result = await db.execute(
        select(User.id, User.name, User.email, TeacherProfile.code)
        .join(TeacherProfile, TeacherProfile.user_id == User.id)
        .order_by(User.name)
    )
    return [
        TeacherDirectoryEntry(user_id=row.id, name=row.name, email=row.email, code=row.code)
        for row in result
    ]
