"""Student profile and directory routes."""

from fastapi import APIRouter, Query
from sqlalchemy import and_, func, select
from sqlalchemy.orm import selectinload

from studyhub.api.deps import DbSession, StudentActor, TeacherActor
from studyhub.db.models import Connection, ConnectionStatus, StudentProfile, User, UserRole
from studyhub.schemas.base import total_pages
from studyhub.schemas.profiles import (
    StudentDirectoryEntry,
    StudentDirectoryPage,
    StudentProfileRead,
)
from studyhub.services.errors import NotFoundError

router = APIRouter(prefix="/students", tags=["students"])


@router.get("/profile", response_model=StudentProfileRead)
async def get_student_profile(student: StudentActor, db: DbSession) -> StudentProfileRead:
    """The caller's currently connected teachers."""
    result = await db.execute(
        select(StudentProfile)
        .options(selectinload(StudentProfile.connected_teachers))
        .where(StudentProfile.user_id == student.user_id)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        raise NotFoundError("Student profile", student.user_id)
    return StudentProfileRead.model_validate(profile)


@router.get("", response_model=StudentDirectoryPage)
async def list_students(
    teacher: TeacherActor,
    db: DbSession,
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> StudentDirectoryPage:
    """
    Student directory for teachers looking for someone to invite.

    search matches name or email (case-insensitive substring).
    """
    filters = [User.role == UserRole.STUDENT.value]
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(User.name.ilike(pattern) | User.email.ilike(pattern))

    total = (await db.execute(select(func.count(User.id)).where(*filters))).scalar_one()

    teacher_count = func.count(Connection.id).label("connected_teachers_count")
    result = await db.execute(
        select(User.id, User.name, User.email, User.created_at, teacher_count)
        .outerjoin(
            Connection,
            and_(
                Connection.student_id == User.id,
                Connection.status == ConnectionStatus.ACCEPTED.value,
            ),
        )
        .where(*filters)
        .group_by(User.id, User.name, User.email, User.created_at)
        .order_by(User.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return StudentDirectoryPage(
        students=[
            StudentDirectoryEntry(
                id=row.id,
                name=row.name,
                email=row.email,
                created_at=row.created_at,
                connected_teachers_count=row.connected_teachers_count,
            )
            for row in result
        ],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )
