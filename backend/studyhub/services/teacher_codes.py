"""Short join codes students use to find a teacher."""

import secrets
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.config import get_settings
from studyhub.db.models import TeacherProfile
from studyhub.services.errors import ServiceError

settings = get_settings()

CODE_ALPHABET = string.ascii_uppercase + string.digits


def normalize_code(code: str) -> str:
    """Codes are stored upper-case; accept any casing and stray whitespace."""
    return code.strip().upper()


def random_code(length: int | None = None) -> str:
    """Random code such as "XK9M2L"."""
    size = length or settings.teacher_code_length
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(size))


async def generate_unique_code(db: AsyncSession) -> str:
    """
    Draw codes until one is unused.

    Bounded by settings.teacher_code_max_attempts. The unique index on
    teacher_profiles.code still guards against two concurrent sign-ups
    drawing the same free code.
    """
    for _ in range(settings.teacher_code_max_attempts):
        code = random_code()
        result = await db.execute(select(TeacherProfile.id).where(TeacherProfile.code == code))
        if result.scalar_one_or_none() is None:
            return code

    raise ServiceError("Failed to generate unique teacher code", code="TEACHER_CODE_EXHAUSTED")
