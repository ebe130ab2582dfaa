"""
FastAPI Dependencies for Authentication and Authorization.

Key patterns:
1. get_current_user: Extracts and validates JWT, returns User object
2. get_current_actor: Wraps the user as Teacher(id) | Student(id) for the services
3. require_teacher / require_student: role gates, raising ForbiddenError

Security model:
- JWT stored in HttpOnly cookie (recommended) or Authorization header
- The token names the user; the role is always re-read from the database
  so a stale token can never carry a role the account no longer has
- Relationship checks (who may answer a connection, who owns a log)
  happen in the services, not here
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import Cookie, Depends, Header, HTTPException, status
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.config import get_settings
from studyhub.db.models import User
from studyhub.db.session import get_db
from studyhub.services.actors import Actor, Student, Teacher, actor_for
from studyhub.services.errors import ForbiddenError, NotFoundError

settings = get_settings()


# =============================================================================
# JWT UTILITIES
# =============================================================================


def create_access_token(user_id: UUID, role: str | None = None) -> str:
    """
    Create a JWT access token for a user.

    Token payload contains:
    - sub: user_id as string (standard JWT subject claim)
    - role: informational copy for the frontend; never trusted server-side
    - exp: expiration timestamp
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload: dict = {"sub": str(user_id), "exp": expire}
    if role:
        payload["role"] = role
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID | None:
    """Return the user_id of a valid token, None if invalid/expired."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        user_id_str = payload.get("sub")
        if user_id_str is None:
            return None
        return UUID(user_id_str)
    except (JWTError, ValueError):
        return None


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """
    Extract JWT token from request.

    1. HttpOnly cookie named 'access_token' (set by /auth/google)
    2. Authorization header: 'Bearer <token>'
    """
    if access_token:
        return access_token

    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[str, Depends(get_token_from_request)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Validate JWT and return the current authenticated user.

    Raises 401 if the token is missing, invalid or expired, or the user no
    longer exists.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = decode_access_token(token)
    if user_id is None:
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


# Type alias for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


# =============================================================================
# ROLE DEPENDENCIES
# =============================================================================


async def get_current_actor(user: CurrentUser) -> Actor:
    """Role-tagged view of the current user (Teacher(id) or Student(id))."""
    return actor_for(user)


async def require_teacher(actor: Annotated[Actor, Depends(get_current_actor)]) -> Teacher:
    """Gate an endpoint to teacher accounts."""
    if not isinstance(actor, Teacher):
        raise ForbiddenError("Forbidden: teacher role required", code="INSUFFICIENT_ROLE")
    return actor


async def require_student(actor: Annotated[Actor, Depends(get_current_actor)]) -> Student:
    """Gate an endpoint to student accounts."""
    if not isinstance(actor, Student):
        raise ForbiddenError("Forbidden: student role required", code="INSUFFICIENT_ROLE")
    return actor


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
TeacherActor = Annotated[Teacher, Depends(require_teacher)]
StudentActor = Annotated[Student, Depends(require_student)]


# =============================================================================
# QUERY HELPERS (enforce user scoping at query level)
# =============================================================================


async def get_user_resource_or_404(
    db: AsyncSession,
    model: type,
    resource_id: UUID,
    user_id: UUID,
):
    """
    Generic helper to fetch a user-owned resource by ID.

    Usage:
        log = await get_user_resource_or_404(db, StudyLog, log_id, current_user.id)

    This enforces user scoping at the SQL level (WHERE user_id = ...).
    Returns 404 for both missing and not-owned rows.
    """
    result = await db.execute(
        select(model).where(model.id == resource_id, model.user_id == user_id)
    )
    resource = result.scalar_one_or_none()

    if resource is None:
        raise NotFoundError(model.__name__, resource_id, message="Resource not found")

    return resource
