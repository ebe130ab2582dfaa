"""
Authentication Routes

Endpoints:
- POST /auth/google - Exchange Google id_token for session
- POST /auth/logout - Clear session
- GET /auth/me - Get current user profile

Auth Flow:
1. Frontend performs Google OAuth flow and receives an id_token
2. Frontend POSTs id_token (plus the chosen role on first sign-in) to /auth/google
3. Backend verifies id_token with Google's public keys
4. Backend upserts user + auth_identity, creating the teacher or student profile
5. Backend returns JWT (in cookie and response body)

Security:
- id_token is verified using Google's public keys (fetched by google-auth)
- A role is fixed when the account is created; later logins ignore `role`
- JWT is HttpOnly cookie + response body (client chooses how to use)
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Response, status
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyhub.api.deps import CurrentUser, DbSession, create_access_token
from studyhub.config import get_settings
from studyhub.db.models import AuthIdentity, StudentProfile, TeacherProfile, User, UserRole
from studyhub.schemas.auth import GoogleAuthRequest, TokenResponse
from studyhub.schemas.user import UserRead
from studyhub.services.errors import UnprocessableError
from studyhub.services.teacher_codes import generate_unique_code

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


def verify_google_token(token: str) -> dict:
    """
    Verify a Google id_token and return its claims.

    Checks signature, expiry, audience and issuer. Raises ValueError when
    any of them fail.
    """
    idinfo = google_id_token.verify_oauth2_token(
        token,
        google_requests.Request(),
        settings.google_client_id,
    )
    if idinfo.get("iss") not in ["accounts.google.com", "https://accounts.google.com"]:
        raise ValueError("Invalid issuer")
    return idinfo


async def create_account(
    db: AsyncSession,
    email: str | None,
    name: str,
    role: str,
) -> User:
    """Create a user with the profile row matching its role."""
    user = User(email=email, name=name, role=role)
    db.add(user)
    await db.flush()  # Get user.id

    if role == UserRole.TEACHER.value:
        db.add(TeacherProfile(user_id=user.id, code=await generate_unique_code(db)))
    else:
        db.add(StudentProfile(user_id=user.id))

    logger.info("Created %s account %s", role, user.id)
    return user


@router.post("/google", response_model=TokenResponse)
async def google_login(
    request: GoogleAuthRequest,
    response: Response,
    db: DbSession,
) -> TokenResponse:
    """
    Exchange Google id_token for a session JWT.

    Flow:
    1. Verify id_token with Google's public keys
    2. Find auth_identity by (provider='google', provider_user_id=sub)
    3. Otherwise link by verified email, or create the account with `role`
    4. Return JWT
    """
    try:
        idinfo = verify_google_token(request.id_token)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid Google id_token: {e}",
        )

    provider_user_id = idinfo["sub"]
    email = idinfo.get("email")
    name = idinfo.get("name", email or "Unknown User")

    # Unverified emails could allow account hijacking
    if email and not idinfo.get("email_verified", False):
        email = None

    result = await db.execute(
        select(AuthIdentity)
        .options(selectinload(AuthIdentity.user))
        .where(
            AuthIdentity.provider == "google",
            AuthIdentity.provider_user_id == provider_user_id,
        )
    )
    auth_identity = result.scalar_one_or_none()

    if auth_identity:
        auth_identity.last_login_at = datetime.now(timezone.utc)
        if email:
            auth_identity.email = email
        user = auth_identity.user
    else:
        user = None
        if email:
            result = await db.execute(select(User).where(User.email == email.lower()))
            user = result.scalar_one_or_none()

        if user is None:
            if request.role is None:
                raise UnprocessableError(
                    "role is required the first time an account signs in",
                    code="ROLE_REQUIRED",
                )
            user = await create_account(
                db,
                email=email.lower() if email else None,
                name=name,
                role=request.role,
            )

        db.add(
            AuthIdentity(
                user_id=user.id,
                provider="google",
                provider_user_id=provider_user_id,
                email=email,
            )
        )

    await db.commit()

    access_token = create_access_token(user.id, user.role)
    expires_in = settings.jwt_expire_minutes * 60

    # For cross-domain deployments use samesite="none" + secure=True
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        secure=settings.cookie_cross_domain or settings.environment != "development",
        samesite="none" if settings.cookie_cross_domain else "lax",
        max_age=expires_in,
    )

    return TokenResponse(
        access_token=access_token,
        expires_in=expires_in,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """
    Clear the authentication session.

    Only clears the cookie; a JWT stored elsewhere stays valid until expiry.
    """
    response.delete_cookie(
        key="access_token",
        httponly=True,
        secure=settings.cookie_cross_domain or settings.environment != "development",
        samesite="none" if settings.cookie_cross_domain else "lax",
    )


@router.get("/me", response_model=UserRead)
async def get_me(current_user: CurrentUser) -> UserRead:
    """Get the current authenticated user's profile."""
    return UserRead.model_validate(current_user)
