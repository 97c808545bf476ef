"""Session authentication dependencies for protecting user and moderator endpoints."""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.errors import ForbiddenError, UnauthorizedError
from app.db.database import get_db
from app.db.models import User, UserRole, UserSession

logger = logging.getLogger(__name__)

settings = get_settings()

# Optional bearer token scheme - won't reject missing tokens,
# allowing the dependency to return a clear 401 instead of 403.
_bearer_scheme = HTTPBearer(auto_error=False)

MODERATOR_ROLES = frozenset({UserRole.MODERATOR.value, UserRole.ADMIN.value})

# (minimum score, label), highest first
TRUST_LEVELS = (
    (201, "Expert"),
    (51, "Trusted"),
    (11, "Contributor"),
    (0, "New User"),
)


def hash_token(token: str) -> str:
    """Digest stored in user_sessions; raw tokens are never persisted."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


async def create_session(db: AsyncSession, user_id: str) -> str:
    """Issue a new bearer token for a user and return it."""
    token = secrets.token_urlsafe(32)
    db.add(UserSession(
        token_hash=hash_token(token),
        user_id=user_id,
        expires_at=datetime.now(timezone.utc) + timedelta(days=settings.session_max_age_days),
    ))
    await db.commit()
    return token


def can_moderate(role: str | None) -> bool:
    return role in MODERATOR_ROLES


def get_trust_level(trust_score: int) -> str:
    for minimum, label in TRUST_LEVELS:
        if trust_score >= minimum:
            return label
    return TRUST_LEVELS[-1][1]


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """
    Resolve the signed-in user from the bearer token, or None.

    Use this on endpoints that behave differently for anonymous visitors
    (e.g. favorite state). Use require_user where a session is mandatory.
    """
    if not credentials:
        return None

    result = await db.execute(
        select(UserSession, User)
        .join(User, UserSession.user_id == User.id)
        .where(UserSession.token_hash == hash_token(credentials.credentials))
    )
    row = result.first()
    if row is None:
        client_ip = request.client.host if request.client else "unknown"
        logger.info(f"Unknown session token from {client_ip}")
        return None

    session, user = row
    expires_at = session.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at <= datetime.now(timezone.utc):
        return None

    return user


async def require_user(user: User | None = Depends(get_current_user)) -> User:
    """
    Dependency that enforces a signed-in user.

    Usage:
        @router.post("/something")
        async def my_endpoint(user: User = Depends(require_user)):
            ...

    The client must send:
        Authorization: Bearer <session token>
    """
    if user is None:
        raise UnauthorizedError("You must be logged in")
    return user


async def require_moderator(user: User = Depends(require_user)) -> User:
    """Dependency that enforces the MODERATOR or ADMIN role."""
    if not can_moderate(user.role):
        logger.warning(f"User {user.id} (role={user.role}) denied moderator access")
        raise ForbiddenError("You do not have permission to moderate clips")
    return user
