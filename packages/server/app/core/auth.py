"""
Authentication and household scoping.

Session tokens are issued by the external auth service; this server only
verifies them:
- Bearer JWT (HS256, shared secret), ``sub`` is the user id
- Household scoping: the user must be a member of the household in the path
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_session
from app.services.membership import SqlMembershipChecker

log = structlog.get_logger()
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)

DEFAULT_TOKEN_TTL = timedelta(hours=12)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed session token for ``user_id``."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + (expires_delta or DEFAULT_TOKEN_TTL),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

class AuthenticatedUser:
    """Container for an authenticated user + their household context."""

    def __init__(self, user_id: uuid.UUID, household_id: uuid.UUID):
        self.user_id = user_id
        self.household_id = household_id


def _user_id_from_credentials(
    credentials: Optional[HTTPAuthorizationCredentials],
) -> uuid.UUID:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = decode_jwt(credentials.credentials)
        return uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired session")


async def require_member(
    household_id: uuid.UUID,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> AuthenticatedUser:
    """Require an authenticated user who belongs to the household in the path."""
    user_id = _user_id_from_credentials(credentials)

    checker = SqlMembershipChecker(session)
    if not await checker.is_user_in_household(user_id, household_id):
        log.info("auth.household_denied", user_id=str(user_id), household_id=str(household_id))
        raise HTTPException(status_code=403, detail="Not a member of this household")

    return AuthenticatedUser(user_id=user_id, household_id=household_id)
