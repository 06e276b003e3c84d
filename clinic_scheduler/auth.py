"""
Acting identity for API requests.

Tokens are issued by the identity service and signed with SECRET_KEY. This
module only decodes them into an ``Actor``; it holds no session state.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt

from .config import JWT_ALGORITHM, SECRET_KEY
from .domain.scheduling.permissions import Actor
from .domain.scheduling.types import Role

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: str, role: Role, expires_delta: Optional[timedelta] = None, **claims: Any
) -> str:
    """
    Create a signed identity token (used by tests and local tooling)

    Args:
        user_id: Opaque user id, stored in the ``sub`` claim
        role: patient, provider or admin
        expires_delta: Token lifetime (default 60 minutes)
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=60))
    to_encode = {**claims, "sub": str(user_id), "role": Role(role).value, "exp": expire}
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Actor:
    """Decode a token into an Actor; raises 401 on any problem"""
    try:
        payload = jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e

    user_id = payload.get("sub")
    raw_role = payload.get("role")
    if not user_id or not raw_role:
        logger.error(f"❌ Token missing claims. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    try:
        role = Role(str(raw_role).lower())
    except ValueError:
        logger.warning(f"⚠️ Token carries unknown role '{raw_role}'")
        raise HTTPException(status_code=401, detail="Invalid token claims") from None

    return Actor(user_id=str(user_id), role=role)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Actor:
    """Resolve the acting user from the Bearer token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    actor = decode_access_token(credentials.credentials)
    logger.debug(f"✅ Actor authenticated: {actor.user_id} ({actor.role.value})")
    return actor
