# backend/app/auth.py
"""
Bearer token handling.

Tokens are HS256 JWTs whose ``sub`` claim is the caller's profile id. Issuing
tokens belongs to the identity provider; ``create_access_token`` exists for
local tooling and tests.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
import jwt
from jwt import PyJWTError

from .core.config import settings

logger = logging.getLogger(__name__)

bearer_token = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def _signing_key() -> str:
    return settings.secret_key.get_secret_value()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign ``data`` (which should carry ``sub``) with an expiry."""
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, _signing_key(), algorithm=settings.algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry; raises ``jwt.PyJWTError`` otherwise."""
    return jwt.decode(
        token,
        _signing_key(),
        algorithms=[settings.algorithm],
        options={"verify_aud": False},
    )


async def get_current_user(token: Optional[str] = Depends(bearer_token)) -> str:
    """
    Resolve the authenticated profile id.

    Raises:
        HTTPException: 401 when the token is missing, malformed, expired or has no subject
    """
    if not token:
        raise _unauthorized("Not authenticated")
    try:
        payload = decode_access_token(token)
    except PyJWTError as e:
        logger.warning("Rejected bearer token: %s", e)
        raise _unauthorized("Could not validate credentials")

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        logger.warning("Bearer token has no subject")
        raise _unauthorized("Could not validate credentials")
    return user_id
