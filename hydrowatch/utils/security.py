"""
Security utilities: password hashing, bearer tokens, reset tokens and the
request-gating dependencies used by the routers.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from fastapi import Header, Request
from jose import JWTError, jwt
from passlib.context import CryptContext

from hydrowatch.core.errors import AuthenticationError, PermissionDeniedError
from hydrowatch.core.settings import settings
from hydrowatch.utils.concurrency import run_sync

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Constant-work check; an empty hash still burns a bcrypt round."""
    if not password_hash:
        pwd_context.dummy_verify()
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        logger.warning("Stored password hash could not be parsed")
        return False


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + (expires_delta or timedelta(hours=settings.JWT_EXPIRE_HOURS)),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Verify a bearer token and return the user id it is bound to.

    Raises:
        AuthenticationError: token is malformed, expired or carries no subject
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise AuthenticationError("Token is not valid")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Token is not valid")
    return user_id


def generate_reset_token() -> str:
    return secrets.token_hex(20)


def hash_reset_token(token: str) -> str:
    # Only the digest is stored, so a leaked users collection cannot reset passwords
    return hashlib.sha256(token.encode()).hexdigest()


def _extract_bearer(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("No token, authorization denied")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Token is not valid")
    return token.strip()


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None, description="Bearer <token>"),
) -> Dict:
    """
    FastAPI dependency: resolve the caller from the Authorization header.

    The resolved user is also attached to request.state.user for handlers
    that only receive the request.
    """
    from hydrowatch.services.user_service import get_user_service

    token = _extract_bearer(authorization)
    user_id = decode_access_token(token)

    user = await run_sync(get_user_service().get_user_by_id, user_id)
    if not user:
        raise AuthenticationError("Token is not valid")

    request.state.user = user
    return user


async def require_admin(
    request: Request,
    authorization: Optional[str] = Header(None, description="Bearer <token>"),
) -> Dict:
    """FastAPI dependency: like get_current_user, but only for administrators."""
    user = await get_current_user(request, authorization)
    if user.get("role") != "admin":
        raise PermissionDeniedError("Administrator access required")
    return user
