"""
Auth Service - signup, login and password reset.

Passwords are stored as bcrypt hashes only. Unknown email and wrong
password raise the same InvalidCredentialsError so callers cannot tell
which one failed.
"""

import logging
from datetime import timedelta
from typing import Dict, Optional, Tuple

from hydrowatch.core.errors import ConflictError, InvalidCredentialsError, NotFoundError, ValidationFailedError
from hydrowatch.core.settings import settings
from hydrowatch.services.mail_service import get_mail_service
from hydrowatch.services.user_service import get_user_service
from hydrowatch.utils.firestore_helpers import parse_timestamp, utcnow
from hydrowatch.utils.security import (
    create_access_token,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)

logger = logging.getLogger(__name__)


class AuthService:

    def __init__(self):
        self.users = get_user_service()
        self.mail = get_mail_service()

    def signup(self, name: str, email: str, password: str) -> Tuple[Dict, str]:
        """
        Create a citizen account and issue its first bearer token.

        Raises:
            ConflictError: an account with this email already exists
        """
        if self.users.get_user_by_email(email):
            logger.warning(f"Signup rejected - email already registered: {email}")
            raise ConflictError("User already exists")

        user = self.users.create_user(name=name, email=email, password_hash=hash_password(password))
        return user, create_access_token(user["id"])

    def login(self, email: str, password: str) -> Tuple[Dict, str]:
        user = self.users.get_user_by_email(email)

        # Verify even when the user is missing so both failures cost the same
        password_ok = verify_password(password, user.get("password_hash") if user else None)
        if not user or not password_ok:
            logger.warning(f"Login failed: email={email}")
            raise InvalidCredentialsError()

        logger.info(f"Login successful: user_id={user['id']}")
        return user, create_access_token(user["id"])

    def request_password_reset(self, email: str) -> None:
        """
        Issue a single-use reset token and mail it to the account owner.

        Raises:
            NotFoundError: no account uses this email
        """
        user = self.users.get_user_by_email(email)
        if not user:
            raise NotFoundError("User not found")

        token = generate_reset_token()
        expires_minutes = settings.RESET_TOKEN_EXPIRE_MINUTES
        self.users.update_user(user["id"], {
            "reset_password_token_hash": hash_reset_token(token),
            "reset_password_expires": utcnow() + timedelta(minutes=expires_minutes),
        })
        self.mail.send_password_reset(user["email"], token, expires_minutes)
        logger.info(f"Password reset requested: user_id={user['id']}")

    def reset_password(self, token: str, new_password: str) -> None:
        """
        Replace the password of the account owning an unexpired reset token.

        Raises:
            ValidationFailedError: token unknown, already used, or expired
        """
        user = self.users.get_user_by_field("reset_password_token_hash", hash_reset_token(token))
        expires = parse_timestamp(user.get("reset_password_expires")) if user else None
        if not user or expires is None or expires <= utcnow():
            raise ValidationFailedError.single("token", "Invalid or expired reset token")

        self.users.update_user(user["id"], {
            "password_hash": hash_password(new_password),
            "reset_password_token_hash": None,
            "reset_password_expires": None,
        })
        logger.info(f"Password reset completed: user_id={user['id']}")

    def update_profile(self, user_id: str, name: str) -> Dict:
        return self.users.update_user(user_id, {"name": name.strip()})

    def ensure_admin(self, email: str, password: str, name: str = "Administrator") -> Dict:
        """Create the bootstrap administrator, or promote an existing account."""
        existing = self.users.get_user_by_email(email)
        if existing:
            if existing.get("role") != "admin":
                logger.info(f"Promoting existing user to admin: {existing['id']}")
                return self.users.update_user(existing["id"], {"role": "admin"})
            return existing

        user = self.users.create_user(name=name, email=email, password_hash=hash_password(password), role="admin")
        logger.info(f"Admin user created: {user['id']}")
        return user


_auth_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
