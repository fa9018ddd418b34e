"""
Login and password reset.

Passwords are verified against bcrypt hashes. A reset is a two-step flow:
request_password_reset() issues a Fernet token (signed, timestamped) that
embeds the user id and a fingerprint of the current hash; reset_password()
accepts it only within the TTL and only while the hash is unchanged, so a
token works once.
"""

import json
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from ..database.exceptions import PasswordResetError, ValidationError
from ..database.repositories import UserRepository
from ..models import User
from ..utils.passwords import (
    MAX_PASSWORD_BYTES,
    hash_password,
    verify_password,
    hash_fingerprint,
    password_too_long,
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthService:
    """Authentication against the users table."""

    def __init__(
        self,
        users: UserRepository,
        secret: Optional[str] = None,
        ttl_seconds: int = 3600,
        bcrypt_rounds: int = 12,
    ):
        self.users = users
        self.ttl_seconds = ttl_seconds
        self.bcrypt_rounds = bcrypt_rounds

        if not secret:
            logger.warning(
                "PASSWORD_RESET_SECRET not configured - reset tokens will not survive a restart. "
                "Generate key with: Fernet.generate_key()"
            )
            secret = Fernet.generate_key()
        if isinstance(secret, str):
            secret = secret.encode()
        self._cipher = Fernet(secret)

    @classmethod
    def from_settings(cls, users: UserRepository, settings) -> "AuthService":
        return cls(
            users,
            secret=settings.password_reset_secret,
            ttl_seconds=settings.password_reset_ttl_seconds,
            bcrypt_rounds=settings.bcrypt_rounds,
        )

    async def authenticate(self, name: str, password: str) -> Optional[User]:
        """The user for a correct name/password pair, otherwise None."""
        found = await self.users.get_by_name(name)
        if found is None:
            logger.info(f"Login failed: unknown user {name}")
            return None

        user, password_hash = found
        if not verify_password(password, password_hash):
            logger.info(f"Login failed: wrong password for {name}")
            return None

        logger.info(f"User {user.id} logged in")
        return user

    async def request_password_reset(self, email: str) -> Optional[str]:
        """
        Issue a reset token for the account with this email.

        Returns None for an unknown email; callers must respond the same way
        in both cases.
        """
        found = await self.users.get_by_email(email)
        if found is None:
            logger.info("Password reset requested for unknown email")
            return None

        user, password_hash = found
        payload = json.dumps({"uid": user.id, "fp": hash_fingerprint(password_hash)})
        token = self._cipher.encrypt(payload.encode()).decode()
        logger.info(f"Password reset token issued for user {user.id}")
        return token

    async def reset_password(self, token: str, new_password: str) -> User:
        if len(new_password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if password_too_long(new_password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        try:
            payload = json.loads(self._cipher.decrypt(token.encode(), ttl=self.ttl_seconds))
            user_id = payload["uid"]
            fingerprint = payload["fp"]
        except (InvalidToken, ValueError, KeyError, TypeError) as e:
            raise PasswordResetError("Invalid or expired reset token") from e

        found = await self.users.get_credentials_by_id(user_id)
        if found is None:
            raise PasswordResetError("Invalid or expired reset token")

        user, password_hash = found
        if hash_fingerprint(password_hash) != fingerprint:
            raise PasswordResetError("Reset token has already been used")

        await self.users.set_password_hash(user.id, hash_password(new_password, self.bcrypt_rounds))
        logger.info(f"Password reset completed for user {user.id}")
        return user
