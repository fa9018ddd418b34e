"""
Password hashing with bcrypt.

Only hashes are stored. bcrypt works on bytes and the hash column is a
string, so values are encoded and decoded at this boundary. bcrypt only
reads the first 72 bytes of a password and current releases refuse longer
input, so longer passwords are rejected before they reach it.
"""

import hashlib
import logging

import bcrypt

logger = logging.getLogger(__name__)

MAX_PASSWORD_BYTES = 72


def password_too_long(password: str) -> bool:
    return len((password or "").encode()) > MAX_PASSWORD_BYTES


def check_password_length(password: str) -> str:
    """Field validator helper: the password itself, or ValueError when bcrypt cannot take it."""
    if password_too_long(password):
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return password


def hash_password(password: str, rounds: int = 12) -> str:
    check_password_length(password)
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """False for a wrong password or an unusable stored hash."""
    if not password_hash or password_too_long(password):
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError as e:
        logger.warning(f"Stored password hash is not a valid bcrypt hash: {e}")
        return False


def hash_fingerprint(password_hash: str) -> str:
    """Short digest of a stored hash; changes whenever the password changes."""
    return hashlib.sha256((password_hash or "").encode()).hexdigest()[:16]
