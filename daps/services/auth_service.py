"""
Authentication service: password hashing, session tokens and the admin check.
"""

import hmac
import logging
import os
import secrets
from datetime import timedelta
from typing import Optional, Dict

import bcrypt
from dotenv import load_dotenv
from jose import jwt, JWTError

from daps.utils.datetime_utils import utcnow

load_dotenv()

logger = logging.getLogger(__name__)

# JWT configuration
SESSION_SECRET = os.getenv("SESSION_SECRET", "dev-session-secret")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRATION_DAYS = 7

# Shared secret for admin endpoints
ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "dev-admin-token")

# Verification/reset token lifetimes
EMAIL_VERIFICATION_EXPIRATION_HOURS = 24
PASSWORD_RESET_EXPIRATION_HOURS = 1

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Hashed password string
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its bcrypt hash.

    Args:
        password: Plain text password
        password_hash: Stored hash

    Returns:
        True if the password matches, False otherwise (including malformed hashes)
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT session token.

    Args:
        data: Claims to embed (e.g. {"user_id": 1, "email": "a@b.com"})
        expires_delta: Optional custom lifetime (defaults to 7 days)

    Returns:
        Encoded JWT string
    """
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(days=ACCESS_TOKEN_EXPIRATION_DAYS))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SESSION_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Optional[Dict]:
    """
    Decode and verify a session token.

    Returns:
        The claims dict, or None if the token is invalid or expired
    """
    try:
        return jwt.decode(token, SESSION_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected session token: {e}")
        return None


def generate_token() -> str:
    """Generate a random opaque token (64 hex chars) for email verification and password resets."""
    return secrets.token_hex(32)


def normalize_email(email: Optional[str]) -> str:
    """Trim and lower-case an email address."""
    return (email or "").strip().lower()


def is_admin(credential: Optional[str]) -> bool:
    """
    Capability check for admin endpoints.

    Compares the bearer credential with the configured shared secret in
    constant time.
    """
    if not credential:
        return False
    return hmac.compare_digest(credential.encode("utf-8"), ADMIN_TOKEN.encode("utf-8"))
