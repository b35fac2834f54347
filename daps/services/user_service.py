"""
User service layer: registration, email verification, login and password resets.
"""

from typing import Optional, Dict
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from daps.database.models import User, EmailVerification, PasswordReset
from daps.services import auth_service, email_service
from daps.services.errors import (
    ValidationError,
    ConflictError,
    UnauthorizedError,
    EmailNotVerifiedError,
)
from daps.utils.datetime_utils import utcnow, ensure_utc
import logging

logger = logging.getLogger(__name__)


def _user_to_dict(user: User) -> Dict:
    """
    Convert a User ORM instance to a dictionary (never includes the password hash).

    Args:
        user: User ORM instance

    Returns:
        User dictionary
    """
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email_verified": user.email_verified_at is not None,
        "email_verified_at": user.email_verified_at.isoformat() if user.email_verified_at else None,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


async def _get_user_row_by_email(session: AsyncSession, email: str) -> Optional[User]:
    email = auth_service.normalize_email(email)
    if not email:
        return None
    result = await session.execute(select(User).where(User.email == email).limit(1))
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[Dict]:
    """
    Get user by email address.

    Args:
        session: Database session
        email: Email address (normalized before lookup)

    Returns:
        User dictionary or None if not found
    """
    user = await _get_user_row_by_email(session, email)
    return _user_to_dict(user) if user else None


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Get user by ID.

    Args:
        session: Database session
        user_id: User ID

    Returns:
        User dictionary or None if not found
    """
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def _issue_verification_token(session: AsyncSession, user_id: int) -> str:
    """Replace any outstanding verification tokens for the user with a fresh one."""
    await session.execute(delete(EmailVerification).where(EmailVerification.user_id == user_id))
    token = auth_service.generate_token()
    session.add(
        EmailVerification(
            token=token,
            user_id=user_id,
            expires_at=utcnow() + timedelta(hours=auth_service.EMAIL_VERIFICATION_EXPIRATION_HOURS),
        )
    )
    await session.flush()
    return token


async def _send_verification(email: str, token: str):
    try:
        await email_service.send_verification_email(email, token)
    except Exception as e:
        logger.warning(f"Verification email to {email} failed: {e}")


def _validate_password(password: Optional[str], confirm_password: Optional[str]):
    if password != confirm_password:
        raise ValidationError("Passwords do not match")
    if len(password) < auth_service.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {auth_service.MIN_PASSWORD_LENGTH} characters"
        )


async def register_user(
    session: AsyncSession,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    confirm_password: str,
) -> Dict:
    """
    Register a new, unverified account and send its verification email.

    Args:
        session: Database session
        first_name: First name
        last_name: Last name
        email: Email address (stored lower-cased and trimmed)
        password: Plain text password
        confirm_password: Must equal password

    Returns:
        The created user dictionary

    Raises:
        ValidationError: Missing fields, mismatched or short password
        ConflictError: Email already registered
    """
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    email = auth_service.normalize_email(email)
    if not first_name or not last_name or not email or not password or not confirm_password:
        raise ValidationError("All fields are required")
    _validate_password(password, confirm_password)

    if await _get_user_row_by_email(session, email):
        raise ConflictError("Email already registered")

    user = User(
        email=email,
        password_hash=auth_service.hash_password(password),
        first_name=first_name,
        last_name=last_name,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Email already registered")

    token = await _issue_verification_token(session, user.id)
    await session.commit()
    await session.refresh(user)
    logger.info(f"Registered user {user.id} ({email})")

    await _send_verification(email, token)
    return _user_to_dict(user)


async def resend_verification(session: AsyncSession, email: str) -> Dict:
    """
    Issue a new verification token for an unverified account.

    Unknown emails get the same generic answer as known ones so the endpoint
    cannot be used to enumerate accounts.

    Returns:
        {"sent": bool, "already_verified": bool}
    """
    email = auth_service.normalize_email(email)
    if not email:
        raise ValidationError("Email is required")

    user = await _get_user_row_by_email(session, email)
    if not user:
        logger.info(f"Verification resend requested for unknown email {email}")
        return {"sent": True, "already_verified": False}
    if user.email_verified_at is not None:
        return {"sent": False, "already_verified": True}

    token = await _issue_verification_token(session, user.id)
    await session.commit()
    await _send_verification(email, token)
    return {"sent": True, "already_verified": False}


async def verify_email(session: AsyncSession, token: str) -> Dict:
    """
    Redeem an email verification token.

    Expired tokens are deleted on redemption attempt.

    Returns:
        The verified user dictionary

    Raises:
        ValidationError: Missing, unknown or expired token
    """
    if not token:
        raise ValidationError("Missing verification token")

    result = await session.execute(select(EmailVerification).where(EmailVerification.token == token))
    record = result.scalar_one_or_none()
    if not record:
        raise ValidationError("Invalid verification token")

    if ensure_utc(record.expires_at) < utcnow():
        await session.delete(record)
        await session.commit()
        raise ValidationError("Verification token has expired")

    user = await session.get(User, record.user_id)
    user.email_verified_at = utcnow()
    await session.delete(record)
    await session.commit()
    logger.info(f"Verified email for user {user.id}")
    return _user_to_dict(user)


async def authenticate(session: AsyncSession, email: str, password: str) -> Dict:
    """
    Check credentials for login.

    Returns:
        User dictionary

    Raises:
        UnauthorizedError: Unknown email or wrong password
        EmailNotVerifiedError: Correct credentials on an unverified account
    """
    user = await _get_user_row_by_email(session, email)
    if not user or not auth_service.verify_password(password, user.password_hash):
        raise UnauthorizedError("Invalid email or password")
    if user.email_verified_at is None:
        raise EmailNotVerifiedError("Please verify your email before logging in")
    return _user_to_dict(user)


async def request_password_reset(session: AsyncSession, email: str) -> bool:
    """
    Issue a one-hour password reset token and email it.

    Returns:
        True if a token was issued (False for unknown emails; callers should
        not reveal the difference)
    """
    user = await _get_user_row_by_email(session, email)
    if not user:
        logger.info("Password reset requested for unknown email")
        return False

    await session.execute(delete(PasswordReset).where(PasswordReset.user_id == user.id))
    token = auth_service.generate_token()
    session.add(
        PasswordReset(
            token=token,
            user_id=user.id,
            expires_at=utcnow() + timedelta(hours=auth_service.PASSWORD_RESET_EXPIRATION_HOURS),
        )
    )
    await session.commit()

    try:
        await email_service.send_password_reset_email(user.email, token)
    except Exception as e:
        logger.warning(f"Password reset email to {user.email} failed: {e}")
    return True


async def reset_password(
    session: AsyncSession, token: str, password: str, confirm_password: Optional[str] = None
) -> Dict:
    """
    Redeem a password reset token and set a new password.

    Raises:
        ValidationError: Missing/unknown/expired token or invalid password
    """
    if not token:
        raise ValidationError("Missing reset token")
    if not password:
        raise ValidationError("Password is required")
    _validate_password(password, password if confirm_password is None else confirm_password)

    result = await session.execute(select(PasswordReset).where(PasswordReset.token == token))
    record = result.scalar_one_or_none()
    if not record:
        raise ValidationError("Invalid reset token")

    if ensure_utc(record.expires_at) < utcnow():
        await session.delete(record)
        await session.commit()
        raise ValidationError("Reset token has expired")

    user = await session.get(User, record.user_id)
    user.password_hash = auth_service.hash_password(password)
    await session.delete(record)
    await session.commit()
    logger.info(f"Password reset for user {user.id}")
    return _user_to_dict(user)
