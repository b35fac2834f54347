"""
Tests for user_service: registration, email verification, login and password resets.
"""
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock
from sqlalchemy import select, func

from daps.database.models import User, EmailVerification, PasswordReset
from daps.services import email_service, user_service
from daps.services.errors import (
    ConflictError,
    EmailNotVerifiedError,
    UnauthorizedError,
    ValidationError,
)
from daps.utils.datetime_utils import utcnow


@pytest.fixture
def sent_verifications(monkeypatch):
    mock = AsyncMock(return_value=True)
    monkeypatch.setattr(email_service, "send_verification_email", mock)
    return mock


@pytest.fixture
def sent_resets(monkeypatch):
    mock = AsyncMock(return_value=True)
    monkeypatch.setattr(email_service, "send_password_reset_email", mock)
    return mock


async def _register(session, email="Fan@Example.com", password="secret123"):
    return await user_service.register_user(
        session,
        first_name="Fan",
        last_name="McFan",
        email=email,
        password=password,
        confirm_password=password,
    )


async def _token_count(session, model, user_id):
    result = await session.execute(select(func.count(model.id)).where(model.user_id == user_id))
    return result.scalar_one()


# ============================================================================
# Registration
# ============================================================================

@pytest.mark.asyncio
async def test_register_creates_unverified_user(db_session, sent_verifications):
    user = await _register(db_session)

    assert user["email"] == "fan@example.com"
    assert user["email_verified"] is False
    assert "password_hash" not in user
    assert await _token_count(db_session, EmailVerification, user["id"]) == 1

    sent_verifications.assert_awaited_once()
    to_email, token = sent_verifications.call_args.args
    assert to_email == "fan@example.com"
    assert len(token) == 64


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(db_session, sent_verifications):
    await _register(db_session)
    with pytest.raises(ConflictError):
        await _register(db_session, email="  FAN@example.com ")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [
        {"first_name": ""},
        {"email": "   "},
        {"password": None},
        {"confirm_password": "different1"},
        {"password": "short", "confirm_password": "short"},
    ],
)
async def test_register_validation(db_session, sent_verifications, kwargs):
    fields = {
        "first_name": "Fan",
        "last_name": "McFan",
        "email": "fan@example.com",
        "password": "secret123",
        "confirm_password": "secret123",
    }
    fields.update(kwargs)
    with pytest.raises(ValidationError):
        await user_service.register_user(db_session, **fields)
    assert (await db_session.execute(select(func.count(User.id)))).scalar_one() == 0


@pytest.mark.asyncio
async def test_register_survives_email_failure(db_session, monkeypatch):
    monkeypatch.setattr(email_service, "send_verification_email", AsyncMock(side_effect=RuntimeError("smtp down")))
    user = await _register(db_session)
    assert user["id"] is not None


# ============================================================================
# Verification
# ============================================================================

@pytest.mark.asyncio
async def test_verify_email_marks_user_and_consumes_token(db_session, sent_verifications):
    user = await _register(db_session)
    token = sent_verifications.call_args.args[1]

    verified = await user_service.verify_email(db_session, token)

    assert verified["email_verified"] is True
    assert await _token_count(db_session, EmailVerification, user["id"]) == 0
    with pytest.raises(ValidationError):
        await user_service.verify_email(db_session, token)


@pytest.mark.asyncio
async def test_verify_email_expired_token_is_removed(db_session, sent_verifications):
    user = await _register(db_session)
    record = (await db_session.execute(select(EmailVerification))).scalar_one()
    record.expires_at = utcnow() - timedelta(minutes=1)
    await db_session.commit()

    with pytest.raises(ValidationError, match="expired"):
        await user_service.verify_email(db_session, record.token)

    assert await _token_count(db_session, EmailVerification, user["id"]) == 0
    refreshed = await user_service.get_user_by_id(db_session, user["id"])
    assert refreshed["email_verified"] is False


@pytest.mark.asyncio
async def test_verify_email_missing_or_unknown_token(db_session):
    with pytest.raises(ValidationError):
        await user_service.verify_email(db_session, "")
    with pytest.raises(ValidationError):
        await user_service.verify_email(db_session, "f" * 64)


@pytest.mark.asyncio
async def test_resend_verification_replaces_previous_token(db_session, sent_verifications):
    user = await _register(db_session)
    first_token = sent_verifications.call_args.args[1]

    result = await user_service.resend_verification(db_session, "fan@example.com")

    assert result == {"sent": True, "already_verified": False}
    assert await _token_count(db_session, EmailVerification, user["id"]) == 1
    second_token = sent_verifications.call_args.args[1]
    assert second_token != first_token
    with pytest.raises(ValidationError):
        await user_service.verify_email(db_session, first_token)


@pytest.mark.asyncio
async def test_resend_verification_unknown_and_verified(db_session, sent_verifications):
    unknown = await user_service.resend_verification(db_session, "nobody@example.com")
    assert unknown == {"sent": True, "already_verified": False}
    sent_verifications.assert_not_awaited()

    await _register(db_session)
    await user_service.verify_email(db_session, sent_verifications.call_args.args[1])
    verified = await user_service.resend_verification(db_session, "fan@example.com")
    assert verified["already_verified"] is True


# ============================================================================
# Login
# ============================================================================

@pytest.mark.asyncio
async def test_authenticate_requires_verified_email(db_session, sent_verifications):
    await _register(db_session)

    with pytest.raises(EmailNotVerifiedError) as exc_info:
        await user_service.authenticate(db_session, "fan@example.com", "secret123")
    assert exc_info.value.status_code == 403
    assert isinstance(exc_info.value, UnauthorizedError)

    await user_service.verify_email(db_session, sent_verifications.call_args.args[1])
    user = await user_service.authenticate(db_session, " FAN@example.com", "secret123")
    assert user["email"] == "fan@example.com"


@pytest.mark.asyncio
async def test_authenticate_bad_credentials(db_session, sent_verifications):
    await _register(db_session)
    with pytest.raises(UnauthorizedError) as exc_info:
        await user_service.authenticate(db_session, "fan@example.com", "wrong-password")
    assert exc_info.value.status_code == 401
    with pytest.raises(UnauthorizedError):
        await user_service.authenticate(db_session, "nobody@example.com", "secret123")


# ============================================================================
# Password reset
# ============================================================================

@pytest.mark.asyncio
async def test_password_reset_flow(db_session, sent_verifications, sent_resets):
    user = await _register(db_session)
    await user_service.verify_email(db_session, sent_verifications.call_args.args[1])

    assert await user_service.request_password_reset(db_session, "fan@example.com") is True
    assert await user_service.request_password_reset(db_session, "fan@example.com") is True
    assert await _token_count(db_session, PasswordReset, user["id"]) == 1

    token = sent_resets.call_args.args[1]
    await user_service.reset_password(db_session, token, "newpass99", "newpass99")

    assert await _token_count(db_session, PasswordReset, user["id"]) == 0
    with pytest.raises(UnauthorizedError):
        await user_service.authenticate(db_session, "fan@example.com", "secret123")
    assert (await user_service.authenticate(db_session, "fan@example.com", "newpass99"))["id"] == user["id"]


@pytest.mark.asyncio
async def test_password_reset_unknown_email(db_session, sent_resets):
    assert await user_service.request_password_reset(db_session, "nobody@example.com") is False
    sent_resets.assert_not_awaited()


@pytest.mark.asyncio
async def test_password_reset_expired_token(db_session, sent_verifications, sent_resets):
    user = await _register(db_session)
    await user_service.request_password_reset(db_session, "fan@example.com")
    record = (await db_session.execute(select(PasswordReset))).scalar_one()
    record.expires_at = utcnow() - timedelta(seconds=1)
    await db_session.commit()

    with pytest.raises(ValidationError):
        await user_service.reset_password(db_session, record.token, "newpass99")
    assert await _token_count(db_session, PasswordReset, user["id"]) == 0


@pytest.mark.asyncio
async def test_get_user_by_email_normalizes(db_session, sent_verifications):
    user = await _register(db_session)
    found = await user_service.get_user_by_email(db_session, "  FAN@EXAMPLE.COM")
    assert found["id"] == user["id"]
    assert await user_service.get_user_by_email(db_session, "") is None
