"""User account and customer offer route handlers."""

import logging
from typing import Dict, Any, List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from daps.api.routes import limiter, AUTH_RATE_LIMIT, to_http_exception
from daps.api.auth_dependencies import require_user
from daps.database.db import get_db_session
from daps.models.schemas import (
    RegisterRequest,
    EmailRequest,
    LoginRequest,
    LoginResponse,
    ResetPasswordRequest,
    MeResponse,
    OfferCreate,
    AdminOfferResponse,
    UserOfferResponse,
    MessageCreate,
    MessageResponse,
)
from daps.services import auth_service, user_service, offer_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/register", response_model=Dict[str, Any], status_code=201)
@limiter.limit(AUTH_RATE_LIMIT)
async def register(request: Request, payload: RegisterRequest, session: AsyncSession = Depends(get_db_session)):
    """Create an unverified account and send the verification email."""
    try:
        user = await user_service.register_user(
            session,
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            password=payload.password,
            confirm_password=payload.confirm_password,
        )
        return {
            "status": "success",
            "message": "Account created. Check your email to verify your address.",
            "user_id": user["id"],
        }
    except Exception as e:
        raise to_http_exception(e, "registering user")


@router.post("/resend-verification", response_model=Dict[str, Any])
@limiter.limit(AUTH_RATE_LIMIT)
async def resend_verification(request: Request, payload: EmailRequest, session: AsyncSession = Depends(get_db_session)):
    try:
        result = await user_service.resend_verification(session, payload.email)
        if result["already_verified"]:
            return {"status": "success", "message": "Email is already verified"}
        return {"status": "success", "message": "If that account exists, a verification email was sent"}
    except Exception as e:
        raise to_http_exception(e, "resending verification")


@router.get("/verify", response_model=Dict[str, Any])
async def verify(token: str = Query(default=""), session: AsyncSession = Depends(get_db_session)):
    """Redeem an email verification link."""
    try:
        user = await user_service.verify_email(session, token)
        return {"status": "success", "message": "Email verified", "email": user["email"]}
    except Exception as e:
        raise to_http_exception(e, "verifying email")


@router.post("/login", response_model=LoginResponse)
@limiter.limit(AUTH_RATE_LIMIT)
async def login(request: Request, payload: LoginRequest, session: AsyncSession = Depends(get_db_session)):
    """Exchange email and password for a session token."""
    try:
        user = await user_service.authenticate(session, payload.email, payload.password)
        token = auth_service.create_access_token({"user_id": user["id"], "email": user["email"]})
        logger.info(f"User {user['id']} logged in")
        return LoginResponse(token=token)
    except Exception as e:
        raise to_http_exception(e, "logging in")


@router.get("/me", response_model=MeResponse)
async def me(user: dict = Depends(require_user)):
    return MeResponse(
        id=user["id"],
        email=user["email"],
        first_name=user["first_name"],
        last_name=user["last_name"],
    )


@router.post("/request-password-reset", response_model=Dict[str, Any])
@limiter.limit(AUTH_RATE_LIMIT)
async def request_password_reset(request: Request, payload: EmailRequest, session: AsyncSession = Depends(get_db_session)):
    """Email a reset link. The response never reveals whether the account exists."""
    try:
        await user_service.request_password_reset(session, payload.email)
        return {"status": "success", "message": "If that account exists, a reset email was sent"}
    except Exception as e:
        raise to_http_exception(e, "requesting password reset")


@router.post("/reset-password", response_model=Dict[str, Any])
@limiter.limit(AUTH_RATE_LIMIT)
async def reset_password(request: Request, payload: ResetPasswordRequest, session: AsyncSession = Depends(get_db_session)):
    try:
        await user_service.reset_password(session, payload.token, payload.password, payload.confirm_password)
        return {"status": "success", "message": "Password updated"}
    except Exception as e:
        raise to_http_exception(e, "resetting password")


@router.post("/offers", response_model=AdminOfferResponse, status_code=201)
async def create_offer(
    payload: OfferCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Submit an offer as the signed-in user."""
    try:
        return await offer_service.create_offer(
            session,
            user_id=user["id"],
            athlete_id=payload.athlete_id,
            customer_name=payload.customer_name,
            customer_email=payload.customer_email,
            customer_phone=payload.customer_phone,
            exp_desc=payload.exp_desc,
            exp_type=payload.exp_type,
            game_desc=payload.game_desc,
            game_id=payload.game_id,
            offered=payload.offered,
            payment_method=payload.payment_method,
            payment_last4=payload.payment_last4,
        )
    except Exception as e:
        raise to_http_exception(e, "creating offer")


@router.get("/offers", response_model=List[UserOfferResponse])
async def list_my_offers(user: dict = Depends(require_user), session: AsyncSession = Depends(get_db_session)):
    try:
        return await offer_service.list_offers_for_user(session, user["id"])
    except Exception as e:
        raise to_http_exception(e, "listing user offers")


@router.post("/offers/{offer_id}/messages", response_model=MessageResponse, status_code=201)
async def post_offer_message(
    offer_id: int,
    payload: MessageCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Send ops a message about one of your offers."""
    try:
        return await offer_service.post_offer_message(session, user["id"], offer_id, payload.subject, payload.body)
    except Exception as e:
        raise to_http_exception(e, f"posting message on offer {offer_id}")


@router.get("/offers/{offer_id}/messages", response_model=List[MessageResponse])
async def list_offer_messages(
    offer_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await offer_service.list_offer_messages(session, user["id"], offer_id)
    except Exception as e:
        raise to_http_exception(e, f"listing messages on offer {offer_id}")
