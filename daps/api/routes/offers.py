"""Admin offer route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from daps.api.routes import to_http_exception
from daps.api.auth_dependencies import require_admin
from daps.database.db import get_db_session
from daps.models.schemas import AdminOfferResponse, OfferStatusUpdate
from daps.services import offer_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/offers", tags=["offers"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[AdminOfferResponse])
async def list_offers(session: AsyncSession = Depends(get_db_session)):
    """All offers, newest first."""
    try:
        return await offer_service.list_offers_for_admin(session)
    except Exception as e:
        raise to_http_exception(e, "listing offers")


@router.get("/{offer_id}", response_model=AdminOfferResponse)
async def get_offer(offer_id: int, session: AsyncSession = Depends(get_db_session)):
    try:
        return await offer_service.get_offer_for_admin(session, offer_id)
    except Exception as e:
        raise to_http_exception(e, f"getting offer {offer_id}")


@router.put("/{offer_id}/status", response_model=AdminOfferResponse)
async def update_offer_status(
    offer_id: int,
    payload: OfferStatusUpdate,
    session: AsyncSession = Depends(get_db_session),
):
    """Approve, decline or reopen an offer. The customer is emailed in the background."""
    try:
        return await offer_service.update_offer_status(session, offer_id, payload.status)
    except Exception as e:
        raise to_http_exception(e, f"updating status of offer {offer_id}")


@router.delete("/{offer_id}")
async def delete_offer(offer_id: int, session: AsyncSession = Depends(get_db_session)):
    try:
        await offer_service.delete_offer(session, offer_id)
        return {"status": "success", "message": "Offer deleted"}
    except Exception as e:
        raise to_http_exception(e, f"deleting offer {offer_id}")
