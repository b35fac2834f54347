"""Admin inbox of fan messages."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from daps.api.routes import to_http_exception
from daps.api.auth_dependencies import require_admin
from daps.database.db import get_db_session
from daps.models.schemas import AdminMessageResponse
from daps.services import offer_service

router = APIRouter(prefix="/api/messages", tags=["messages"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[AdminMessageResponse])
async def list_messages(session: AsyncSession = Depends(get_db_session)):
    """Every fan message, newest first."""
    try:
        return await offer_service.list_messages_for_admin(session)
    except Exception as e:
        raise to_http_exception(e, "listing messages")
