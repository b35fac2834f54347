"""Game schedule route handlers."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from daps.api.routes import to_http_exception
from daps.api.auth_dependencies import require_admin
from daps.database.db import get_db_session
from daps.models.schemas import GameResponse, GameCreate, GameBulkCreate, CountResponse
from daps.services import schedule_service
from daps.services.errors import ValidationError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/games", tags=["games"])


@router.get("", response_model=List[GameResponse])
async def list_games(
    athlete_id: Optional[str] = Query(default=None, alias="athleteId"),
    session: AsyncSession = Depends(get_db_session),
):
    """
    List an athlete's games, ascending by date.

    A stale schedule is refreshed first when possible; provider trouble never
    fails this call.
    """
    try:
        if not athlete_id:
            raise ValidationError("athleteId is required")
        return await schedule_service.list_games(session, athlete_id)
    except Exception as e:
        raise to_http_exception(e, f"listing games for athlete {athlete_id}")


@router.get("/{game_id}", response_model=GameResponse)
async def get_game(game_id: int, session: AsyncSession = Depends(get_db_session)):
    try:
        return await schedule_service.get_game(session, game_id)
    except Exception as e:
        raise to_http_exception(e, f"getting game {game_id}")


@router.post("", response_model=GameResponse, status_code=201)
async def create_game(
    payload: GameCreate,
    _admin: bool = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await schedule_service.create_game(
            session, payload.athlete_id, payload.date, payload.opponent, payload.venue
        )
    except Exception as e:
        raise to_http_exception(e, "creating game")


@router.post("/bulk", response_model=CountResponse)
async def bulk_create_games(
    payload: GameBulkCreate,
    _admin: bool = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Append rows to an athlete's schedule, skipping duplicates."""
    try:
        if payload.rows is None:
            raise ValidationError("rows is required")
        rows = [row.model_dump() for row in payload.rows]
        count = await schedule_service.bulk_create_games(session, payload.athlete_id, rows)
        return CountResponse(count=count)
    except Exception as e:
        raise to_http_exception(e, "bulk creating games")
