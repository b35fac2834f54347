"""Player directory route handlers (admin)."""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from daps.api.routes import to_http_exception
from daps.api.auth_dependencies import require_admin
from daps.database.db import get_db_session
from daps.models.schemas import PlayerResponse, AthleteResponse
from daps.services.player_directory_service import PlayerDirectory, get_player_directory, import_player_as_athlete

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/players", tags=["players"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[PlayerResponse])
async def list_players(refresh: bool = False, directory: PlayerDirectory = Depends(get_player_directory)):
    """
    Every rostered player across supported leagues.

    The list is cached for a day; refresh=true rebuilds it (slow: one request per team).
    """
    try:
        return await directory.get_players(force=refresh)
    except Exception as e:
        raise to_http_exception(e, "loading player directory")


@router.post("/{external_id}/import", response_model=AthleteResponse, status_code=201)
async def import_player(
    external_id: str,
    directory: PlayerDirectory = Depends(get_player_directory),
    session: AsyncSession = Depends(get_db_session),
):
    """Create an athlete from a directory player."""
    try:
        return await import_player_as_athlete(session, directory, external_id)
    except Exception as e:
        raise to_http_exception(e, f"importing player {external_id}")
