"""Athlete directory route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from daps.api.routes import to_http_exception
from daps.api.auth_dependencies import require_admin
from daps.database.db import get_db_session
from daps.models.schemas import AthleteCreate, AthleteUpdate, AthleteResponse, SyncResultResponse
from daps.services import athlete_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/athletes", tags=["athletes"])


@router.get("", response_model=List[AthleteResponse])
async def list_athletes(
    active_only: bool = False,
    featured_only: bool = False,
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await athlete_service.list_athletes(session, active_only=active_only, featured_only=featured_only)
    except Exception as e:
        raise to_http_exception(e, "listing athletes")


@router.get("/{id_or_slug}", response_model=AthleteResponse)
async def get_athlete(id_or_slug: str, session: AsyncSession = Depends(get_db_session)):
    try:
        return await athlete_service.get_athlete(session, id_or_slug)
    except Exception as e:
        raise to_http_exception(e, f"getting athlete {id_or_slug}")


@router.post("", response_model=AthleteResponse, status_code=201)
async def create_athlete(
    payload: AthleteCreate,
    _admin: bool = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Create an athlete; the schedule sync outcome is returned under schedule_sync."""
    try:
        return await athlete_service.create_athlete(
            session,
            name=payload.name,
            team=payload.team,
            league=payload.league,
            slug=payload.slug,
            image_url=payload.image_url,
            active=payload.active,
            featured=payload.featured,
        )
    except Exception as e:
        raise to_http_exception(e, "creating athlete")


@router.patch("/{id_or_slug}", response_model=AthleteResponse)
async def update_athlete(
    id_or_slug: str,
    payload: AthleteUpdate,
    _admin: bool = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Partial update: only fields present in the body are changed."""
    try:
        return await athlete_service.update_athlete(session, id_or_slug, payload.model_dump(exclude_unset=True))
    except Exception as e:
        raise to_http_exception(e, f"updating athlete {id_or_slug}")


@router.delete("/{id_or_slug}")
async def delete_athlete(
    id_or_slug: str,
    _admin: bool = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        await athlete_service.delete_athlete(session, id_or_slug)
        return {"status": "success", "message": "Athlete deleted"}
    except Exception as e:
        raise to_http_exception(e, f"deleting athlete {id_or_slug}")


@router.post("/{id_or_slug}/sync-schedule", response_model=SyncResultResponse)
async def sync_schedule(
    id_or_slug: str,
    _admin: bool = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Force a schedule refresh from the providers."""
    try:
        return await athlete_service.resync_schedule(session, id_or_slug)
    except Exception as e:
        raise to_http_exception(e, f"syncing schedule for athlete {id_or_slug}")
