"""Health check and team catalogue route handlers."""

from typing import List, Optional

from fastapi import APIRouter

from daps.models.schemas import HealthResponse, TeamResponse
from daps.utils.teams import list_teams

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="healthy", message="Daps API is running")


@router.get("/teams", response_model=List[TeamResponse])
async def teams(league: Optional[str] = None):
    """Supported teams, optionally for one league."""
    return list_teams(league)
