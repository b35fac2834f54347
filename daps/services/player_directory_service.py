"""
Cross-league player directory.

Builds a list of every rostered player in every supported league by walking
each franchise's roster on the primary provider. The list is expensive to
build (one request per team, paced), so it is cached in memory for a day.
Admins use it to pick players and import them as athletes.
"""

import asyncio
import logging
import os
import time
from typing import Callable, Dict, List, Optional

import httpx
from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncSession

from daps.services import athlete_service
from daps.services.errors import NotFoundError, UpstreamError
from daps.services.schedule_provider import ESPN_API_BASE_URL, HTTP_HEADERS, HTTP_TIMEOUT_SECONDS, get_json
from daps.utils.constants import LEAGUES
from daps.utils.teams import TEAMS_BY_LEAGUE, TeamInfo

load_dotenv()

logger = logging.getLogger(__name__)

PLAYER_DIRECTORY_TTL_SECONDS = float(os.getenv("PLAYER_DIRECTORY_TTL_SECONDS", str(24 * 60 * 60)))
ROSTER_FETCH_PACE_SECONDS = float(os.getenv("ROSTER_FETCH_PACE_SECONDS", "0.25"))


class TTLCache:
    """Single-value cache that expires `ttl_seconds` after it was set."""

    def __init__(self, ttl_seconds: float = PLAYER_DIRECTORY_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.value = None
        self.fetched_at: Optional[float] = None

    def get(self):
        """Return the cached value while fresh, else None."""
        if self.fetched_at is None:
            return None
        if self.clock() - self.fetched_at >= self.ttl_seconds:
            return None
        return self.value

    def set(self, value):
        self.value = value
        self.fetched_at = self.clock()

    def clear(self):
        self.value = None
        self.fetched_at = None


def _roster_entries(payload: Dict) -> List[Dict]:
    """Flatten both roster shapes: a flat athletes list, or position groups with items."""
    athletes = payload.get("athletes")
    if not isinstance(athletes, list):
        return []
    entries = []
    for item in athletes:
        if not isinstance(item, dict):
            continue
        if isinstance(item.get("items"), list):
            entries.extend(p for p in item["items"] if isinstance(p, dict))
        else:
            entries.append(item)
    return entries


def _player_record(player: Dict, team: TeamInfo) -> Optional[Dict]:
    player_id = player.get("id")
    name = player.get("displayName") or player.get("fullName")
    if player_id is None or not name:
        return None
    position = player.get("position") or {}
    headshot = player.get("headshot") or {}
    return {
        "external_id": str(player_id),
        "name": name,
        "team": team.name,
        "league": team.league,
        "position": position.get("abbreviation") if isinstance(position, dict) else None,
        "image_url": headshot.get("href") if isinstance(headshot, dict) else None,
    }


class PlayerDirectory:
    """
    Cached roster of every supported league.

    Concurrent refreshes are not coordinated; the last one to finish wins.
    """

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        provider_base_url: str = ESPN_API_BASE_URL,
        pace_seconds: float = ROSTER_FETCH_PACE_SECONDS,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache or TTLCache()
        self.provider_base_url = provider_base_url.rstrip("/")
        self.pace_seconds = pace_seconds
        self.timeout = timeout
        self.transport = transport

    async def get_players(self, force: bool = False) -> List[Dict]:
        """
        Return the cached player list, fetching every roster if stale or forced.
        """
        if not force:
            cached = self.cache.get()
            if cached is not None:
                return cached

        players = await self._fetch_all()
        self.cache.set(players)
        return players

    async def find_player(self, external_id: str) -> Optional[Dict]:
        for player in await self.get_players():
            if player["external_id"] == str(external_id):
                return player
        return None

    async def _fetch_all(self) -> List[Dict]:
        players: List[Dict] = []
        first = True
        async with httpx.AsyncClient(timeout=self.timeout, headers=HTTP_HEADERS, transport=self.transport) as client:
            for code, teams in TEAMS_BY_LEAGUE.items():
                config = LEAGUES[code]
                for team in teams:
                    if not first and self.pace_seconds > 0:
                        await asyncio.sleep(self.pace_seconds)
                    first = False
                    url = f"{self.provider_base_url}/{config.sport}/{config.provider_league}/teams/{team.espn_id}/roster"
                    try:
                        payload = await get_json(url, client=client)
                    except UpstreamError as e:
                        logger.warning(f"Roster fetch for {team.full_name} failed: {e.message}")
                        continue
                    for entry in _roster_entries(payload):
                        record = _player_record(entry, team)
                        if record:
                            players.append(record)
        logger.info(f"Player directory loaded {len(players)} players")
        return players


_default_directory: Optional[PlayerDirectory] = None


def get_player_directory() -> PlayerDirectory:
    """Process-wide directory, created on first use."""
    global _default_directory
    if _default_directory is None:
        _default_directory = PlayerDirectory()
    return _default_directory


async def import_player_as_athlete(session: AsyncSession, directory: PlayerDirectory, external_id: str) -> Dict:
    """
    Create an athlete from a directory player.

    Raises:
        NotFoundError: Unknown player id
        ConflictError: An athlete with the derived slug already exists
    """
    player = await directory.find_player(external_id)
    if player is None:
        raise NotFoundError(f"Player {external_id} not found")

    logger.info(f"Importing player {external_id} ({player['name']}) as athlete")
    return await athlete_service.create_athlete(
        session,
        name=player["name"],
        team=player["team"],
        league=player["league"],
        image_url=player.get("image_url"),
        external_id=player["external_id"],
    )
