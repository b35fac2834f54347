"""
Schedule source adapter.

Fetches a team's season schedule from the primary provider (ESPN site API)
and, for the NBA, falls back to the NBA CDN schedule feed. Provider payloads
are normalized into ScheduledGame records through an ordered list of shape
normalizers.

Expected failures (network errors, timeouts, bad status codes, undecodable
JSON, unexpected shapes, unmapped teams) never escape this module: they are
logged and produce an empty list so callers can keep serving cached games.
"""

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from dotenv import load_dotenv

from daps.services.errors import UpstreamError
from daps.utils.constants import LeagueConfig, get_bool_env, get_league_config
from daps.utils.datetime_utils import parse_datetime, utcnow
from daps.utils.teams import TeamInfo, names_match, resolve_team

load_dotenv()

logger = logging.getLogger(__name__)

ESPN_API_BASE_URL = os.getenv("ESPN_API_BASE_URL", "https://site.api.espn.com/apis/site/v2/sports")
NBA_CDN_BASE_URL = os.getenv("NBA_CDN_BASE_URL", "https://cdn.nba.com/static/json")
HTTP_TIMEOUT_SECONDS = float(os.getenv("SCHEDULE_HTTP_TIMEOUT_SECONDS", "10"))
SECONDARY_PROVIDER_ENABLED = get_bool_env("SECONDARY_SCHEDULE_PROVIDER_ENABLED", default=True)

HTTP_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
}

PRIMARY_SOURCE = "espn"
NBA_CDN_SOURCE = "nba_cdn"


@dataclass(frozen=True)
class ScheduledGame:
    """One normalized game from a provider."""

    date: datetime
    opponent: str
    venue: Optional[str]
    source: str
    external_id: Optional[str] = None


def compute_season_year(today: date, config: LeagueConfig) -> int:
    """
    Season identifier the primary provider expects for `today`.

    Leagues keyed by end year (NBA: 2025-26 is season 2026) roll over to
    year + 1 on/after the season start month. Leagues keyed by start year
    (NFL: 2025 season runs into early 2026) stay on the previous year until
    the start month.
    """
    on_or_after_start = today.month >= config.season_start_month
    if config.season_keyed_by_end_year:
        return today.year + 1 if on_or_after_start else today.year
    return today.year if on_or_after_start else today.year - 1


def season_label(today: date, config: LeagueConfig) -> str:
    """Two-year season label such as "2025-26"."""
    year = compute_season_year(today, config)
    start = year - 1 if config.season_keyed_by_end_year else year
    return f"{start}-{str(start + 1)[-2:]}"


async def get_json(
    url: str, params: Optional[Dict[str, Any]] = None, client: Optional[httpx.AsyncClient] = None
) -> Dict:
    """
    GET a JSON object from a provider.

    Args:
        url: Endpoint URL
        params: Optional query parameters
        client: Shared client; a short-lived one with the bounded timeout is
            created when omitted

    Raises:
        UpstreamError: Network failure, timeout, non-2xx status, bad JSON or a
            payload that is not a JSON object
    """
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS, headers=HTTP_HEADERS) as owned:
                resp = await owned.get(url, params=params)
        else:
            resp = await client.get(url, params=params)
        resp.raise_for_status()
        payload = resp.json()
    except httpx.HTTPError as e:
        raise UpstreamError(f"Request to {url} failed: {e}") from e
    except ValueError as e:
        raise UpstreamError(f"Response from {url} is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise UpstreamError(f"Response from {url} is not a JSON object")
    return payload


# ============================================================================
# Payload normalizers. Each returns None when it does not recognize the shape.
# ============================================================================

def _competitor_is_team(competitor: Dict, team: TeamInfo) -> bool:
    info = competitor.get("team") or {}
    if info.get("id") is not None and str(info["id"]) == team.espn_id:
        return True
    abbrev = info.get("abbreviation")
    if abbrev and abbrev.upper() == team.abbrev.upper():
        return True
    for key in ("shortDisplayName", "name", "displayName"):
        if names_match(team.name, info.get(key)):
            return True
    return False


def _normalize_events(payload: Dict, team: TeamInfo, source: str) -> Optional[List[ScheduledGame]]:
    events = payload.get("events")
    if not isinstance(events, list):
        return None

    games = []
    for event in events:
        try:
            game_date = parse_datetime(event.get("date"))
            competition = event["competitions"][0]
            competitors = competition.get("competitors") or []
            ours = next((c for c in competitors if _competitor_is_team(c, team)), None)
            theirs = next((c for c in competitors if c is not ours), None)
            if game_date is None or ours is None or theirs is None:
                logger.debug(f"Skipping event {event.get('id')}: missing date or team")
                continue

            opponent_info = theirs.get("team") or {}
            opponent = (
                opponent_info.get("shortDisplayName")
                or opponent_info.get("name")
                or opponent_info.get("displayName")
                or opponent_info.get("abbreviation")
            )
            if not opponent:
                continue

            venue = (competition.get("venue") or {}).get("fullName")
            if not venue:
                venue = "Home" if ours.get("homeAway") == "home" else "Away"

            games.append(
                ScheduledGame(
                    date=game_date,
                    opponent=opponent,
                    venue=venue,
                    source=source,
                    external_id=str(event["id"]) if event.get("id") is not None else None,
                )
            )
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            logger.debug(f"Skipping malformed event: {e}")
    return games


def _side_is_team(side: Dict, team: TeamInfo) -> bool:
    tricode = side.get("teamTricode")
    if tricode and tricode.upper() == team.abbrev.upper():
        return True
    return names_match(team.name, side.get("teamName"))


def _map_cdn_games(raw_games: List[Dict], team: TeamInfo, source: str) -> List[ScheduledGame]:
    games = []
    for game in raw_games:
        try:
            home = game.get("homeTeam") or {}
            away = game.get("awayTeam") or {}
            if _side_is_team(home, team):
                is_home, other = True, away
            elif _side_is_team(away, team):
                is_home, other = False, home
            else:
                continue

            game_date = parse_datetime(game.get("gameDateTimeUTC") or game.get("gameDate"))
            opponent = other.get("teamName") or other.get("teamTricode")
            if game_date is None or not opponent:
                continue

            games.append(
                ScheduledGame(
                    date=game_date,
                    opponent=opponent,
                    venue=game.get("arenaName") or ("Home" if is_home else "Away"),
                    source=source,
                    external_id=str(game["gameId"]) if game.get("gameId") else None,
                )
            )
        except (TypeError, AttributeError) as e:
            logger.debug(f"Skipping malformed game: {e}")
    return games


def _normalize_cdn_schedule(payload: Dict, team: TeamInfo, source: str) -> Optional[List[ScheduledGame]]:
    raw_games = payload.get("schedule")
    if not isinstance(raw_games, list):
        return None
    return _map_cdn_games(raw_games, team, source)


def _normalize_league_schedule(payload: Dict, team: TeamInfo, source: str) -> Optional[List[ScheduledGame]]:
    league_schedule = payload.get("leagueSchedule")
    if not isinstance(league_schedule, dict) or not isinstance(league_schedule.get("gameDates"), list):
        return None
    raw_games = [
        game
        for game_date in league_schedule["gameDates"]
        if isinstance(game_date, dict)
        for game in (game_date.get("games") or [])
    ]
    return _map_cdn_games(raw_games, team, source)


NORMALIZERS: List[Callable[[Dict, TeamInfo, str], Optional[List[ScheduledGame]]]] = [
    _normalize_events,
    _normalize_cdn_schedule,
    _normalize_league_schedule,
]


def normalize_schedule(payload: Dict, team: TeamInfo, source: str) -> List[ScheduledGame]:
    """
    Normalize a provider payload with the first normalizer that recognizes it.

    Returns:
        Games sorted ascending by date

    Raises:
        UpstreamError: No normalizer recognizes the payload
    """
    for normalizer in NORMALIZERS:
        games = normalizer(payload, team, source)
        if games is not None:
            return sorted(games, key=lambda g: g.date)
    raise UpstreamError(f"Unrecognized schedule payload from {source} (keys: {sorted(payload)[:10]})")


# ============================================================================
# Providers
# ============================================================================

async def _fetch_primary(
    team: TeamInfo, config: LeagueConfig, today: date, client: Optional[httpx.AsyncClient]
) -> List[ScheduledGame]:
    season = compute_season_year(today, config)
    url = f"{ESPN_API_BASE_URL}/{config.sport}/{config.provider_league}/teams/{team.espn_id}/schedule"
    logger.info(f"Fetching {team.full_name} schedule from {PRIMARY_SOURCE} (season={season})")
    payload = await get_json(url, params={"season": season}, client=client)
    return normalize_schedule(payload, team, PRIMARY_SOURCE)


async def _fetch_nba_cdn(
    team: TeamInfo, config: LeagueConfig, today: date, client: Optional[httpx.AsyncClient]
) -> List[ScheduledGame]:
    label = season_label(today, config)
    url = f"{NBA_CDN_BASE_URL}/liveData/playbyplay/schedule/{label}_{team.abbrev}_schedule.json"
    logger.info(f"Fetching {team.full_name} schedule from {NBA_CDN_SOURCE} (season={label})")
    payload = await get_json(url, client=client)
    return normalize_schedule(payload, team, NBA_CDN_SOURCE)


Provider = Callable[[TeamInfo, LeagueConfig, date, Optional[httpx.AsyncClient]], Awaitable[List[ScheduledGame]]]

SECONDARY_PROVIDERS: Dict[str, Provider] = {
    "NBA": _fetch_nba_cdn,
}


async def _run_provider(
    name: str,
    provider: Provider,
    team: TeamInfo,
    config: LeagueConfig,
    today: date,
    client: Optional[httpx.AsyncClient],
) -> List[ScheduledGame]:
    try:
        return await provider(team, config, today, client)
    except UpstreamError as e:
        logger.warning(f"{name} schedule fetch for {team.full_name} failed: {e.message}")
        return []


async def fetch_team_schedule(
    team_name: str,
    league: Optional[str] = "NBA",
    client: Optional[httpx.AsyncClient] = None,
    today: Optional[date] = None,
) -> List[ScheduledGame]:
    """
    Fetch and normalize a team's schedule for the current season.

    Args:
        team_name: Team display name, full name or abbreviation
        league: League code (unknown leagues use NBA settings)
        client: Optional shared httpx client
        today: Override for the current date

    Returns:
        Games sorted ascending by date, or [] when the team is unmapped or
        every provider failed
    """
    config = get_league_config(league)
    team = resolve_team(team_name, config.code)
    if team is None:
        logger.warning(f"No {config.code} team mapping for {team_name!r}")
        return []

    today = today or utcnow().date()
    games = await _run_provider(PRIMARY_SOURCE, _fetch_primary, team, config, today, client)
    if games:
        logger.info(f"{PRIMARY_SOURCE} returned {len(games)} games for {team.full_name}")
        return games

    secondary = SECONDARY_PROVIDERS.get(config.code)
    if secondary is not None and SECONDARY_PROVIDER_ENABLED:
        logger.info(f"Primary provider returned nothing for {team.full_name}, trying {NBA_CDN_SOURCE}")
        games = await _run_provider(NBA_CDN_SOURCE, secondary, team, config, today, client)
        if games:
            logger.info(f"{NBA_CDN_SOURCE} returned {len(games)} games for {team.full_name}")
    return games


def is_supported_team(team_name: Optional[str], league: Optional[str] = "NBA") -> bool:
    """True if the team resolves to a known franchise in the league."""
    return resolve_team(team_name, get_league_config(league).code) is not None
