"""
Schedule cache and sync engine.

Each athlete's games are a cache of their team's season schedule. The cache is
refreshed when it holds fewer games than a season should (stale) or when a
refresh is forced (team change, admin resync). A refresh replaces the whole
schedule in one transaction, so readers see either the old games or the new
ones. An empty provider result never wipes stored games.
"""

import asyncio
import logging
import math
import os
import weakref
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from daps.database.models import Athlete, Game
from daps.services import redis_service, schedule_provider
from daps.services.errors import ConflictError, NotFoundError, ValidationError
from daps.utils.constants import SCHEDULE_STALENESS_RATIO, get_league_config
from daps.utils.datetime_utils import ensure_utc, parse_datetime

logger = logging.getLogger(__name__)

SCHEDULE_LOCK_TTL_SECONDS = int(os.getenv("SCHEDULE_LOCK_TTL_SECONDS", "60"))

REFRESH_IN_PROGRESS = "refresh already in progress"

# In-process refresh locks, keyed by athlete id. An entry lives only while a
# refresh holds or waits on it.
_refresh_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()


@dataclass
class SyncResult:
    """Outcome of a schedule sync attempt."""

    success: bool
    count: int = 0
    message: str = ""
    refreshed: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)


def staleness_threshold(league: Optional[str]) -> int:
    """
    Minimum stored game count for a schedule to count as fresh.

    floor(standard season games * SCHEDULE_STALENESS_RATIO): NBA 82 -> 69,
    NFL 17 -> 14. Unknown leagues use NBA settings.
    """
    config = get_league_config(league)
    return math.floor(config.standard_season_games * SCHEDULE_STALENESS_RATIO)


async def count_games(session: AsyncSession, athlete_id: int) -> int:
    """Number of stored games for an athlete."""
    result = await session.execute(select(func.count(Game.id)).where(Game.athlete_id == athlete_id))
    return result.scalar_one()


def _dedupe_key(game_date, opponent: str) -> Tuple:
    # SQLite hands back naive datetimes, so compare on naive UTC
    return ensure_utc(game_date).replace(tzinfo=None), (opponent or "").strip()


def _get_refresh_lock(athlete_id: int) -> asyncio.Lock:
    lock = _refresh_locks.get(athlete_id)
    if lock is None:
        lock = asyncio.Lock()
        _refresh_locks[athlete_id] = lock
    return lock


def _game_to_dict(game: Game) -> Dict:
    """
    Convert a Game ORM instance to a dictionary.

    Args:
        game: Game ORM instance

    Returns:
        Game dictionary
    """
    game_date = ensure_utc(game.date)
    return {
        "id": game.id,
        "athlete_id": game.athlete_id,
        "date": game_date.isoformat() if game_date else None,
        "opponent": game.opponent,
        "venue": game.venue,
        "source": game.source,
        "external_id": game.external_id,
    }


async def replace_games(
    session: AsyncSession, athlete_id: int, games: Iterable[schedule_provider.ScheduledGame]
) -> int:
    """
    Atomically replace every stored game of an athlete.

    Deletes the old rows and inserts the new batch (skipping duplicate
    date/opponent pairs) in one transaction. On a database error the
    transaction is rolled back and the previous games stay in place.

    Returns:
        Number of games stored

    Raises:
        SQLAlchemyError: The replace failed and was rolled back
    """
    try:
        await session.execute(delete(Game).where(Game.athlete_id == athlete_id))
        seen: Set[Tuple] = set()
        for game in games:
            key = _dedupe_key(game.date, game.opponent)
            if key in seen:
                continue
            seen.add(key)
            session.add(
                Game(
                    athlete_id=athlete_id,
                    date=game.date,
                    opponent=game.opponent.strip(),
                    venue=game.venue,
                    source=game.source,
                    external_id=game.external_id,
                )
            )
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        raise
    return len(seen)


async def ensure_fresh_schedule(session: AsyncSession, athlete: Athlete, force: bool = False) -> SyncResult:
    """
    Make sure an athlete's stored schedule is populated.

    Args:
        session: Database session
        athlete: Athlete ORM instance
        force: Refetch even when the stored schedule looks complete

    Returns:
        SyncResult. refreshed is True only when games were replaced.
    """
    athlete_id = athlete.id
    team = athlete.team
    league = athlete.league
    threshold = staleness_threshold(league)

    count = await count_games(session, athlete_id)
    if not force and count >= threshold:
        return SyncResult(success=True, count=count, message="schedule is fresh")

    lock = _get_refresh_lock(athlete_id)
    waited = lock.locked()
    async with lock:
        acquired, token = await redis_service.acquire_lock(
            f"schedule-refresh:{athlete_id}", SCHEDULE_LOCK_TTL_SECONDS
        )
        if not acquired:
            return SyncResult(success=False, count=count, message=REFRESH_IN_PROGRESS)

        try:
            # Another refresh may have completed while we waited for the lock
            count = await count_games(session, athlete_id)
            if count >= threshold and (not force or waited):
                return SyncResult(success=True, count=count, message="schedule is fresh")

            if not schedule_provider.is_supported_team(team, league):
                logger.warning(f"Schedule sync skipped for athlete {athlete_id}: team {team!r} not supported")
                return SyncResult(success=False, count=count, message=f"team not supported: {team}")

            games = await schedule_provider.fetch_team_schedule(team, league)
            if not games:
                logger.warning(f"Schedule sync for athlete {athlete_id} ({team}): provider returned no games")
                return SyncResult(success=False, count=count, message="provider returned no games")

            try:
                stored = await replace_games(session, athlete_id, games)
            except SQLAlchemyError as e:
                logger.error(f"Schedule replace failed for athlete {athlete_id}: {e}", exc_info=True)
                return SyncResult(success=False, count=count, message="failed to store schedule")

            logger.info(f"Synced {stored} games for athlete {athlete_id} ({team})")
            return SyncResult(success=True, count=stored, message=f"synced {stored} games", refreshed=True)
        finally:
            await redis_service.release_lock(f"schedule-refresh:{athlete_id}", token)


async def list_games(session: AsyncSession, athlete_id_or_slug: Union[int, str], refresh: bool = True) -> List[Dict]:
    """
    List an athlete's games, ascending by date.

    With refresh=True a stale schedule is refreshed first on a best-effort
    basis: any failure is logged and the stored games are served.

    Raises:
        NotFoundError: Unknown athlete
    """
    from daps.services.athlete_service import resolve_athlete

    athlete = await resolve_athlete(session, athlete_id_or_slug)
    athlete_id = athlete.id

    if refresh:
        try:
            result = await ensure_fresh_schedule(session, athlete)
            if not result.success:
                logger.info(f"Serving cached games for athlete {athlete_id}: {result.message}")
        except Exception as e:
            logger.warning(f"Reactive schedule refresh failed for athlete {athlete_id}: {e}", exc_info=True)

    result = await session.execute(
        select(Game).where(Game.athlete_id == athlete_id).order_by(Game.date.asc(), Game.id.asc())
    )
    return [_game_to_dict(game) for game in result.scalars().all()]


async def get_game(session: AsyncSession, game_id: int) -> Dict:
    """
    Get a game by ID.

    Raises:
        NotFoundError: Unknown game
    """
    game = await session.get(Game, game_id)
    if game is None:
        raise NotFoundError(f"Game {game_id} not found")
    return _game_to_dict(game)


def _parse_game_fields(date_value, opponent: Optional[str]):
    game_date = parse_datetime(date_value)
    if game_date is None:
        raise ValidationError("A valid game date is required")
    opponent = (opponent or "").strip()
    if not opponent:
        raise ValidationError("Opponent is required")
    return game_date, opponent


async def create_game(
    session: AsyncSession,
    athlete_id_or_slug: Union[int, str],
    date,
    opponent: str,
    venue: Optional[str] = None,
) -> Dict:
    """
    Add a single game to an athlete's schedule (admin maintenance).

    Raises:
        ValidationError: Missing/unparsable date or missing opponent
        NotFoundError: Unknown athlete
        ConflictError: The athlete already has a game on that date against that opponent
    """
    from daps.services.athlete_service import resolve_athlete

    game_date, opponent = _parse_game_fields(date, opponent)
    athlete = await resolve_athlete(session, athlete_id_or_slug)

    game = Game(athlete_id=athlete.id, date=game_date, opponent=opponent, venue=venue, source="manual")
    session.add(game)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Game already exists for this athlete, date and opponent")
    await session.refresh(game)
    return _game_to_dict(game)


async def bulk_create_games(session: AsyncSession, athlete_id_or_slug: Union[int, str], rows: List[Dict]) -> int:
    """
    Append games to an athlete's schedule, skipping duplicates.

    Rows without a parsable date or an opponent are skipped. Duplicates are
    detected against stored games and within the batch.

    Returns:
        Number of games inserted
    """
    from daps.services.athlete_service import resolve_athlete

    athlete = await resolve_athlete(session, athlete_id_or_slug)
    athlete_id = athlete.id

    existing = await session.execute(select(Game.date, Game.opponent).where(Game.athlete_id == athlete_id))
    seen = {_dedupe_key(row.date, row.opponent) for row in existing}

    inserted = 0
    for row in rows:
        try:
            game_date, opponent = _parse_game_fields(row.get("date"), row.get("opponent"))
        except ValidationError as e:
            logger.debug(f"Skipping bulk game row {row!r}: {e.message}")
            continue
        key = _dedupe_key(game_date, opponent)
        if key in seen:
            continue
        seen.add(key)
        session.add(
            Game(athlete_id=athlete_id, date=game_date, opponent=opponent, venue=row.get("venue"), source="manual")
        )
        inserted += 1

    await session.commit()
    logger.info(f"Bulk added {inserted} games for athlete {athlete_id}")
    return inserted
