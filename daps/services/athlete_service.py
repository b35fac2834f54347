"""
Athlete directory: CRUD over athletes plus the schedule sync trigger points.

Every operation that references an athlete accepts either the integer id or
the slug.
"""

from typing import Dict, List, Optional, Union
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from daps.database.models import Athlete, Offer
from daps.services import schedule_service
from daps.services.errors import ConflictError, NotFoundError, ValidationError
from daps.utils.slugify import slugify
import logging

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "team", "league", "image_url", "active", "featured", "slug")


def _athlete_to_dict(athlete: Athlete) -> Dict:
    """
    Convert an Athlete ORM instance to a dictionary.

    Args:
        athlete: Athlete ORM instance

    Returns:
        Athlete dictionary
    """
    return {
        "id": athlete.id,
        "slug": athlete.slug,
        "name": athlete.name,
        "team": athlete.team,
        "league": athlete.league,
        "image_url": athlete.image_url or "",
        "active": athlete.active,
        "featured": athlete.featured,
        "external_id": athlete.external_id,
        "created_at": athlete.created_at.isoformat() if athlete.created_at else None,
    }


async def resolve_athlete(session: AsyncSession, id_or_slug: Union[int, str, None]) -> Athlete:
    """
    Load an athlete by primary key, falling back to slug.

    Raises:
        ValidationError: No identifier given
        NotFoundError: No athlete matches
    """
    if id_or_slug is None or (isinstance(id_or_slug, str) and not id_or_slug.strip()):
        raise ValidationError("Athlete id is required")

    athlete = None
    text = str(id_or_slug).strip()
    if text.isascii() and text.isdigit():
        athlete = await session.get(Athlete, int(text))
    if athlete is None:
        result = await session.execute(select(Athlete).where(Athlete.slug == text))
        athlete = result.scalar_one_or_none()
    if athlete is None:
        raise NotFoundError(f"Athlete {id_or_slug} not found")
    return athlete


async def _slug_taken(session: AsyncSession, slug: str, exclude_id: Optional[int] = None) -> bool:
    query = select(Athlete.id).where(Athlete.slug == slug)
    if exclude_id is not None:
        query = query.where(Athlete.id != exclude_id)
    result = await session.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


async def _sync_best_effort(session: AsyncSession, athlete: Athlete, force: bool) -> Dict:
    athlete_id = athlete.id
    try:
        result = await schedule_service.ensure_fresh_schedule(session, athlete, force=force)
        return result.to_dict()
    except Exception as e:
        logger.warning(f"Schedule sync for athlete {athlete_id} failed: {e}", exc_info=True)
        return schedule_service.SyncResult(success=False, message="schedule sync failed").to_dict()


async def create_athlete(
    session: AsyncSession,
    name: str,
    team: str,
    league: str,
    slug: Optional[str] = None,
    image_url: Optional[str] = None,
    active: bool = True,
    featured: bool = False,
    external_id: Optional[str] = None,
    sync_schedule: bool = True,
) -> Dict:
    """
    Create an athlete and populate their schedule.

    The schedule sync is best-effort: its outcome is reported under
    "schedule_sync" and never fails the creation.

    Raises:
        ValidationError: Blank name/team/league, or a name that yields an empty slug
        ConflictError: Slug already in use
    """
    name = (name or "").strip()
    team = (team or "").strip()
    league = (league or "").strip()
    if not name or not team or not league:
        raise ValidationError("Name, team and league are required")

    slug = slugify(slug) if slug else slugify(name)
    if not slug:
        raise ValidationError(f"Cannot derive a slug from {name!r}")

    if await _slug_taken(session, slug):
        raise ConflictError(f"Athlete slug '{slug}' already exists")

    athlete = Athlete(
        slug=slug,
        name=name,
        team=team,
        league=league.upper(),
        image_url=image_url or None,
        active=active,
        featured=featured,
        external_id=external_id,
    )
    session.add(athlete)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError(f"Athlete slug '{slug}' already exists")
    await session.refresh(athlete)
    logger.info(f"Created athlete {athlete.id} ({slug})")

    response = _athlete_to_dict(athlete)
    if sync_schedule:
        response["schedule_sync"] = await _sync_best_effort(session, athlete, force=False)
    return response


async def list_athletes(session: AsyncSession, active_only: bool = False, featured_only: bool = False) -> List[Dict]:
    """List athletes sorted by name."""
    query = select(Athlete)
    if active_only:
        query = query.where(Athlete.active.is_(True))
    if featured_only:
        query = query.where(Athlete.featured.is_(True))
    result = await session.execute(query.order_by(Athlete.name.asc(), Athlete.id.asc()))
    return [_athlete_to_dict(a) for a in result.scalars().all()]


async def get_athlete(session: AsyncSession, id_or_slug: Union[int, str]) -> Dict:
    athlete = await resolve_athlete(session, id_or_slug)
    return _athlete_to_dict(athlete)


async def update_athlete(session: AsyncSession, id_or_slug: Union[int, str], fields: Dict) -> Dict:
    """
    Partially update an athlete. Only keys present in `fields` are applied.

    A team change forces a schedule resync (best-effort).

    Raises:
        NotFoundError: Unknown athlete
        ValidationError: Blanking a required field, an empty slug, or a null flag
        ConflictError: New slug already in use
    """
    athlete = await resolve_athlete(session, id_or_slug)
    updates = {key: fields[key] for key in UPDATABLE_FIELDS if key in fields}

    for key in ("name", "team", "league"):
        if key in updates:
            updates[key] = (updates[key] or "").strip()
            if not updates[key]:
                raise ValidationError(f"{key} cannot be blank")
    for key in ("active", "featured"):
        if key in updates and updates[key] is None:
            raise ValidationError(f"{key} must be true or false")
    if "league" in updates:
        updates["league"] = updates["league"].upper()
    if "slug" in updates:
        updates["slug"] = slugify(updates["slug"] or "")
        if not updates["slug"]:
            raise ValidationError("Slug cannot be blank")
        if await _slug_taken(session, updates["slug"], exclude_id=athlete.id):
            raise ConflictError(f"Athlete slug '{updates['slug']}' already exists")

    team_changed = "team" in updates and updates["team"] != athlete.team
    for key, value in updates.items():
        setattr(athlete, key, value)

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        # The only unique column an update can touch is the slug
        if "slug" in updates:
            raise ConflictError(f"Athlete slug '{updates['slug']}' already exists")
        raise
    await session.refresh(athlete)

    response = _athlete_to_dict(athlete)
    if team_changed:
        logger.info(f"Team changed for athlete {athlete.id}, forcing schedule resync")
        response["schedule_sync"] = await _sync_best_effort(session, athlete, force=True)
    return response


async def delete_athlete(session: AsyncSession, id_or_slug: Union[int, str]) -> bool:
    """
    Delete an athlete and their games.

    Athletes with offers cannot be deleted; deactivate them instead.

    Raises:
        NotFoundError: Unknown athlete
        ConflictError: Offers reference the athlete
    """
    athlete = await resolve_athlete(session, id_or_slug)
    athlete_id = athlete.id

    result = await session.execute(select(func.count(Offer.id)).where(Offer.athlete_id == athlete_id))
    if result.scalar_one() > 0:
        raise ConflictError("Athlete has offers; deactivate instead of deleting")

    try:
        # Games go with the athlete through the relationship cascade
        await session.delete(athlete)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Athlete has offers; deactivate instead of deleting")
    logger.info(f"Deleted athlete {athlete_id}")
    return True


async def resync_schedule(session: AsyncSession, id_or_slug: Union[int, str]) -> Dict:
    """Force a schedule refresh for an athlete (admin)."""
    athlete = await resolve_athlete(session, id_or_slug)
    result = await schedule_service.ensure_fresh_schedule(session, athlete, force=True)
    return result.to_dict()
