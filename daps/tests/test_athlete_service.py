"""
Tests for athlete_service: directory CRUD and schedule sync trigger points.
"""
import pytest
from unittest.mock import AsyncMock
from sqlalchemy import select, func

from daps.database.models import Athlete, Game, Offer
from daps.services import athlete_service, schedule_provider, schedule_service
from daps.services.errors import ConflictError, NotFoundError, ValidationError
from daps.tests.factories import add_games, create_athlete_row, create_user_row, make_scheduled_games


@pytest.fixture
def fake_fetch(monkeypatch):
    mock = AsyncMock(return_value=make_scheduled_games(3))
    monkeypatch.setattr(schedule_provider, "fetch_team_schedule", mock)
    return mock


async def _game_count(session, athlete_id):
    result = await session.execute(select(func.count(Game.id)).where(Game.athlete_id == athlete_id))
    return result.scalar_one()


# ============================================================================
# Create
# ============================================================================

@pytest.mark.asyncio
async def test_create_athlete_derives_slug_and_syncs(db_session, fake_fetch):
    athlete = await athlete_service.create_athlete(db_session, name="Test Player", team="Celtics", league="nba")

    assert athlete["slug"] == "test-player"
    assert athlete["league"] == "NBA"
    assert athlete["active"] is True
    assert athlete["featured"] is False
    assert athlete["image_url"] == ""
    assert athlete["schedule_sync"]["success"] is True
    assert athlete["schedule_sync"]["count"] == 3
    assert await _game_count(db_session, athlete["id"]) == 3
    fake_fetch.assert_awaited_once_with("Celtics", "NBA")


@pytest.mark.asyncio
async def test_create_athlete_hyphenated_name(db_session, fake_fetch):
    athlete = await athlete_service.create_athlete(
        db_session, name="Shai Gilgeous-Alexander", team="Thunder", league="NBA", sync_schedule=False
    )
    assert athlete["slug"] == "shai-gilgeous-alexander"
    assert "schedule_sync" not in athlete
    fake_fetch.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_athlete_duplicate_slug(db_session, fake_fetch):
    await athlete_service.create_athlete(db_session, name="Test Player", team="Celtics", league="NBA")
    with pytest.raises(ConflictError):
        await athlete_service.create_athlete(db_session, name="Test  Player!", team="Lakers", league="NBA")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name,team,league",
    [("", "Celtics", "NBA"), ("Test Player", "  ", "NBA"), ("Test Player", "Celtics", None), ("!!!", "Celtics", "NBA")],
)
async def test_create_athlete_validation(db_session, fake_fetch, name, team, league):
    with pytest.raises(ValidationError):
        await athlete_service.create_athlete(db_session, name=name, team=team, league=league)


@pytest.mark.asyncio
async def test_create_athlete_tolerates_sync_failure(db_session, monkeypatch):
    monkeypatch.setattr(
        schedule_service, "ensure_fresh_schedule", AsyncMock(side_effect=RuntimeError("provider exploded"))
    )
    athlete = await athlete_service.create_athlete(db_session, name="Test Player", team="Celtics", league="NBA")

    assert athlete["schedule_sync"]["success"] is False
    assert (await athlete_service.get_athlete(db_session, "test-player"))["id"] == athlete["id"]


# ============================================================================
# Read
# ============================================================================

@pytest.mark.asyncio
async def test_get_athlete_by_id_or_slug(db_session):
    row = await create_athlete_row(db_session)

    assert (await athlete_service.get_athlete(db_session, row.id))["slug"] == "jayson-tatum"
    assert (await athlete_service.get_athlete(db_session, str(row.id)))["slug"] == "jayson-tatum"
    assert (await athlete_service.get_athlete(db_session, "jayson-tatum"))["id"] == row.id

    with pytest.raises(NotFoundError):
        await athlete_service.get_athlete(db_session, "nobody")
    with pytest.raises(ValidationError):
        await athlete_service.get_athlete(db_session, "  ")


@pytest.mark.asyncio
@pytest.mark.parametrize("identifier", ["²", "٣", "12²"])
async def test_get_athlete_non_ascii_digits_are_not_found(db_session, identifier):
    await create_athlete_row(db_session)

    with pytest.raises(NotFoundError):
        await athlete_service.get_athlete(db_session, identifier)


@pytest.mark.asyncio
async def test_list_athletes_filters_and_sorts(db_session):
    await create_athlete_row(db_session, name="Zion Williamson", team="Pelicans")
    await create_athlete_row(db_session, name="Anthony Edwards", team="Timberwolves", featured=True)
    await create_athlete_row(db_session, name="Retired Guy", team="Celtics", active=False, featured=True)

    everyone = await athlete_service.list_athletes(db_session)
    assert [a["name"] for a in everyone] == ["Anthony Edwards", "Retired Guy", "Zion Williamson"]

    active = await athlete_service.list_athletes(db_session, active_only=True)
    assert [a["name"] for a in active] == ["Anthony Edwards", "Zion Williamson"]

    featured = await athlete_service.list_athletes(db_session, active_only=True, featured_only=True)
    assert [a["name"] for a in featured] == ["Anthony Edwards"]


# ============================================================================
# Update
# ============================================================================

@pytest.mark.asyncio
async def test_update_athlete_partial(db_session, fake_fetch):
    row = await create_athlete_row(db_session, image_url="https://img/1.png")

    updated = await athlete_service.update_athlete(db_session, row.slug, {"featured": True, "unknown": "ignored"})

    assert updated["featured"] is True
    assert updated["team"] == "Celtics"
    assert updated["image_url"] == "https://img/1.png"
    assert "schedule_sync" not in updated
    fake_fetch.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_athlete_team_change_forces_resync(db_session, fake_fetch):
    row = await create_athlete_row(db_session)
    await add_games(db_session, row.id, 70, opponent_prefix="Old")
    fake_fetch.return_value = make_scheduled_games(4)

    updated = await athlete_service.update_athlete(db_session, row.id, {"team": "Lakers"})

    assert updated["team"] == "Lakers"
    assert updated["schedule_sync"]["refreshed"] is True
    fake_fetch.assert_awaited_once_with("Lakers", "NBA")
    assert await _game_count(db_session, row.id) == 4


@pytest.mark.asyncio
async def test_update_athlete_same_team_does_not_resync(db_session, fake_fetch):
    row = await create_athlete_row(db_session)
    updated = await athlete_service.update_athlete(db_session, row.id, {"team": "Celtics", "name": "J. Tatum"})
    assert updated["name"] == "J. Tatum"
    fake_fetch.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_athlete_rejects_blank_and_taken_slug(db_session):
    row = await create_athlete_row(db_session)
    await create_athlete_row(db_session, name="Jaylen Brown")

    with pytest.raises(ValidationError):
        await athlete_service.update_athlete(db_session, row.id, {"name": "  "})
    with pytest.raises(ConflictError):
        await athlete_service.update_athlete(db_session, row.id, {"slug": "Jaylen Brown"})

    renamed = await athlete_service.update_athlete(db_session, row.id, {"slug": "JT 0"})
    assert renamed["slug"] == "jt-0"


@pytest.mark.asyncio
@pytest.mark.parametrize("flag", ["active", "featured"])
async def test_update_athlete_rejects_null_flags(db_session, flag):
    row = await create_athlete_row(db_session, featured=True)

    with pytest.raises(ValidationError, match=flag):
        await athlete_service.update_athlete(db_session, row.slug, {flag: None})

    stored = await athlete_service.get_athlete(db_session, row.id)
    assert stored["active"] is True
    assert stored["featured"] is True


@pytest.mark.asyncio
async def test_update_unknown_athlete(db_session):
    with pytest.raises(NotFoundError):
        await athlete_service.update_athlete(db_session, 404, {"featured": True})


# ============================================================================
# Delete and resync
# ============================================================================

@pytest.mark.asyncio
async def test_delete_athlete_removes_games(db_session):
    row = await create_athlete_row(db_session)
    await add_games(db_session, row.id, 3)

    assert await athlete_service.delete_athlete(db_session, row.slug) is True

    assert await _game_count(db_session, row.id) == 0
    remaining = await db_session.execute(select(func.count(Athlete.id)))
    assert remaining.scalar_one() == 0


@pytest.mark.asyncio
async def test_delete_athlete_with_offers_conflicts(db_session):
    user = await create_user_row(db_session)
    row = await create_athlete_row(db_session)
    db_session.add(
        Offer(user_id=user.id, athlete_id=row.id, customer_name="Fan McFan", customer_email="fan@example.com")
    )
    await db_session.commit()

    with pytest.raises(ConflictError, match="deactivate"):
        await athlete_service.delete_athlete(db_session, row.id)

    assert (await athlete_service.get_athlete(db_session, row.id))["id"] == row.id


@pytest.mark.asyncio
async def test_resync_schedule_forces_refresh(db_session, fake_fetch):
    row = await create_athlete_row(db_session)
    await add_games(db_session, row.id, 75)
    fake_fetch.return_value = make_scheduled_games(80)

    result = await athlete_service.resync_schedule(db_session, row.slug)

    assert result == {"success": True, "count": 80, "message": "synced 80 games", "refreshed": True}
