"""
Tests for the schedule source adapter.

Provider HTTP calls go through httpx.MockTransport; no network access.
"""
import json
from datetime import date

import httpx
import pytest

from daps.services import schedule_provider
from daps.utils.constants import LEAGUES
from daps.utils.teams import resolve_team


def _espn_event(event_id, when, home, away, venue="TD Garden"):
    competition = {
        "competitors": [
            {"homeAway": "home", "team": home},
            {"homeAway": "away", "team": away},
        ]
    }
    if venue:
        competition["venue"] = {"fullName": venue}
    return {"id": event_id, "date": when, "competitions": [competition]}


CELTICS = {"id": "2", "abbreviation": "BOS", "displayName": "Boston Celtics", "shortDisplayName": "Celtics", "name": "Celtics"}
LAKERS = {"id": "13", "abbreviation": "LAL", "displayName": "Los Angeles Lakers", "shortDisplayName": "Lakers", "name": "Lakers"}
KNICKS = {"id": "18", "abbreviation": "NY", "displayName": "New York Knicks", "shortDisplayName": "Knicks", "name": "Knicks"}

ESPN_PAYLOAD = {
    "events": [
        _espn_event("401", "2026-01-21T00:30Z", LAKERS, CELTICS, venue=None),
        _espn_event("400", "2025-10-22T23:30Z", CELTICS, KNICKS),
        {"id": "bad", "date": "not a date", "competitions": []},
        {"id": "worse"},
    ]
}

CDN_PAYLOAD = {
    "schedule": [
        {
            "gameId": "0022500001",
            "gameDateTimeUTC": "2025-10-22T23:30:00Z",
            "arenaName": "TD Garden",
            "homeTeam": {"teamTricode": "BOS", "teamName": "Celtics"},
            "awayTeam": {"teamTricode": "NYK", "teamName": "Knicks"},
        },
        {
            "gameId": "0022500002",
            "gameDate": "2025-10-24T00:00:00Z",
            "homeTeam": {"teamTricode": "DET", "teamName": "Pistons"},
            "awayTeam": {"teamTricode": "BOS", "teamName": "Celtics"},
        },
    ]
}


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestSeasonYear:
    def test_nba_keyed_by_end_year(self):
        nba = LEAGUES["NBA"]
        assert schedule_provider.compute_season_year(date(2025, 10, 1), nba) == 2026
        assert schedule_provider.compute_season_year(date(2025, 9, 30), nba) == 2025
        assert schedule_provider.compute_season_year(date(2026, 3, 1), nba) == 2026

    def test_nfl_keyed_by_start_year(self):
        nfl = LEAGUES["NFL"]
        assert schedule_provider.compute_season_year(date(2025, 9, 1), nfl) == 2025
        assert schedule_provider.compute_season_year(date(2026, 1, 15), nfl) == 2025
        assert schedule_provider.compute_season_year(date(2026, 8, 31), nfl) == 2025

    def test_season_label(self):
        assert schedule_provider.season_label(date(2025, 11, 5), LEAGUES["NBA"]) == "2025-26"
        assert schedule_provider.season_label(date(2026, 2, 5), LEAGUES["NBA"]) == "2025-26"


class TestNormalizers:
    def test_events_shape(self):
        team = resolve_team("Celtics", "NBA")
        games = schedule_provider.normalize_schedule(ESPN_PAYLOAD, team, "espn")

        assert [g.external_id for g in games] == ["400", "401"]
        first, second = games
        assert first.opponent == "Knicks"
        assert first.venue == "TD Garden"
        assert second.opponent == "Lakers"
        assert second.venue == "Away"
        assert all(g.source == "espn" for g in games)
        assert first.date.tzinfo is not None

    def test_cdn_schedule_shape(self):
        team = resolve_team("Celtics", "NBA")
        games = schedule_provider.normalize_schedule(CDN_PAYLOAD, team, "nba_cdn")

        assert [(g.opponent, g.venue) for g in games] == [("Knicks", "TD Garden"), ("Pistons", "Away")]

    def test_league_schedule_shape_filters_other_teams(self):
        payload = {
            "leagueSchedule": {
                "gameDates": [
                    {"games": [CDN_PAYLOAD["schedule"][0]]},
                    {
                        "games": [
                            {
                                "gameId": "x",
                                "gameDateTimeUTC": "2025-10-25T00:00:00Z",
                                "homeTeam": {"teamTricode": "LAL", "teamName": "Lakers"},
                                "awayTeam": {"teamTricode": "GSW", "teamName": "Warriors"},
                            },
                            CDN_PAYLOAD["schedule"][1],
                        ]
                    },
                ]
            }
        }
        team = resolve_team("Celtics", "NBA")
        games = schedule_provider.normalize_schedule(payload, team, "nba_cdn")
        assert [g.opponent for g in games] == ["Knicks", "Pistons"]

    def test_unrecognized_payload(self):
        team = resolve_team("Celtics", "NBA")
        with pytest.raises(schedule_provider.UpstreamError):
            schedule_provider.normalize_schedule({"unexpected": []}, team, "espn")


class TestFetchTeamSchedule:
    @pytest.mark.asyncio
    async def test_primary_provider_request_and_result(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=ESPN_PAYLOAD)

        async with _client(handler) as client:
            games = await schedule_provider.fetch_team_schedule("celtic", "NBA", client=client, today=date(2025, 11, 1))

        assert len(games) == 2
        assert len(seen) == 1
        assert seen[0].url.path.endswith("/basketball/nba/teams/2/schedule")
        assert seen[0].url.params["season"] == "2026"

    @pytest.mark.asyncio
    async def test_unmapped_team_makes_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        async with _client(handler) as client:
            assert await schedule_provider.fetch_team_schedule("Sonics", "NBA", client=client) == []

    @pytest.mark.asyncio
    async def test_falls_back_to_nba_cdn(self, monkeypatch):
        monkeypatch.setattr(schedule_provider, "SECONDARY_PROVIDER_ENABLED", True)

        def handler(request):
            if "cdn.nba.com" in request.url.host:
                assert request.url.path.endswith("/2025-26_BOS_schedule.json")
                return httpx.Response(200, json=CDN_PAYLOAD)
            return httpx.Response(503)

        async with _client(handler) as client:
            games = await schedule_provider.fetch_team_schedule("BOS", "NBA", client=client, today=date(2025, 11, 1))

        assert len(games) == 2
        assert {g.source for g in games} == {"nba_cdn"}

    @pytest.mark.asyncio
    async def test_empty_primary_result_also_falls_back(self, monkeypatch):
        monkeypatch.setattr(schedule_provider, "SECONDARY_PROVIDER_ENABLED", True)

        def handler(request):
            if "cdn.nba.com" in request.url.host:
                return httpx.Response(200, json=CDN_PAYLOAD)
            return httpx.Response(200, json={"events": []})

        async with _client(handler) as client:
            games = await schedule_provider.fetch_team_schedule("Boston Celtics", "NBA", client=client)
        assert [g.source for g in games] == ["nba_cdn", "nba_cdn"]

    @pytest.mark.asyncio
    async def test_secondary_disabled(self, monkeypatch):
        monkeypatch.setattr(schedule_provider, "SECONDARY_PROVIDER_ENABLED", False)
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        async with _client(handler) as client:
            assert await schedule_provider.fetch_team_schedule("Celtics", "NBA", client=client) == []
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_nfl_has_no_secondary(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        async with _client(handler) as client:
            assert await schedule_provider.fetch_team_schedule("Chiefs", "NFL", client=client) == []
        assert len(calls) == 1
        assert calls[0].url.path.endswith("/football/nfl/teams/12/schedule")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "handler",
        [
            lambda request: (_ for _ in ()).throw(httpx.ConnectTimeout("timed out", request=request)),
            lambda request: httpx.Response(200, content=b"<html>not json</html>"),
            lambda request: httpx.Response(200, content=json.dumps([1, 2, 3]).encode()),
        ],
        ids=["timeout", "bad-json", "not-an-object"],
    )
    async def test_failures_yield_empty_list(self, monkeypatch, handler):
        monkeypatch.setattr(schedule_provider, "SECONDARY_PROVIDER_ENABLED", False)
        async with _client(handler) as client:
            assert await schedule_provider.fetch_team_schedule("Celtics", "NBA", client=client) == []


def test_is_supported_team():
    assert schedule_provider.is_supported_team("Celtics", "NBA")
    assert schedule_provider.is_supported_team("Chiefs", "NFL")
    assert not schedule_provider.is_supported_team("Chiefs", "NBA")
    assert not schedule_provider.is_supported_team("", "NBA")
