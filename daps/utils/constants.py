"""
Constants and league configuration used by the schedule sync engine.
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import load_dotenv

load_dotenv()


def get_bool_env(key: str, default: bool = True) -> bool:
    """
    Parse a boolean environment variable from a string value.

    .env files store all values as strings, so "true", "True", "1", "yes"
    become True and everything else (including empty string) False.

    Args:
        key: Environment variable name
        default: Default value if the variable is not set

    Returns:
        bool: Parsed boolean value
    """
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class LeagueConfig:
    """Per-league season and provider settings."""

    code: str
    sport: str  # Provider sport path segment, e.g. "basketball"
    provider_league: str  # Provider league path segment, e.g. "nba"
    standard_season_games: int
    season_start_month: int  # 1 = January
    # True when the provider labels a season by the year it ends in
    # (the 2025-26 NBA season is season=2026 on the primary provider).
    season_keyed_by_end_year: bool


DEFAULT_LEAGUE = "NBA"

LEAGUES: Dict[str, LeagueConfig] = {
    "NBA": LeagueConfig(
        code="NBA",
        sport="basketball",
        provider_league="nba",
        standard_season_games=82,
        season_start_month=int(os.getenv("NBA_SEASON_START_MONTH", "10")),
        season_keyed_by_end_year=True,
    ),
    "NFL": LeagueConfig(
        code="NFL",
        sport="football",
        provider_league="nfl",
        standard_season_games=17,
        season_start_month=int(os.getenv("NFL_SEASON_START_MONTH", "9")),
        season_keyed_by_end_year=False,
    ),
}

# A schedule holding fewer than this share of a standard season is refetched
SCHEDULE_STALENESS_RATIO = float(os.getenv("SCHEDULE_STALENESS_RATIO", "0.85"))

OFFER_CURRENCY = "USD"

# Fan messages about an offer are addressed here
OPS_EMAIL = os.getenv("OPS_EMAIL", "ops@daps.com")

MESSAGE_SUBJECT_MAX_LENGTH = 200


def get_league_config(league: Optional[str]) -> LeagueConfig:
    """Look up a league config by code (case-insensitive), defaulting to the NBA."""
    if league:
        config = LEAGUES.get(league.strip().upper())
        if config:
            return config
    return LEAGUES[DEFAULT_LEAGUE]
