"""
Static franchise tables for every supported league.

Maps team display names to the identifiers each schedule/roster provider
expects. `espn_id` is the primary provider's team id; `nba_id` is the NBA.com
team id used by the secondary NBA feed.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class TeamInfo:
    """One franchise and its provider identifiers."""

    name: str  # Short display name, e.g. "Celtics"
    full_name: str
    abbrev: str
    league: str
    espn_id: str
    nba_id: Optional[str] = None


def _nba(name, full_name, abbrev, espn_id, nba_id) -> TeamInfo:
    return TeamInfo(name, full_name, abbrev, "NBA", espn_id, nba_id)


def _nfl(name, full_name, abbrev, espn_id) -> TeamInfo:
    return TeamInfo(name, full_name, abbrev, "NFL", espn_id)


NBA_TEAMS: List[TeamInfo] = [
    # Atlantic
    _nba("Celtics", "Boston Celtics", "BOS", "2", "1610612738"),
    _nba("Nets", "Brooklyn Nets", "BKN", "17", "1610612751"),
    _nba("Knicks", "New York Knicks", "NYK", "18", "1610612752"),
    _nba("76ers", "Philadelphia 76ers", "PHI", "20", "1610612755"),
    _nba("Raptors", "Toronto Raptors", "TOR", "28", "1610612761"),
    # Central
    _nba("Bulls", "Chicago Bulls", "CHI", "4", "1610612741"),
    _nba("Cavaliers", "Cleveland Cavaliers", "CLE", "5", "1610612739"),
    _nba("Pistons", "Detroit Pistons", "DET", "8", "1610612765"),
    _nba("Pacers", "Indiana Pacers", "IND", "11", "1610612754"),
    _nba("Bucks", "Milwaukee Bucks", "MIL", "15", "1610612749"),
    # Southeast
    _nba("Hawks", "Atlanta Hawks", "ATL", "1", "1610612737"),
    _nba("Hornets", "Charlotte Hornets", "CHA", "30", "1610612766"),
    _nba("Heat", "Miami Heat", "MIA", "14", "1610612748"),
    _nba("Magic", "Orlando Magic", "ORL", "19", "1610612753"),
    _nba("Wizards", "Washington Wizards", "WAS", "27", "1610612764"),
    # Northwest
    _nba("Nuggets", "Denver Nuggets", "DEN", "7", "1610612743"),
    _nba("Timberwolves", "Minnesota Timberwolves", "MIN", "16", "1610612750"),
    _nba("Thunder", "Oklahoma City Thunder", "OKC", "25", "1610612760"),
    _nba("Trail Blazers", "Portland Trail Blazers", "POR", "22", "1610612757"),
    _nba("Jazz", "Utah Jazz", "UTA", "26", "1610612762"),
    # Pacific
    _nba("Warriors", "Golden State Warriors", "GSW", "9", "1610612744"),
    _nba("Clippers", "LA Clippers", "LAC", "12", "1610612746"),
    _nba("Lakers", "Los Angeles Lakers", "LAL", "13", "1610612747"),
    _nba("Suns", "Phoenix Suns", "PHX", "21", "1610612756"),
    _nba("Kings", "Sacramento Kings", "SAC", "23", "1610612758"),
    # Southwest
    _nba("Mavericks", "Dallas Mavericks", "DAL", "6", "1610612742"),
    _nba("Rockets", "Houston Rockets", "HOU", "10", "1610612745"),
    _nba("Grizzlies", "Memphis Grizzlies", "MEM", "29", "1610612763"),
    _nba("Pelicans", "New Orleans Pelicans", "NOP", "3", "1610612740"),
    _nba("Spurs", "San Antonio Spurs", "SAS", "24", "1610612759"),
]

NFL_TEAMS: List[TeamInfo] = [
    _nfl("Cardinals", "Arizona Cardinals", "ARI", "22"),
    _nfl("Falcons", "Atlanta Falcons", "ATL", "1"),
    _nfl("Ravens", "Baltimore Ravens", "BAL", "33"),
    _nfl("Bills", "Buffalo Bills", "BUF", "2"),
    _nfl("Panthers", "Carolina Panthers", "CAR", "29"),
    _nfl("Bears", "Chicago Bears", "CHI", "3"),
    _nfl("Bengals", "Cincinnati Bengals", "CIN", "4"),
    _nfl("Browns", "Cleveland Browns", "CLE", "5"),
    _nfl("Cowboys", "Dallas Cowboys", "DAL", "6"),
    _nfl("Broncos", "Denver Broncos", "DEN", "7"),
    _nfl("Lions", "Detroit Lions", "DET", "8"),
    _nfl("Packers", "Green Bay Packers", "GB", "9"),
    _nfl("Texans", "Houston Texans", "HOU", "34"),
    _nfl("Colts", "Indianapolis Colts", "IND", "11"),
    _nfl("Jaguars", "Jacksonville Jaguars", "JAX", "30"),
    _nfl("Chiefs", "Kansas City Chiefs", "KC", "12"),
    _nfl("Raiders", "Las Vegas Raiders", "LV", "13"),
    _nfl("Chargers", "Los Angeles Chargers", "LAC", "24"),
    _nfl("Rams", "Los Angeles Rams", "LAR", "14"),
    _nfl("Dolphins", "Miami Dolphins", "MIA", "15"),
    _nfl("Vikings", "Minnesota Vikings", "MIN", "16"),
    _nfl("Patriots", "New England Patriots", "NE", "17"),
    _nfl("Saints", "New Orleans Saints", "NO", "18"),
    _nfl("Giants", "New York Giants", "NYG", "19"),
    _nfl("Jets", "New York Jets", "NYJ", "20"),
    _nfl("Eagles", "Philadelphia Eagles", "PHI", "21"),
    _nfl("Steelers", "Pittsburgh Steelers", "PIT", "23"),
    _nfl("49ers", "San Francisco 49ers", "SF", "25"),
    _nfl("Seahawks", "Seattle Seahawks", "SEA", "26"),
    _nfl("Buccaneers", "Tampa Bay Buccaneers", "TB", "27"),
    _nfl("Titans", "Tennessee Titans", "TEN", "10"),
    _nfl("Commanders", "Washington Commanders", "WSH", "28"),
]

TEAMS_BY_LEAGUE: Dict[str, List[TeamInfo]] = {
    "NBA": NBA_TEAMS,
    "NFL": NFL_TEAMS,
}


def normalize_team_token(value: Optional[str]) -> str:
    """
    Lower-case, collapse whitespace and drop a trailing plural "s".

    Providers disagree on singular/plural names ("Celtic" vs "Celtics"), so
    comparisons go through this.
    """
    if not value:
        return ""
    token = " ".join(value.lower().replace(".", "").split())
    if token.endswith("s") and len(token) > 3:
        token = token[:-1]
    return token


def _contains_words(haystack: List[str], needle: List[str]) -> bool:
    size = len(needle)
    return any(haystack[i:i + size] == needle for i in range(len(haystack) - size + 1))


def names_match(query: Optional[str], candidate: Optional[str]) -> bool:
    """
    Fuzzy containment check between two team names, in either direction.

    Matching is on whole words so "Nets" does not match "Hornets".
    """
    a = [normalize_team_token(word) for word in normalize_team_token(query).split()]
    b = [normalize_team_token(word) for word in normalize_team_token(candidate).split()]
    if not a or not b:
        return False
    return _contains_words(b, a) or _contains_words(a, b)


def resolve_team(team_name: Optional[str], league: Optional[str] = None) -> Optional[TeamInfo]:
    """
    Resolve a team display name to its franchise entry.

    Tries, in order: exact short name, case-insensitive short name, full name,
    abbreviation, then singular/plural-tolerant matching on the short name.
    When `league` is None every league is searched.

    Returns:
        TeamInfo or None if the name cannot be resolved
    """
    if not team_name or not team_name.strip():
        return None

    if league and league.strip().upper() in TEAMS_BY_LEAGUE:
        candidates = TEAMS_BY_LEAGUE[league.strip().upper()]
    else:
        candidates = [team for teams in TEAMS_BY_LEAGUE.values() for team in teams]

    wanted = team_name.strip()
    lower = wanted.lower()

    for team in candidates:
        if team.name == wanted:
            return team
    for team in candidates:
        if team.name.lower() == lower:
            return team
    for team in candidates:
        if team.full_name.lower() == lower:
            return team
    for team in candidates:
        if team.abbrev.lower() == lower:
            return team

    token = normalize_team_token(wanted)
    for team in candidates:
        if normalize_team_token(team.name) == token:
            return team
    return None


def list_teams(league: Optional[str] = None) -> List[Dict]:
    """List supported teams, optionally for one league (for UI pickers)."""
    leagues = [league.strip().upper()] if league else list(TEAMS_BY_LEAGUE.keys())
    return [
        {"key": team.name, "name": team.full_name, "abbrev": team.abbrev, "league": team.league}
        for code in leagues
        for team in TEAMS_BY_LEAGUE.get(code, [])
    ]
