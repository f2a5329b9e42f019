"""
Canonical NFL team vocabulary.

Providers spell teams differently (ESPN uses WSH, older feeds use OAK or SD,
the nfl.com schedule page uses full names). Everything stored in the matchups
table uses the abbreviations in NFL_TEAMS.
"""

from app.exceptions import MappingError

# abbreviation: (city, nickname, conference, division)
NFL_TEAMS = {
    "ARI": ("Arizona", "Cardinals", "NFC", "West"),
    "ATL": ("Atlanta", "Falcons", "NFC", "South"),
    "BAL": ("Baltimore", "Ravens", "AFC", "North"),
    "BUF": ("Buffalo", "Bills", "AFC", "East"),
    "CAR": ("Carolina", "Panthers", "NFC", "South"),
    "CHI": ("Chicago", "Bears", "NFC", "North"),
    "CIN": ("Cincinnati", "Bengals", "AFC", "North"),
    "CLE": ("Cleveland", "Browns", "AFC", "North"),
    "DAL": ("Dallas", "Cowboys", "NFC", "East"),
    "DEN": ("Denver", "Broncos", "AFC", "West"),
    "DET": ("Detroit", "Lions", "NFC", "North"),
    "GB": ("Green Bay", "Packers", "NFC", "North"),
    "HOU": ("Houston", "Texans", "AFC", "South"),
    "IND": ("Indianapolis", "Colts", "AFC", "South"),
    "JAX": ("Jacksonville", "Jaguars", "AFC", "South"),
    "KC": ("Kansas City", "Chiefs", "AFC", "West"),
    "LAC": ("Los Angeles", "Chargers", "AFC", "West"),
    "LAR": ("Los Angeles", "Rams", "NFC", "West"),
    "LV": ("Las Vegas", "Raiders", "AFC", "West"),
    "MIA": ("Miami", "Dolphins", "AFC", "East"),
    "MIN": ("Minnesota", "Vikings", "NFC", "North"),
    "NE": ("New England", "Patriots", "AFC", "East"),
    "NO": ("New Orleans", "Saints", "NFC", "South"),
    "NYG": ("New York", "Giants", "NFC", "East"),
    "NYJ": ("New York", "Jets", "AFC", "East"),
    "PHI": ("Philadelphia", "Eagles", "NFC", "East"),
    "PIT": ("Pittsburgh", "Steelers", "AFC", "North"),
    "SEA": ("Seattle", "Seahawks", "NFC", "West"),
    "SF": ("San Francisco", "49ers", "NFC", "West"),
    "TB": ("Tampa Bay", "Buccaneers", "NFC", "South"),
    "TEN": ("Tennessee", "Titans", "AFC", "South"),
    "WAS": ("Washington", "Commanders", "NFC", "East"),
}

# Provider specific and historical abbreviations
TEAM_ALIASES = {
    "WSH": "WAS",
    "JAC": "JAX",
    "LA": "LAR",
    "STL": "LAR",
    "OAK": "LV",
    "LVR": "LV",
    "SD": "LAC",
    "GNB": "GB",
    "KAN": "KC",
    "NWE": "NE",
    "NOR": "NO",
    "SFO": "SF",
    "TAM": "TB",
    "ARZ": "ARI",
    "BLT": "BAL",
    "CLV": "CLE",
    "HST": "HOU",
}

# Historical nicknames still found in older feeds
_LEGACY_NAMES = {
    "redskins": "WAS",
    "football team": "WAS",
    "washington football team": "WAS",
    "washington redskins": "WAS",
    "oakland raiders": "LV",
    "san diego chargers": "LAC",
    "st. louis rams": "LAR",
    "st louis rams": "LAR",
}


def _build_name_lookup():
    lookup = dict(_LEGACY_NAMES)
    cities = {}

    for abbr, (city, nickname, _conference, _division) in NFL_TEAMS.items():
        lookup[nickname.lower()] = abbr
        lookup[f"{city} {nickname}".lower()] = abbr
        cities.setdefault(city.lower(), []).append(abbr)

    # A city only identifies a team when it hosts exactly one
    for city, abbrs in cities.items():
        if len(abbrs) == 1:
            lookup.setdefault(city, abbrs[0])

    return lookup


_NAME_LOOKUP = _build_name_lookup()


def normalize_team(value):
    """
    Map any provider spelling of a team to its canonical abbreviation.

    Raises:
        MappingError: when the value is empty, ambiguous or unknown
    """
    if value is None:
        raise MappingError("Missing team")

    text = str(value).strip()
    if not text:
        raise MappingError("Missing team")

    upper = text.upper()
    if upper in NFL_TEAMS:
        return upper
    if upper in TEAM_ALIASES:
        return TEAM_ALIASES[upper]

    abbr = _NAME_LOOKUP.get(" ".join(text.lower().split()))
    if abbr:
        return abbr

    raise MappingError(f"Unknown team: {text!r}")


def team_full_name(abbreviation):
    """Return 'City Nickname' for a canonical abbreviation"""
    city, nickname, _conference, _division = NFL_TEAMS[abbreviation]
    return f"{city} {nickname}"


def all_abbreviations():
    return sorted(NFL_TEAMS)
