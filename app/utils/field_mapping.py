"""
Field reconciliation between schedule providers and the matchups table.

Providers disagree on status strings, season type codes, team spellings and
timestamp formats. These functions translate provider vocabulary into the
internal one. They are pure and deterministic.
"""

import logging
import re
from datetime import date, datetime, timezone

import pytz

from app.exceptions import MappingError
from app.utils.teams import normalize_team
from app.utils.week_calculator import (
    POSTSEASON,
    PRESEASON,
    REGULAR_SEASON,
    make_season_tag,
    to_unified_week,
)

logger = logging.getLogger(__name__)

STATUS_SCHEDULED = "scheduled"
STATUS_LIVE = "live"
STATUS_FINAL = "final"
STATUS_POSTPONED = "postponed"
STATUS_DELAYED = "delayed"
STATUS_RESCHEDULED = "rescheduled"
STATUS_TBD = "TBD"

MATCHUP_STATUSES = (
    STATUS_SCHEDULED,
    STATUS_LIVE,
    STATUS_FINAL,
    STATUS_POSTPONED,
    STATUS_DELAYED,
    STATUS_RESCHEDULED,
    STATUS_TBD,
)

# Keys are lower-cased with everything but letters and digits removed
STATUS_ALIASES = {
    # scheduled
    "scheduled": STATUS_SCHEDULED,
    "pre": STATUS_SCHEDULED,
    "pregame": STATUS_SCHEDULED,
    "notstarted": STATUS_SCHEDULED,
    "statusscheduled": STATUS_SCHEDULED,
    # live
    "live": STATUS_LIVE,
    "in": STATUS_LIVE,
    "inprogress": STATUS_LIVE,
    "halftime": STATUS_LIVE,
    "endofperiod": STATUS_LIVE,
    "statusinprogress": STATUS_LIVE,
    "statushalftime": STATUS_LIVE,
    "statusendperiod": STATUS_LIVE,
    "statusendofperiod": STATUS_LIVE,
    # final
    "final": STATUS_FINAL,
    "post": STATUS_FINAL,
    "f": STATUS_FINAL,
    "fot": STATUS_FINAL,
    "finalot": STATUS_FINAL,
    "finalovertime": STATUS_FINAL,
    "completed": STATUS_FINAL,
    "closed": STATUS_FINAL,
    "statusfinal": STATUS_FINAL,
    "statusfinalovertime": STATUS_FINAL,
    # postponed (cancelled games have no better bucket)
    "postponed": STATUS_POSTPONED,
    "canceled": STATUS_POSTPONED,
    "cancelled": STATUS_POSTPONED,
    "statuspostponed": STATUS_POSTPONED,
    "statuscanceled": STATUS_POSTPONED,
    "statuscancelled": STATUS_POSTPONED,
    # delayed
    "delayed": STATUS_DELAYED,
    "suspended": STATUS_DELAYED,
    "raindelay": STATUS_DELAYED,
    "statusdelayed": STATUS_DELAYED,
    "statusraindelay": STATUS_DELAYED,
    "statussuspended": STATUS_DELAYED,
    # rescheduled
    "rescheduled": STATUS_RESCHEDULED,
    "statusrescheduled": STATUS_RESCHEDULED,
    # explicitly unknown
    "tbd": STATUS_TBD,
    "statustbd": STATUS_TBD,
}

SEASON_TYPE_ALIASES = {
    "pre": PRESEASON,
    "preseason": PRESEASON,
    "reg": REGULAR_SEASON,
    "regular": REGULAR_SEASON,
    "regularseason": REGULAR_SEASON,
    "post": POSTSEASON,
    "postseason": POSTSEASON,
    "playoff": POSTSEASON,
    "playoffs": POSTSEASON,
}

# Numeric season type codes differ per provider
NUMERIC_SEASON_TYPES = {
    "espn": {1: PRESEASON, 2: REGULAR_SEASON, 3: POSTSEASON},
    "sportsdata": {1: REGULAR_SEASON, 2: PRESEASON, 3: POSTSEASON},
}
DEFAULT_NUMERIC_PROVIDER = "espn"

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_SEASON_YEAR_RE = re.compile(r"^\d{4}")


def _status_key(value):
    return _NON_ALNUM_RE.sub("", str(value).lower())


def map_status(value):
    """Translate a provider status into one of MATCHUP_STATUSES"""
    if value is None or not str(value).strip():
        return STATUS_SCHEDULED

    status = STATUS_ALIASES.get(_status_key(value))
    if status is None:
        logger.debug(f"Unrecognized provider status {value!r}, using {STATUS_TBD}")
        return STATUS_TBD
    return status


def map_season_type(code, provider=None):
    """
    Translate a provider season type code into PRE, REG or POST.

    Numeric codes are interpreted with the provider's own table (ESPN and
    SportsData.io number their season types differently). String codes may
    carry a leading season year, e.g. '2025PRE'.
    """
    if code is None or isinstance(code, bool):
        raise MappingError(f"Unsupported season type: {code!r}")

    if isinstance(code, int) or (isinstance(code, str) and code.strip().isdigit()):
        table = NUMERIC_SEASON_TYPES.get(provider or DEFAULT_NUMERIC_PROVIDER)
        if table is None:
            raise MappingError(f"No numeric season types known for provider {provider!r}")
        season_type = table.get(int(code))
        if season_type is None:
            raise MappingError(f"Unsupported season type code: {code!r}")
        return season_type

    key = _SEASON_YEAR_RE.sub("", str(code).strip())
    season_type = SEASON_TYPE_ALIASES.get(_status_key(key))
    if season_type is None:
        raise MappingError(f"Unsupported season type: {code!r}")
    return season_type


def normalize_kickoff(value, tz_name=None):
    """
    Convert a provider kickoff into a timezone-aware UTC datetime.

    Naive values are interpreted in tz_name (UTC when not given).
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MappingError("Missing kickoff time")

    if isinstance(value, str):
        text = value.strip().replace("Z", "+00:00")
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            raise MappingError(f"Invalid kickoff time: {value!r}")
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    elif not isinstance(value, datetime):
        raise MappingError(f"Invalid kickoff time: {value!r}")

    if value.tzinfo is None:
        try:
            tz = pytz.timezone(tz_name) if tz_name else pytz.UTC
        except pytz.UnknownTimeZoneError:
            raise MappingError(f"Unknown kickoff timezone: {tz_name!r}")
        value = tz.localize(value)

    return value.astimezone(timezone.utc)


def parse_score(value):
    """Scores arrive as ints, numeric strings, or not at all"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)

    text = str(value).strip()
    if not text:
        return None
    try:
        return int(float(text))
    except ValueError:
        raise MappingError(f"Invalid score: {value!r}")


def parse_number(value):
    """Optional float fields such as spreads and temperatures"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    if not text or text.upper() in ("EVEN", "PK", "PICK"):
        return 0.0 if text else None
    try:
        return float(text)
    except ValueError:
        logger.debug(f"Ignoring non-numeric value {value!r}")
        return None


def _clean_text(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_game_record(record, week, season_type):
    """
    Map a provider GameRecord into matchup column values.

    Args:
        record: GameRecord from a schedule provider
        week: week number within the season phase
        season_type: PRE, REG or POST

    Returns:
        dict: matchup fields keyed by column name

    Raises:
        MappingError: if the record is missing required data
    """
    if record.parse_error:
        raise MappingError(record.parse_error)

    away_team = normalize_team(record.away_team)
    home_team = normalize_team(record.home_team)
    if away_team == home_team:
        raise MappingError(f"Both sides of the game are {away_team}")

    weather = record.weather or {}

    return {
        "week": to_unified_week(season_type, week),
        "season": make_season_tag(season_type, week),
        "away_team": away_team,
        "home_team": home_team,
        "game_time": normalize_kickoff(record.kickoff, record.kickoff_timezone),
        "status": map_status(record.status),
        "away_score": parse_score(record.away_score),
        "home_score": parse_score(record.home_score),
        "venue": _clean_text(record.venue),
        "weather_forecast": _clean_text(weather.get("forecast")),
        "temperature": parse_number(weather.get("temperature")),
        "wind_speed": parse_number(weather.get("wind_speed")),
        "humidity": parse_number(weather.get("humidity")),
        "away_spread": parse_number(record.away_spread),
        "home_spread": parse_number(record.home_spread),
        "over_under": parse_number(record.over_under),
    }
