"""
Week and season phase calculation for the loser pool.

Weeks use a unified numbering scheme across the whole season:

    1-3    preseason       (PRE1..PRE3)
    4-21   regular season  (REG1..REG18)
    22-25  postseason      (POST1..POST4)

The current week advances every seven days from the configured preseason
start date. Everything in this module is pure computation.
"""

import logging
import re
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone

import pytz

logger = logging.getLogger(__name__)

PRESEASON = "PRE"
REGULAR_SEASON = "REG"
POSTSEASON = "POST"
SEASON_TYPES = (PRESEASON, REGULAR_SEASON, POSTSEASON)

PRESEASON_WEEKS = 3
REGULAR_SEASON_WEEKS = 18
POSTSEASON_WEEKS = 4
MAX_WEEK = PRESEASON_WEEKS + REGULAR_SEASON_WEEKS + POSTSEASON_WEEKS

PHASE_LENGTHS = {
    PRESEASON: PRESEASON_WEEKS,
    REGULAR_SEASON: REGULAR_SEASON_WEEKS,
    POSTSEASON: POSTSEASON_WEEKS,
}

# Unified week number of the first week of each phase
PHASE_OFFSETS = {
    PRESEASON: 0,
    REGULAR_SEASON: PRESEASON_WEEKS,
    POSTSEASON: PRESEASON_WEEKS + REGULAR_SEASON_WEEKS,
}

PLAYOFF_ROUND_NAMES = [
    "Wild Card",
    "Divisional",
    "Conference Championship",
    "Super Bowl",
]

DEFAULT_PRESEASON_START = date(2025, 8, 7)

SEASON_TAG_RE = re.compile(r"^(PRE|REG|POST)(\d{1,2})$")


@dataclass(frozen=True)
class WeekInfo:
    """Descriptor of one logical pool week"""

    week: int
    season_type: str
    week_in_phase: int
    season_tag: str
    label: str
    round_name: str = None
    is_fallback: bool = False
    reason: str = ""

    @property
    def is_preseason(self):
        return self.season_type == PRESEASON

    @property
    def is_regular_season(self):
        return self.season_type == REGULAR_SEASON

    @property
    def is_postseason(self):
        return self.season_type == POSTSEASON

    @property
    def is_last_week(self):
        return self.week >= MAX_WEEK

    def to_dict(self):
        data = asdict(self)
        data["is_preseason"] = self.is_preseason
        data["is_regular_season"] = self.is_regular_season
        data["is_postseason"] = self.is_postseason
        return data


def make_season_tag(season_type, week_in_phase):
    """Build a season phase tag such as 'PRE2' or 'REG10'"""
    _validate_phase_week(season_type, week_in_phase)
    return f"{season_type}{week_in_phase}"


def parse_season_tag(tag):
    """Split a season phase tag into (season_type, week_in_phase)"""
    match = SEASON_TAG_RE.match((tag or "").strip().upper())
    if not match:
        raise ValueError(f"Invalid season tag: {tag!r}")

    season_type, week_in_phase = match.group(1), int(match.group(2))
    _validate_phase_week(season_type, week_in_phase)
    return season_type, week_in_phase


def to_unified_week(season_type, week_in_phase):
    """Convert a week within a phase to the unified week number"""
    _validate_phase_week(season_type, week_in_phase)
    return PHASE_OFFSETS[season_type] + week_in_phase


def from_unified_week(week):
    """Convert a unified week number to (season_type, week_in_phase)"""
    week = int(week)
    if week < 1 or week > MAX_WEEK:
        raise ValueError(f"Week {week} is outside 1-{MAX_WEEK}")

    for season_type in SEASON_TYPES:
        offset = PHASE_OFFSETS[season_type]
        if week <= offset + PHASE_LENGTHS[season_type]:
            return season_type, week - offset

    raise ValueError(f"Week {week} is outside 1-{MAX_WEEK}")


def week_label(season_type, week_in_phase):
    """Human readable week label"""
    if season_type == PRESEASON:
        return f"Preseason Week {week_in_phase}"
    if season_type == POSTSEASON:
        return f"Postseason Week {week_in_phase}"
    return f"Week {week_in_phase}"


def week_info_for(week, is_fallback=False, reason=""):
    """Build the WeekInfo for a unified week number"""
    season_type, week_in_phase = from_unified_week(week)
    round_name = None
    if season_type == POSTSEASON:
        round_name = PLAYOFF_ROUND_NAMES[week_in_phase - 1]

    return WeekInfo(
        week=int(week),
        season_type=season_type,
        week_in_phase=week_in_phase,
        season_tag=f"{season_type}{week_in_phase}",
        label=week_label(season_type, week_in_phase),
        round_name=round_name,
        is_fallback=is_fallback,
        reason=reason,
    )


def get_all_weeks():
    """All weeks of the season in order"""
    return [week_info_for(week) for week in range(1, MAX_WEEK + 1)]


def parse_start_date(value):
    """Coerce a preseason start date setting into a date"""
    if value is None:
        return DEFAULT_PRESEASON_START
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise TypeError(f"Unsupported preseason start date: {value!r}")


def _local_date(now, tz):
    if now is None:
        now = datetime.now(timezone.utc)

    if isinstance(now, str):
        now = datetime.fromisoformat(now.strip().replace("Z", "+00:00"))

    if isinstance(now, datetime):
        # Naive timestamps are treated as UTC
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        if tz is not None:
            if isinstance(tz, str):
                tz = pytz.timezone(tz)
            now = now.astimezone(tz)
        return now.date()

    if isinstance(now, date):
        return now

    raise TypeError(f"Unsupported timestamp: {now!r}")


def calculate_current_week(now=None, preseason_start=None, tz=None):
    """
    Compute the current pool week.

    Args:
        now: datetime, date or ISO string (defaults to the wall clock)
        preseason_start: date, datetime or ISO date string of preseason week 1
        tz: timezone name or tzinfo whose calendar date decides the week

    Returns:
        WeekInfo: never raises; malformed input yields week 1 with
        is_fallback set.
    """
    try:
        start = parse_start_date(preseason_start)
        today = _local_date(now, tz)
    except (TypeError, ValueError, pytz.UnknownTimeZoneError) as e:
        logger.warning(f"Week calculation fell back to week 1: {e}")
        return week_info_for(
            1, is_fallback=True, reason=f"Could not calculate week ({e}); defaulting to week 1"
        )

    if today < start:
        return week_info_for(
            1, reason=f"{today.isoformat()} is before preseason start {start.isoformat()}"
        )

    week = (today - start).days // 7 + 1
    if week > MAX_WEEK:
        return week_info_for(
            MAX_WEEK,
            reason=f"{today.isoformat()} is past the end of the season; clamped to week {MAX_WEEK}",
        )

    return week_info_for(
        week,
        reason=f"{(today - start).days} days since preseason start {start.isoformat()}",
    )


def _validate_phase_week(season_type, week_in_phase):
    if season_type not in PHASE_LENGTHS:
        raise ValueError(f"Unknown season type: {season_type!r}")

    if not isinstance(week_in_phase, int) or isinstance(week_in_phase, bool):
        raise ValueError(f"Week must be an integer, got {week_in_phase!r}")

    if week_in_phase < 1 or week_in_phase > PHASE_LENGTHS[season_type]:
        raise ValueError(
            f"{season_type} week must be between 1 and {PHASE_LENGTHS[season_type]}, "
            f"got {week_in_phase}"
        )
