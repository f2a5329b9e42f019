import logging
import re
from datetime import datetime

from bs4 import BeautifulSoup

from app.providers.base import GameRecord, HttpScheduleProvider

logger = logging.getLogger(__name__)

MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11,
    "december": 12,
}

# nfl.com shows kickoffs in the reader's zone abbreviation
TIMEZONE_ABBREVIATIONS = {
    "ET": "America/New_York",
    "EDT": "America/New_York",
    "EST": "America/New_York",
    "CT": "America/Chicago",
    "CDT": "America/Chicago",
    "CST": "America/Chicago",
    "MT": "America/Denver",
    "MDT": "America/Denver",
    "MST": "America/Denver",
    "PT": "America/Los_Angeles",
    "PDT": "America/Los_Angeles",
    "PST": "America/Los_Angeles",
    "GMT": "UTC",
    "UTC": "UTC",
    "BST": "Europe/London",
}
DEFAULT_TIMEZONE = "America/New_York"

DATE_HEADER_RE = re.compile(r"([A-Za-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?\b", re.I)
TIME_RE = re.compile(r"(\d{1,2}):(\d{2})\s*([AP]M)", re.I)

# Schedule months from January on belong to the season that started the year before
SEASON_ROLLOVER_MONTH = 8


def _parse_date_header(text, season_year):
    """'Thursday, August 14th' -> date in the right calendar year"""
    for match in DATE_HEADER_RE.finditer(text or ""):
        name = match.group(1).lower()
        month = MONTHS.get(name) or next(
            (number for full, number in MONTHS.items() if len(name) >= 3 and full.startswith(name)),
            None,
        )
        if month is None:
            continue

        year = season_year if month >= SEASON_ROLLOVER_MONTH else season_year + 1
        try:
            return datetime(year, month, int(match.group(2))).date()
        except ValueError:
            return None
    return None


def _parse_time(text):
    match = TIME_RE.search(text or "")
    if not match:
        return None

    hours, minutes = int(match.group(1)) % 12, int(match.group(2))
    if match.group(3).upper() == "PM":
        hours += 12
    return hours, minutes


def _text(node):
    return node.get_text(" ", strip=True) if node is not None else ""


def parse_schedule_html(html, season_year):
    """
    Extract games from an nfl.com weekly schedule page.

    Each game is a .nfl-c-matchup-strip container, preceded by an
    h2.d3-o-section-title date header. The first team listed is the away team.
    """
    soup = BeautifulSoup(html, "html.parser")
    records = []
    seen = set()

    for strip in soup.select(".nfl-c-matchup-strip"):
        teams = [_text(node) for node in strip.select(".nfl-c-matchup-strip_team-fullname")]
        if len(teams) != 2 or not all(teams):
            logger.debug(f"Skipping matchup strip without two teams: {teams}")
            continue

        away_team, home_team = teams
        pairing = frozenset((away_team, home_team))
        if pairing in seen:
            continue
        seen.add(pairing)

        header = strip.find_previous("h2", class_="d3-o-section-title")
        game_date = _parse_date_header(_text(header), season_year)
        game_time = _parse_time(_text(strip.select_one(".nfl-c-matchup-strip_date-time")))
        zone = _text(strip.select_one(".nfl-c-matchup-strip_date-timezone")).upper()

        kickoff, status = None, "scheduled"
        if game_date is not None:
            hours, minutes = game_time or (0, 0)
            kickoff = datetime(game_date.year, game_date.month, game_date.day, hours, minutes)
            if game_time is None:
                status = "TBD"

        records.append(
            GameRecord(
                away_team=away_team,
                home_team=home_team,
                kickoff=kickoff,
                kickoff_timezone=TIMEZONE_ABBREVIATIONS.get(zone, DEFAULT_TIMEZONE),
                status=status,
                source=NflComScheduleProvider.name,
            )
        )

    return records


class NflComScheduleProvider(HttpScheduleProvider):
    """Scraper of the public nfl.com weekly schedule pages"""

    name = "nflcom"
    user_agent = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    def __init__(self, config=None, session=None):
        super().__init__(config, session)
        self.schedule_url = (
            self.config.get("NFLCOM_SCHEDULE_URL") or "https://www.nfl.com/schedules"
        ).rstrip("/")

    def week_url(self, week, season_type):
        return f"{self.schedule_url}/{self.season_year}/{season_type}{week}/"

    def fetch_week_schedule(self, week, season_type):
        html = self._get_text(self.week_url(week, season_type))
        records = parse_schedule_html(html, self.season_year)
        logger.info(f"Scraped {len(records)} games from nfl.com for {season_type}{week}")
        return records
