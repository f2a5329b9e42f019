import logging

from app.exceptions import SourceFetchError
from app.providers.base import GameRecord, HttpScheduleProvider
from app.utils.week_calculator import POSTSEASON, POSTSEASON_WEEKS, PRESEASON, REGULAR_SEASON

logger = logging.getLogger(__name__)

ESPN_SEASON_TYPES = {PRESEASON: 1, REGULAR_SEASON: 2, POSTSEASON: 3}

# ESPN numbers the Pro Bowl as postseason week 4, so the Super Bowl is week 5
ESPN_SUPER_BOWL_WEEK = 5


class EspnScheduleProvider(HttpScheduleProvider):
    """ESPN public scoreboard API"""

    name = "espn"

    def __init__(self, config=None, session=None):
        super().__init__(config, session)
        self.api_base_url = (
            self.config.get("NFL_API_BASE_URL")
            or "https://site.api.espn.com/apis/site/v2/sports/football/nfl"
        ).rstrip("/")

    def espn_week(self, week, season_type):
        if season_type == POSTSEASON and week == POSTSEASON_WEEKS:
            return ESPN_SUPER_BOWL_WEEK
        return week

    def fetch_week_schedule(self, week, season_type):
        params = {
            "seasontype": ESPN_SEASON_TYPES[season_type],
            "week": self.espn_week(week, season_type),
            "dates": self.season_year,
        }
        data = self._get_json(f"{self.api_base_url}/scoreboard", params=params)

        events = data.get("events") if isinstance(data, dict) else None
        if not isinstance(events, list):
            raise SourceFetchError("Invalid response format from ESPN API", source=self.name)

        records = self.parse_records(events, self._parse_event)
        logger.info(f"Retrieved {len(records)} games from ESPN for {season_type}{week}")
        return records

    def _parse_event(self, event):
        competitions = event.get("competitions") or []
        if not competitions:
            logger.warning(f"ESPN event {event.get('id')} has no competition, skipping")
            return None

        competition = competitions[0]
        competitors = {
            competitor.get("homeAway"): competitor
            for competitor in competition.get("competitors") or []
            if isinstance(competitor, dict)
        }
        away = competitors.get("away", {})
        home = competitors.get("home", {})

        status_type = (competition.get("status") or event.get("status") or {}).get("type") or {}
        state = status_type.get("state")

        # ESPN reports 0-0 for games that have not started
        has_scores = state in ("in", "post")

        away_spread, home_spread, over_under = self._parse_odds(competition.get("odds"))

        return GameRecord(
            away_team=self._team_name(away),
            home_team=self._team_name(home),
            kickoff=competition.get("date") or event.get("date"),
            status=status_type.get("name") or state,
            away_score=away.get("score") if has_scores else None,
            home_score=home.get("score") if has_scores else None,
            venue=(competition.get("venue") or {}).get("fullName"),
            weather=self._parse_weather(event.get("weather")),
            away_spread=away_spread,
            home_spread=home_spread,
            over_under=over_under,
            external_id=str(event.get("id")) if event.get("id") else None,
            source=self.name,
        )

    @staticmethod
    def _team_name(competitor):
        team = competitor.get("team") or {}
        return team.get("abbreviation") or team.get("displayName")

    @staticmethod
    def _parse_weather(weather):
        if not weather:
            return None
        return {
            "forecast": weather.get("displayValue"),
            "temperature": weather.get("temperature") or weather.get("highTemperature"),
            "wind_speed": None,
            "humidity": None,
        }

    @staticmethod
    def _parse_odds(odds):
        """Returns (away_spread, home_spread, over_under)"""
        if not odds:
            return None, None, None

        line = odds[0]
        away_spread = home_spread = None

        point_spread = line.get("pointSpread") or {}
        if point_spread:
            home_spread = ((point_spread.get("home") or {}).get("close") or {}).get("line")
            away_spread = ((point_spread.get("away") or {}).get("close") or {}).get("line")
        elif line.get("spread") is not None:
            # Plain spread is quoted from the home team's side
            home_spread = line.get("spread")
            try:
                away_spread = -float(home_spread)
            except (TypeError, ValueError):
                away_spread = None

        return away_spread, home_spread, line.get("overUnder")
