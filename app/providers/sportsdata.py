import logging

from app.exceptions import ConfigurationError, SourceFetchError
from app.providers.base import GameRecord, HttpScheduleProvider

logger = logging.getLogger(__name__)

# SportsData.io local times are US Eastern
SPORTSDATA_TIMEZONE = "America/New_York"

BYE = "BYE"


class SportsDataScheduleProvider(HttpScheduleProvider):
    """SportsData.io ScoresByWeek API (requires an API key)"""

    name = "sportsdata"

    def __init__(self, config=None, session=None):
        super().__init__(config, session)
        self.api_key = self.config.get("SPORTSDATA_API_KEY")
        self.api_base_url = (
            self.config.get("SPORTSDATA_BASE_URL") or "https://api.sportsdata.io/v3/nfl"
        ).rstrip("/")

    def check_configuration(self):
        if not self.api_key:
            raise ConfigurationError(
                "SPORTSDATA_API_KEY is not set; the sportsdata provider cannot be used"
            )

    def season_code(self, season_type):
        return f"{self.season_year}{season_type}"

    def fetch_week_schedule(self, week, season_type):
        self.check_configuration()

        url = f"{self.api_base_url}/scores/json/ScoresByWeek/{self.season_code(season_type)}/{week}"
        data = self._get_json(url, headers={"Ocp-Apim-Subscription-Key": self.api_key})

        if not isinstance(data, list):
            raise SourceFetchError(
                "Invalid response format from SportsData.io", source=self.name
            )

        records = self.parse_records(data, self._parse_game)
        logger.info(f"Retrieved {len(records)} games from SportsData.io for {season_type}{week}")
        return records

    def _parse_game(self, game):
        if BYE in (game.get("AwayTeam"), game.get("HomeTeam")):
            return None

        if game.get("DateTimeUTC"):
            kickoff, kickoff_timezone = game["DateTimeUTC"], "UTC"
        else:
            kickoff, kickoff_timezone = game.get("DateTime") or game.get("Date"), SPORTSDATA_TIMEZONE

        status = game.get("Status")
        if game.get("Canceled"):
            status = "Canceled"

        # PointSpread is quoted from the home team's side
        home_spread = game.get("PointSpread")
        away_spread = -home_spread if isinstance(home_spread, (int, float)) else None

        return GameRecord(
            away_team=game.get("AwayTeam"),
            home_team=game.get("HomeTeam"),
            kickoff=kickoff,
            kickoff_timezone=kickoff_timezone,
            status=status,
            away_score=game.get("AwayScore"),
            home_score=game.get("HomeScore"),
            venue=(game.get("StadiumDetails") or {}).get("Name"),
            weather={
                "forecast": game.get("ForecastDescription"),
                "temperature": game.get("ForecastTempHigh"),
                "wind_speed": game.get("ForecastWindSpeed"),
                "humidity": None,
            },
            away_spread=away_spread,
            home_spread=home_spread,
            over_under=game.get("OverUnder"),
            external_id=game.get("GameKey"),
            source=self.name,
        )
