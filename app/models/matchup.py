import uuid
from datetime import datetime, timezone

from app import db


def _new_matchup_id():
    return str(uuid.uuid4())


class Matchup(db.Model):
    __tablename__ = "matchups"

    # Stable identifier referenced by picks; never regenerated on update
    id = db.Column(db.String(36), primary_key=True, default=_new_matchup_id)

    # Game identification
    week = db.Column(db.Integer, nullable=False)  # Unified week 1-25
    season = db.Column(db.String(8), nullable=False)  # PRE2, REG10, POST1...

    # Teams (canonical abbreviations)
    away_team = db.Column(db.String(5), nullable=False)
    home_team = db.Column(db.String(5), nullable=False)

    # Game timing
    game_time = db.Column(db.DateTime(timezone=True), nullable=False)

    # Game status
    status = db.Column(db.String(20), nullable=False, default="scheduled")

    # Scores
    away_score = db.Column(db.Integer)
    home_score = db.Column(db.Integer)

    # Venue and weather
    venue = db.Column(db.String(200))
    weather_forecast = db.Column(db.String(200))
    temperature = db.Column(db.Float)
    wind_speed = db.Column(db.Float)
    humidity = db.Column(db.Float)

    # Point spreads (negative = favored)
    away_spread = db.Column(db.Float)
    home_spread = db.Column(db.Float)
    over_under = db.Column(db.Float)

    # Sync bookkeeping
    data_source = db.Column(db.String(30))
    last_api_update = db.Column(db.DateTime(timezone=True))
    api_update_count = db.Column(db.Integer, default=0)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Indexes
    __table_args__ = (
        db.UniqueConstraint(
            "season", "away_team", "home_team", name="unique_matchup_season_teams"
        ),
        db.Index("idx_matchup_week", "week"),
        db.Index("idx_matchup_game_time", "game_time"),
        db.CheckConstraint("away_team != home_team", name="different_teams"),
    )

    def __repr__(self):
        return f"<Matchup {self.away_team} @ {self.home_team} {self.season}>"

    @property
    def is_final(self):
        return self.status == "final"

    @property
    def winner(self):
        """'away', 'home' or 'tie' once the game is final"""
        if not self.is_final or self.away_score is None or self.home_score is None:
            return None

        if self.away_score > self.home_score:
            return "away"
        elif self.home_score > self.away_score:
            return "home"
        return "tie"

    @property
    def losing_team(self):
        """Abbreviation of the team that lost (None if not final or tie)"""
        winner = self.winner
        if winner == "away":
            return self.home_team
        elif winner == "home":
            return self.away_team
        return None

    def involves(self, team):
        return team in (self.away_team, self.home_team)

    @staticmethod
    def get_for_season(season):
        """Get all matchups for a season phase tag, in kickoff order"""
        return (
            Matchup.query.filter_by(season=season)
            .order_by(Matchup.game_time, Matchup.away_team)
            .all()
        )

    @staticmethod
    def get_for_week(week):
        """Get all matchups for a unified week, in kickoff order"""
        return (
            Matchup.query.filter_by(week=week)
            .order_by(Matchup.game_time, Matchup.away_team)
            .all()
        )

    def to_dict(self):
        """Convert matchup to dictionary for API responses"""
        # Lazy import to avoid circular imports
        from app.utils.timezone_utils import ensure_utc

        game_time = ensure_utc(self.game_time)
        last_api_update = ensure_utc(self.last_api_update)
        return {
            "id": self.id,
            "week": self.week,
            "season": self.season,
            "away_team": self.away_team,
            "home_team": self.home_team,
            "game_time": game_time.isoformat() if game_time else None,
            "status": self.status,
            "away_score": self.away_score,
            "home_score": self.home_score,
            "winner": self.winner,
            "losing_team": self.losing_team,
            "venue": self.venue,
            "weather": {
                "forecast": self.weather_forecast,
                "temperature": self.temperature,
                "wind_speed": self.wind_speed,
                "humidity": self.humidity,
            },
            "away_spread": self.away_spread,
            "home_spread": self.home_spread,
            "over_under": self.over_under,
            "data_source": self.data_source,
            "last_api_update": last_api_update.isoformat() if last_api_update else None,
            "api_update_count": self.api_update_count,
        }
