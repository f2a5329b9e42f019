import logging
import random
from datetime import datetime, time, timedelta, timezone

from app.providers.base import GameRecord, ScheduleProvider
from app.utils.teams import all_abbreviations
from app.utils.week_calculator import POSTSEASON, parse_start_date, to_unified_week

logger = logging.getLogger(__name__)

# Wild Card, Divisional, Conference Championship, Super Bowl
POSTSEASON_GAMES = [6, 4, 2, 1]

GAME_LENGTH = timedelta(hours=3, minutes=30)

# (days after the week's first day, kickoff hour in UTC)
KICKOFF_SLOTS = [(0, 0), (3, 17), (3, 20), (3, 0), (4, 0)]

SPREADS = [1.0, 1.5, 2.5, 3.0, 3.5, 4.5, 6.0, 7.0, 9.5]


class MockScheduleProvider(ScheduleProvider):
    """
    Deterministic generated schedule for development and demos.

    Pairings rotate week to week (circle method over the 32 teams). Status
    and scores follow the clock: games whose kickoff has passed are live,
    and final once a game length has elapsed.
    """

    name = "mock"

    def __init__(self, config=None, now=None):
        super().__init__(config)
        self.now = now
        self.preseason_start = parse_start_date(self.config.get("PRESEASON_START_DATE"))

    def current_time(self):
        return self.now or datetime.now(timezone.utc)

    def pairings(self, round_index):
        teams = all_abbreviations()
        fixed, rest = teams[0], teams[1:]
        shift = round_index % len(rest)
        rotated = [fixed] + rest[shift:] + rest[:shift]

        half = len(rotated) // 2
        games = []
        for i in range(half):
            first, second = rotated[i], rotated[-(i + 1)]
            if (round_index + i) % 2:
                first, second = second, first
            games.append((first, second))
        return games

    def fetch_week_schedule(self, week, season_type):
        unified = to_unified_week(season_type, week)
        games = self.pairings(unified - 1)
        if season_type == POSTSEASON:
            games = games[: POSTSEASON_GAMES[week - 1]]

        week_start = datetime.combine(
            self.preseason_start + timedelta(weeks=unified - 1), time(), tzinfo=timezone.utc
        )
        now = self.current_time()

        records = []
        for index, (away_team, home_team) in enumerate(games):
            day_offset, hour = KICKOFF_SLOTS[index % len(KICKOFF_SLOTS)]
            kickoff = week_start + timedelta(days=day_offset, hours=hour)
            rng = random.Random(f"{self.season_year}-{season_type}{week}-{away_team}-{home_team}")
            spread = rng.choice(SPREADS)
            over_under = rng.choice(range(37, 52)) + 0.5

            status, away_score, home_score = "scheduled", None, None
            if now >= kickoff + GAME_LENGTH:
                status = "final"
                away_score, home_score = rng.randint(3, 38), rng.randint(3, 38)
            elif now >= kickoff:
                status = "live"
                away_score, home_score = rng.randint(0, 21), rng.randint(0, 21)

            records.append(
                GameRecord(
                    away_team=away_team,
                    home_team=home_team,
                    kickoff=kickoff,
                    status=status,
                    away_score=away_score,
                    home_score=home_score,
                    away_spread=spread,
                    home_spread=-spread,
                    over_under=over_under,
                    external_id=f"mock-{season_type}{week}-{away_team}-{home_team}",
                    source=self.name,
                )
            )

        logger.info(f"Generated {len(records)} mock games for {season_type}{week}")
        return records
