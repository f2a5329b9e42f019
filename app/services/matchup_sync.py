"""
Matchup synchronization: pulls one week's games from a schedule provider
and upserts them into the matchups table.

Matchups are keyed by (season, away_team, home_team). An existing row keeps
its id forever; picks reference it. Scores and enrichment data (venue,
weather, spreads) only ever overwrite stored values with real values, so a
provider that omits them never erases what another provider supplied.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.exceptions import (
    ConfigurationError,
    DuplicateMatchupError,
    MappingError,
    PersistenceError,
    SourceFetchError,
)
from app.services import week_service
from app.services.persistence import MatchupStore, SettingsStore
from app.utils.cache_utils import invalidate_model_cache
from app.utils.field_mapping import normalize_game_record
from app.utils.logging_config import ContextualLogger
from app.utils.timezone_utils import ensure_utc
from app.utils.week_calculator import (
    MAX_WEEK,
    SEASON_TYPES,
    from_unified_week,
    make_season_tag,
    to_unified_week,
)

logger = ContextualLogger(__name__)

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"

ERROR_SOURCE = "source"
ERROR_CONFIGURATION = "configuration"

SCORE_FIELDS = ("away_score", "home_score")
ENRICHMENT_FIELDS = (
    "venue",
    "weather_forecast",
    "temperature",
    "wind_speed",
    "humidity",
    "away_spread",
    "home_spread",
    "over_under",
)


@dataclass
class SyncResult:
    """Outcome of syncing one week"""

    week: int
    season: str
    data_source: str
    games_found: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: list = field(default_factory=list)
    error_type: str = None
    message: str = ""

    @property
    def success(self):
        # Per-game errors are reported but do not fail the run
        return self.error_type is None

    def fail(self, error_type, message):
        self.error_type = error_type
        self.message = message
        self.games_found = self.created = self.updated = self.unchanged = 0

    def to_dict(self):
        return {
            "success": self.success,
            "week": self.week,
            "season": self.season,
            "data_source": self.data_source,
            "games_found": self.games_found,
            "created": self.created,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "errors": list(self.errors),
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass
class SyncBatchResult:
    """Outcome of syncing several weeks"""

    results: list = field(default_factory=list)
    current_week: object = None

    @property
    def success(self):
        return all(result.success for result in self.results)

    def total(self, name):
        return sum(getattr(result, name) for result in self.results)

    @property
    def errors(self):
        return [
            f"{result.season}: {error}" for result in self.results for error in result.errors
        ]

    @property
    def message(self):
        failed = [result.season for result in self.results if not result.success]
        summary = (
            f"Synced {len(self.results)} week(s): {self.total('created')} created, "
            f"{self.total('updated')} updated, {self.total('unchanged')} unchanged"
        )
        if failed:
            summary += f"; failed: {', '.join(failed)}"
        return summary

    def to_dict(self):
        data = {
            "success": self.success,
            "message": self.message,
            "games_found": self.total("games_found"),
            "created": self.total("created"),
            "updated": self.total("updated"),
            "unchanged": self.total("unchanged"),
            "errors": self.errors,
            "results": [result.to_dict() for result in self.results],
        }
        if self.current_week is not None:
            data["current_week"] = self.current_week.to_dict()
        return data


class MatchupSynchronizer:
    """Synchronizes matchups for one schedule provider"""

    def __init__(self, provider, store=None, settings=None):
        self.provider = provider
        self.store = store or MatchupStore()
        self.settings = settings or SettingsStore()

    def sync_week(self, week, season_type):
        """
        Sync one week of one season phase.

        Args:
            week: week within the phase (PRE 1-3, REG 1-18, POST 1-4)
            season_type: PRE, REG or POST

        Returns:
            SyncResult

        Raises:
            ValueError: if week/season_type do not name a real week
        """
        if season_type not in SEASON_TYPES:
            raise ValueError(f"Unknown season type: {season_type!r}")

        unified_week = to_unified_week(season_type, week)
        season = make_season_tag(season_type, week)
        log = logger.bind(season=season, source=self.provider.name)
        result = SyncResult(week=unified_week, season=season, data_source=self.provider.name)

        log.info("Starting matchup sync")
        try:
            self.provider.check_configuration()
            records = self.provider.fetch_week_schedule(week, season_type)
        except ConfigurationError as e:
            result.fail(ERROR_CONFIGURATION, f"Provider not configured: {e}")
            log.error(result.message)
            return result
        except SourceFetchError as e:
            result.fail(ERROR_SOURCE, f"Failed to fetch schedule: {e}")
            log.error(result.message)
            return result
        except Exception as e:
            result.fail(ERROR_SOURCE, f"Failed to fetch schedule: unexpected {type(e).__name__}: {e}")
            log.exception(result.message)
            return result

        result.games_found = len(records)

        for record in records:
            try:
                outcome = self._sync_game(record, week, season_type)
            except (MappingError, PersistenceError) as e:
                error = f"{record.describe()}: {e}"
                result.errors.append(error)
                log.warning(f"Skipped game {error}")
                continue

            if outcome == CREATED:
                result.created += 1
            elif outcome == UPDATED:
                result.updated += 1
            else:
                result.unchanged += 1

        result.message = (
            f"{season}: {result.games_found} games, {result.created} created, "
            f"{result.updated} updated, {result.unchanged} unchanged, "
            f"{len(result.errors)} errors"
        )
        log.info(result.message)

        if result.created or result.updated:
            invalidate_model_cache("matchups")

        return result

    def sync_weeks(self, weeks, season_type):
        return SyncBatchResult(results=[self.sync_week(week, season_type) for week in weeks])

    def sync_unified_week(self, week):
        season_type, week_in_phase = from_unified_week(week)
        return self.sync_week(week_in_phase, season_type)

    def sync_current_week(self, now=None):
        current = week_service.calculate_current_week(now=now, settings=self.settings)
        return SyncBatchResult(
            results=[self.sync_unified_week(current.week)], current_week=current
        )

    def sync_next_week(self, now=None):
        """Sync the week after the calculated current week (nothing after week 25)"""
        current = week_service.calculate_current_week(now=now, settings=self.settings)
        results = []
        if current.week < MAX_WEEK:
            results.append(self.sync_unified_week(current.week + 1))
        return SyncBatchResult(results=results, current_week=current)

    def sync_current_and_next(self, now=None):
        """Sync the calculated current week and the one after it (if any)"""
        current = week_service.calculate_current_week(now=now, settings=self.settings)

        weeks = [current.week]
        if current.week < MAX_WEEK:
            weeks.append(current.week + 1)

        return SyncBatchResult(
            results=[self.sync_unified_week(week) for week in weeks],
            current_week=current,
        )

    def sync_season(self):
        """Sync every week of the season, preseason through Super Bowl"""
        return SyncBatchResult(
            results=[self.sync_unified_week(week) for week in range(1, MAX_WEEK + 1)]
        )

    def _sync_game(self, record, week, season_type):
        fields = normalize_game_record(record, week, season_type)

        existing = self.store.find_matchup(
            fields["season"], fields["away_team"], fields["home_team"]
        )

        if existing is None:
            try:
                self.store.insert_matchup(
                    {
                        **fields,
                        "data_source": self.provider.name,
                        "last_api_update": datetime.now(timezone.utc),
                        "api_update_count": 1,
                    }
                )
                return CREATED
            except DuplicateMatchupError as e:
                # A concurrent run inserted the same matchup first; update its row
                logger.info(f"Lost insert race for {e.matchup_id}, updating instead")
                existing = self.store.get_matchup(e.matchup_id)
                if existing is None:
                    raise PersistenceError(f"Matchup {e.matchup_id} vanished after insert race")

        changes = self.diff_matchup(existing, fields)
        if not changes:
            return UNCHANGED

        changes.update(
            {
                "data_source": self.provider.name,
                "last_api_update": datetime.now(timezone.utc),
                "api_update_count": (existing.api_update_count or 0) + 1,
            }
        )
        self.store.update_matchup(existing.id, changes)
        return UPDATED

    @staticmethod
    def diff_matchup(existing, fields):
        """Columns whose incoming value should replace the stored one"""
        changes = {}

        if existing.status != fields["status"]:
            changes["status"] = fields["status"]

        if ensure_utc(existing.game_time) != fields["game_time"]:
            changes["game_time"] = fields["game_time"]

        if existing.week != fields["week"]:
            changes["week"] = fields["week"]

        for name in SCORE_FIELDS + ENRICHMENT_FIELDS:
            value = fields.get(name)
            if value is not None and getattr(existing, name) != value:
                changes[name] = value

        return changes
