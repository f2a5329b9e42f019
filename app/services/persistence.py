"""
Persistence access for the synchronizer and request handlers.

MatchupStore and SettingsStore are the only code that reads or writes the
matchups and global_settings tables. Each write is its own short
transaction; uniqueness is enforced by the database, not by locks.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app import db
from app.exceptions import DuplicateMatchupError, PersistenceError
from app.models import GlobalSetting, Matchup
from app.utils.timezone_utils import ensure_utc
from app.utils.week_calculator import MAX_WEEK, SEASON_TYPES

logger = logging.getLogger(__name__)

# Known global setting keys
CURRENT_WEEK = "current_week"
CURRENT_SEASON_TYPE = "current_season_type"
POOL_LOCKED = "pool_locked"
POOL_LOCK_DATE = "pool_lock_date"
PRESEASON_START_DATE = "preseason_start_date"

KNOWN_SETTINGS = (
    CURRENT_WEEK,
    CURRENT_SEASON_TYPE,
    POOL_LOCKED,
    POOL_LOCK_DATE,
    PRESEASON_START_DATE,
)

TRUTHY_VALUES = ("true", "1", "yes", "on")
FALSY_VALUES = ("false", "0", "no", "off")


def validate_setting(key, value):
    """
    Normalize an administrator supplied setting value to its stored string.

    Raises:
        ValueError: unknown key or invalid value
    """
    if key not in KNOWN_SETTINGS:
        raise ValueError(f"Unknown setting: {key!r}")

    if key == CURRENT_WEEK:
        if isinstance(value, bool):
            raise ValueError(f"{key} must be an integer")
        try:
            week = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"{key} must be an integer")
        if week < 1 or week > MAX_WEEK:
            raise ValueError(f"{key} must be between 1 and {MAX_WEEK}")
        return str(week)

    if key == CURRENT_SEASON_TYPE:
        season_type = str(value).strip().upper()
        if season_type not in SEASON_TYPES:
            raise ValueError(f"{key} must be one of {', '.join(SEASON_TYPES)}")
        return season_type

    if key == POOL_LOCKED:
        if isinstance(value, bool):
            return "true" if value else "false"
        text = str(value).strip().lower()
        if text in TRUTHY_VALUES:
            return "true"
        if text in FALSY_VALUES:
            return "false"
        raise ValueError(f"{key} must be true or false")

    if key == POOL_LOCK_DATE:
        if value in (None, ""):
            return ""
        try:
            lock_date = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"{key} must be an ISO timestamp")
        return ensure_utc(lock_date).isoformat()

    # PRESEASON_START_DATE
    try:
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError:
        raise ValueError(f"{key} must be an ISO date (YYYY-MM-DD)")


class MatchupStore:
    """Query/command interface over the matchups table"""

    def find_matchup(self, season, away_team, home_team):
        try:
            return Matchup.query.filter_by(
                season=season, away_team=away_team, home_team=home_team
            ).first()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise PersistenceError(f"Lookup of {away_team} @ {home_team} {season} failed: {e}")

    def get_matchup(self, matchup_id):
        try:
            return db.session.get(Matchup, matchup_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise PersistenceError(f"Lookup of matchup {matchup_id} failed: {e}")

    def insert_matchup(self, fields):
        """
        Insert a new matchup and return its id.

        Raises:
            DuplicateMatchupError: another writer inserted the same
                (season, away_team, home_team) first
            PersistenceError: any other database failure
        """
        matchup = Matchup(**fields)
        db.session.add(matchup)

        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            existing = self.find_matchup(
                fields.get("season"), fields.get("away_team"), fields.get("home_team")
            )
            if existing is not None:
                raise DuplicateMatchupError(
                    f"Matchup {fields.get('away_team')} @ {fields.get('home_team')} "
                    f"{fields.get('season')} already exists",
                    matchup_id=existing.id,
                )
            raise PersistenceError(f"Insert rejected by database: {e.orig}")
        except SQLAlchemyError as e:
            db.session.rollback()
            raise PersistenceError(f"Insert failed: {e}")

        return matchup.id

    def update_matchup(self, matchup_id, fields):
        """Apply field changes to an existing matchup; the id never changes"""
        matchup = self.get_matchup(matchup_id)
        if matchup is None:
            raise PersistenceError(f"Matchup {matchup_id} not found")

        for key, value in fields.items():
            if key == "id":
                continue
            setattr(matchup, key, value)

        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise PersistenceError(f"Update of matchup {matchup_id} failed: {e}")

        return matchup

    def delete_matchups(self, season=None):
        """Administrative reset. Returns the number of rows deleted."""
        query = Matchup.query
        if season:
            query = query.filter_by(season=season)

        try:
            deleted = query.delete(synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise PersistenceError(f"Matchup reset failed: {e}")

        logger.warning(
            f"Deleted {deleted} matchups ({'season ' + season if season else 'all seasons'})"
        )
        return deleted


@dataclass
class PoolState:
    """Snapshot of the process-wide pool settings for one request or job"""

    current_week: int = None
    current_season_type: str = None
    manually_locked: bool = False
    lock_date: datetime = None
    checked_at: datetime = None

    @property
    def is_locked(self):
        if self.manually_locked:
            return True
        return bool(self.lock_date and self.checked_at and self.checked_at >= self.lock_date)

    @property
    def seconds_until_lock(self):
        if self.is_locked or not self.lock_date or not self.checked_at:
            return None
        return int((self.lock_date - self.checked_at).total_seconds())

    @property
    def can_purchase(self):
        return not self.is_locked

    def to_dict(self):
        return {
            "current_week": self.current_week,
            "current_season_type": self.current_season_type,
            "is_locked": self.is_locked,
            "manually_locked": self.manually_locked,
            "lock_date": self.lock_date.isoformat() if self.lock_date else None,
            "seconds_until_lock": self.seconds_until_lock,
            "can_register": True,
            "can_purchase": self.can_purchase,
            "checked_at": self.checked_at.isoformat() if self.checked_at else None,
        }


def parse_lock_date(value):
    """Stored lock dates are ISO timestamps in UTC"""
    if not value:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
    except ValueError:
        logger.warning(f"Ignoring malformed {POOL_LOCK_DATE} setting: {value!r}")
        return None


class SettingsStore:
    """Access to the global_settings key/value table"""

    def get_setting(self, key, default=None):
        setting = db.session.get(GlobalSetting, key)
        return setting.value if setting is not None else default

    def all_settings(self):
        return {
            setting.key: setting.value
            for setting in GlobalSetting.query.order_by(GlobalSetting.key).all()
        }

    def set_setting(self, key, value):
        return self.set_settings({key: value})

    def set_settings(self, values):
        """
        Upsert several settings in one transaction.

        Returns:
            bool: True if anything was written, False if every value
            already matched (no-op)

        Raises:
            PersistenceError: the write failed; nothing was changed
        """
        changed = False
        try:
            for key, value in values.items():
                value = str(value)
                setting = db.session.get(GlobalSetting, key)
                if setting is None:
                    db.session.add(GlobalSetting(key=key, value=value))
                    changed = True
                elif setting.value != value:
                    setting.value = value
                    changed = True

            if changed:
                db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise PersistenceError(f"Failed to save settings {sorted(values)}: {e}")

        return changed

    def get_int(self, key, default=None):
        value = self.get_setting(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Setting {key} is not an integer: {value!r}")
            return default

    def get_bool(self, key, default=False):
        value = self.get_setting(key)
        if value is None:
            return default
        return value.strip().lower() in TRUTHY_VALUES

    def get_pool_state(self, now=None):
        """Load the pool settings once into a PoolState snapshot"""
        return PoolState(
            current_week=self.get_int(CURRENT_WEEK),
            current_season_type=self.get_setting(CURRENT_SEASON_TYPE),
            manually_locked=self.get_bool(POOL_LOCKED),
            lock_date=parse_lock_date(self.get_setting(POOL_LOCK_DATE)),
            checked_at=ensure_utc(now) if now else datetime.now(timezone.utc),
        )
