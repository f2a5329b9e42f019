import logging
import time
from dataclasses import dataclass
from functools import wraps

import requests

from app.exceptions import SourceFetchError

logger = logging.getLogger(__name__)

DEFAULT_SEASON_YEAR = 2025

# Longest Retry-After we are willing to honor inside a request
MAX_RETRY_AFTER = 60


@dataclass
class GameRecord:
    """One game as reported by a schedule provider, in provider vocabulary"""

    away_team: str
    home_team: str
    kickoff: object
    status: str = None
    away_score: object = None
    home_score: object = None
    venue: str = None
    weather: dict = None
    away_spread: object = None
    home_spread: object = None
    over_under: object = None
    external_id: str = None
    kickoff_timezone: str = None
    source: str = None
    parse_error: str = None

    def describe(self):
        if self.away_team and self.home_team:
            return f"{self.away_team} @ {self.home_team}"
        return f"{self.source or 'provider'} game {self.external_id or '(no id)'}"


class ScheduleProvider:
    """
    Base class for external schedule sources.

    Subclasses implement fetch_week_schedule(week, season_type), where week
    is the week within the season phase and season_type is PRE, REG or POST.
    """

    name = None

    def __init__(self, config=None):
        self.config = config or {}

    @property
    def season_year(self):
        return int(self.config.get("NFL_SEASON_YEAR") or DEFAULT_SEASON_YEAR)

    def check_configuration(self):
        """Raise ConfigurationError if the provider cannot be used"""

    def fetch_week_schedule(self, week, season_type):
        raise NotImplementedError

    def parse_records(self, items, parser):
        """
        Run parser over raw provider items, one at a time.

        An item the parser cannot read becomes a GameRecord carrying
        parse_error, so the synchronizer reports it for that game alone.
        Items the parser returns None for (byes, empty slots) are dropped.
        """
        records = []
        for item in items:
            try:
                record = parser(item)
            except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
                external_id = (item.get("id") or item.get("GameKey")) if isinstance(item, dict) else None
                logger.warning(f"{self.name} returned an unreadable game {external_id}: {e!r}")
                record = GameRecord(
                    away_team=None,
                    home_team=None,
                    kickoff=None,
                    external_id=str(external_id) if external_id else None,
                    source=self.name,
                    parse_error=f"Unreadable {self.name} game data ({type(e).__name__}: {e})",
                )
            if record is not None:
                records.append(record)
        return records

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name}>"


def retry_with_backoff(func):
    """
    Retry a request with exponential backoff.

    Timeouts, connection errors, HTTP 429 and 5xx responses are retried up to
    the provider's max_retries attempts; other 4xx responses fail at once.
    Exhausted retries raise SourceFetchError.
    """

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        last_error = None

        for attempt in range(self.max_retries):
            delay = self.base_delay * (self.backoff_factor**attempt)

            try:
                response = func(self, *args, **kwargs)
            except requests.exceptions.RequestException as e:
                last_error = str(e)
                logger.warning(
                    f"{self.name} request failed: {e}. Attempt {attempt + 1}/{self.max_retries}"
                )
            else:
                if response.status_code == 429:  # Too Many Requests
                    retry_after = response.headers.get("Retry-After")
                    try:
                        delay = min(float(retry_after), MAX_RETRY_AFTER) if retry_after else delay
                    except ValueError:
                        pass
                    last_error = "rate limited (HTTP 429)"
                    logger.warning(
                        f"{self.name} rate limited. Attempt {attempt + 1}/{self.max_retries}"
                    )
                elif response.status_code >= 500:  # Server errors
                    last_error = f"server error (HTTP {response.status_code})"
                    logger.warning(
                        f"{self.name} server error {response.status_code}. "
                        f"Attempt {attempt + 1}/{self.max_retries}"
                    )
                elif response.status_code >= 400:
                    raise SourceFetchError(
                        f"{self.name} returned HTTP {response.status_code} for {response.url}",
                        source=self.name,
                    )
                else:
                    return response

            if attempt < self.max_retries - 1 and delay > 0:
                time.sleep(delay)

        raise SourceFetchError(
            f"{self.name} request failed after {self.max_retries} attempts: {last_error}",
            source=self.name,
        )

    return wrapper


class HttpScheduleProvider(ScheduleProvider):
    """
    Provider backed by an HTTP source, with client side throttling,
    timeouts and retries
    """

    user_agent = "Loser-Pool-Sync/1.0"
    backoff_factor = 2.0

    def __init__(self, config=None, session=None):
        super().__init__(config)
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.user_agent})

        self.timeout = float(self.config.get("SYNC_REQUEST_TIMEOUT", 15))
        self.max_retries = max(1, int(self.config.get("SYNC_MAX_RETRIES", 3)))
        self.base_delay = float(self.config.get("SYNC_RETRY_BASE_DELAY", 2.0))

        # Rate limiting configuration
        self.request_count = 0
        self.last_request_time = 0
        self.min_request_interval = float(self.config.get("SYNC_MIN_REQUEST_INTERVAL", 0.5))
        self.max_requests_per_minute = int(self.config.get("SYNC_MAX_REQUESTS_PER_MINUTE", 60))
        self.request_timestamps = []

    def _enforce_rate_limit(self):
        """Enforce rate limiting before making requests"""
        current_time = time.time()

        # Remove timestamps older than 1 minute
        self.request_timestamps = [
            ts for ts in self.request_timestamps if current_time - ts < 60
        ]

        # Check if we're at the request limit
        if self.max_requests_per_minute and len(self.request_timestamps) >= self.max_requests_per_minute:
            sleep_time = 60 - (current_time - self.request_timestamps[0])
            if sleep_time > 0:
                logger.info(f"Rate limit reached. Sleeping for {sleep_time:.1f}s")
                time.sleep(sleep_time)
                self.request_timestamps = []

        # Enforce minimum interval between requests
        time_since_last = current_time - self.last_request_time
        if time_since_last < self.min_request_interval:
            time.sleep(self.min_request_interval - time_since_last)

        self.last_request_time = time.time()
        self.request_timestamps.append(self.last_request_time)
        self.request_count += 1

    @retry_with_backoff
    def _make_request(self, url, params=None, headers=None):
        """Make one throttled GET request"""
        self._enforce_rate_limit()
        logger.debug(f"GET {url} params={params}")
        return self.session.get(url, params=params, headers=headers, timeout=self.timeout)

    def _get_json(self, url, params=None, headers=None):
        response = self._make_request(url, params=params, headers=headers)
        try:
            return response.json()
        except ValueError as e:
            raise SourceFetchError(f"{self.name} returned invalid JSON: {e}", source=self.name)

    def _get_text(self, url, params=None, headers=None):
        return self._make_request(url, params=params, headers=headers).text

    def get_rate_limit_status(self):
        """Get current rate limit status"""
        current_time = time.time()
        self.request_timestamps = [
            ts for ts in self.request_timestamps if current_time - ts < 60
        ]

        return {
            "total_requests": self.request_count,
            "requests_last_minute": len(self.request_timestamps),
            "max_requests_per_minute": self.max_requests_per_minute,
            "time_since_last_request": (
                current_time - self.last_request_time if self.last_request_time else 0
            ),
            "min_request_interval": self.min_request_interval,
        }
