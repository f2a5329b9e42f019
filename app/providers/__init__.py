"""
Schedule providers and the registry that selects one from configuration.
"""

from flask import current_app

from app.exceptions import ConfigurationError
from app.providers.base import GameRecord, HttpScheduleProvider, ScheduleProvider
from app.providers.espn import EspnScheduleProvider
from app.providers.mock import MockScheduleProvider
from app.providers.nflcom import NflComScheduleProvider
from app.providers.sportsdata import SportsDataScheduleProvider

PROVIDERS = {
    EspnScheduleProvider.name: EspnScheduleProvider,
    SportsDataScheduleProvider.name: SportsDataScheduleProvider,
    NflComScheduleProvider.name: NflComScheduleProvider,
    MockScheduleProvider.name: MockScheduleProvider,
}


def available_providers():
    return sorted(PROVIDERS)


def get_schedule_provider(name=None, config=None):
    """
    Build the schedule provider named by `name` or the SCHEDULE_PROVIDER setting.

    Raises:
        ConfigurationError: if the provider name is unknown
    """
    if config is None:
        config = current_app.config

    name = (name or config.get("SCHEDULE_PROVIDER") or "espn").strip().lower()
    provider_class = PROVIDERS.get(name)
    if provider_class is None:
        raise ConfigurationError(
            f"Unknown schedule provider {name!r}; expected one of {', '.join(available_providers())}"
        )

    return provider_class(config)


__all__ = [
    "GameRecord",
    "ScheduleProvider",
    "HttpScheduleProvider",
    "PROVIDERS",
    "available_providers",
    "get_schedule_provider",
]
