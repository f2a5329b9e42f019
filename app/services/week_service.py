"""
Current week service: binds the week calculator to configuration and the
global settings table.
"""

import logging

from flask import current_app

from app.exceptions import PersistenceError
from app.services.persistence import (
    CURRENT_SEASON_TYPE,
    CURRENT_WEEK,
    PRESEASON_START_DATE,
    SettingsStore,
)
from app.utils import week_calculator
from app.utils.cache_utils import invalidate_model_cache

logger = logging.getLogger(__name__)


def get_preseason_start(settings=None):
    """The preseason_start_date setting wins over the PRESEASON_START_DATE config"""
    settings = settings or SettingsStore()
    return settings.get_setting(PRESEASON_START_DATE) or current_app.config.get(
        "PRESEASON_START_DATE"
    )


def calculate_current_week(now=None, settings=None):
    """Compute the current week from the clock; never writes"""
    return week_calculator.calculate_current_week(
        now=now,
        preseason_start=get_preseason_start(settings),
        tz=current_app.config.get("TIMEZONE"),
    )


def update_global_current_week(now=None, settings=None):
    """
    Recompute the current week and store it in the global settings.

    Returns:
        tuple: (True, WeekInfo) on success, (False, error message) if the
        week could not be calculated or the settings could not be written.
        Nothing is written when the stored values already match, or when the
        calculator had to fall back to week 1.
    """
    settings = settings or SettingsStore()
    week_info = calculate_current_week(now=now, settings=settings)

    if week_info.is_fallback:
        logger.error(f"Not updating current week: {week_info.reason}")
        return False, week_info.reason

    try:
        changed = settings.set_settings(
            {
                CURRENT_WEEK: week_info.week,
                CURRENT_SEASON_TYPE: week_info.season_type,
            }
        )
    except PersistenceError as e:
        logger.error(f"Failed to update current week: {e}")
        return False, str(e)

    if changed:
        logger.info(
            f"Current week set to {week_info.week} ({week_info.label}): {week_info.reason}"
        )
        invalidate_model_cache("current_week")
    else:
        logger.debug(f"Current week already {week_info.week}, nothing to update")

    return True, week_info


def get_current_week(settings=None):
    """
    Stored current week, or the calculated one when nothing valid is stored
    """
    settings = settings or SettingsStore()
    week = settings.get_int(CURRENT_WEEK)

    if week is not None and 1 <= week <= week_calculator.MAX_WEEK:
        return week_calculator.week_info_for(week, reason="stored current_week setting")

    if week is not None:
        logger.warning(f"Stored current_week {week} is out of range, recalculating")

    return calculate_current_week(settings=settings)
