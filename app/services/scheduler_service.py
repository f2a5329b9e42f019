"""
Loser Pool Background Scheduler Service

Keeps the current week and the matchup table fresh using APScheduler:

* hourly current-week update
* current + next week matchup sync every SYNC_INTERVAL_MINUTES
* weekly (Tuesday) whole-season matchup sync
"""

import atexit
import logging
import threading
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from app import db
from app.exceptions import PoolSyncError
from app.providers import get_schedule_provider
from app.services import week_service
from app.services.matchup_sync import MatchupSynchronizer

logger = logging.getLogger(__name__)


class SchedulerService:
    """Manages background jobs for week updates and matchup syncing"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self.sync_stats = self._empty_stats()
        # Jobs run on APScheduler worker threads
        self._stats_lock = threading.Lock()

        if app:
            self.init_app(app)

    @staticmethod
    def _empty_stats(last_sync=None):
        return {
            "last_sync": last_sync,
            "total_syncs": 0,
            "successful_syncs": 0,
            "failed_syncs": 0,
            "last_error": None,
            "games_updated": 0,
        }

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        atexit.register(self.shutdown)

        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self.scheduler.remove_all_jobs()
            self._add_core_jobs()
            self.scheduler.start()
            self.is_running = True

            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        """Add core scheduled jobs"""
        interval = max(1, int(self.app.config.get("SYNC_INTERVAL_MINUTES", 30)))

        # Current week update (five past every hour)
        self.scheduler.add_job(
            func=self._update_current_week,
            trigger=CronTrigger(minute=5),
            id="update_current_week",
            name="Update Current Week",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )

        # Current and next week matchups
        self.scheduler.add_job(
            func=self._sync_current_and_next,
            trigger=IntervalTrigger(minutes=interval),
            id="sync_current_next",
            name="Sync Current and Next Week Matchups",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=120,
        )

        # Whole season refresh (Tuesday 6 AM UTC)
        self.scheduler.add_job(
            func=self._weekly_season_sync,
            trigger=CronTrigger(day_of_week="tue", hour=6, minute=0),
            id="weekly_season_sync",
            name="Weekly Season Sync",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

        logger.info("Core scheduled jobs added")

    def _update_current_week(self):
        """Recompute and store the current week"""
        with self.app.app_context():
            success, outcome = week_service.update_global_current_week()
            if success:
                self._update_stats(True)
                logger.info(f"Current week job: week {outcome.week} ({outcome.label})")
            else:
                self._update_stats(False, error=outcome)
                logger.warning(f"Current week job failed: {outcome}")

    def _sync_current_and_next(self):
        """Sync the current and next week's matchups"""
        self._run_batch("current/next sync", lambda sync: sync.sync_current_and_next())

    def _weekly_season_sync(self):
        """Sync every week of the season"""
        self._run_batch("weekly season sync", lambda sync: sync.sync_season())

    def _run_batch(self, label, run):
        with self.app.app_context():
            try:
                synchronizer = MatchupSynchronizer(get_schedule_provider())
                batch = run(synchronizer)
            except PoolSyncError as e:
                self._update_stats(False, error=str(e))
                logger.error(f"Error in {label}: {e}")
                return
            except Exception as e:
                # Keep the job alive for its next run
                db.session.rollback()
                self._update_stats(False, error=str(e))
                logger.error(f"Error in {label}: {e}", exc_info=True)
                return

            games_changed = batch.total("created") + batch.total("updated")
            if batch.success:
                self._update_stats(True, games_changed)
                logger.info(f"{label.capitalize()} completed: {batch.message}")
            else:
                self._update_stats(False, games_changed, error=batch.message)
                logger.warning(f"{label.capitalize()} issues: {batch.message}")

            return batch

    def _update_stats(self, success, games_updated=0, error=None):
        """Update sync statistics"""
        with self._stats_lock:
            self.sync_stats["last_sync"] = datetime.now(timezone.utc)
            self.sync_stats["total_syncs"] += 1
            self.sync_stats["games_updated"] += games_updated

            if success:
                self.sync_stats["successful_syncs"] += 1
                self.sync_stats["last_error"] = None
            else:
                self.sync_stats["failed_syncs"] += 1
                self.sync_stats["last_error"] = error

            # Counters only need to be indicative
            if self.sync_stats["total_syncs"] > 10000:
                self.sync_stats = self._empty_stats(self.sync_stats["last_sync"])

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler and self.is_running:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        with self._stats_lock:
            stats = dict(self.sync_stats)
        if stats["last_sync"]:
            stats["last_sync"] = stats["last_sync"].isoformat()

        return {"is_running": self.is_running, "jobs": jobs, "stats": stats}

    def force_sync(self, sync_type="current_next"):
        """Manually run a job now"""
        jobs = {
            "week": self._update_current_week,
            "current_next": self._sync_current_and_next,
            "season": self._weekly_season_sync,
        }
        if sync_type not in jobs:
            return False, f"Unknown sync type: {sync_type}"

        jobs[sync_type]()
        if self.sync_stats["last_error"]:
            return False, f"Manual {sync_type} sync failed: {self.sync_stats['last_error']}"
        return True, f"Manual {sync_type} sync completed"


# Global scheduler instance
scheduler_service = SchedulerService()
