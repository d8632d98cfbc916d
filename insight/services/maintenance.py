"""
Maintenance scheduler.
Runs periodic housekeeping (rate-limit window sweeps) with APScheduler.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from insight.services.rate_limiter import RateLimiter
from insight.utils import safe_job_wrapper


class MaintenanceScheduler:
    """Interval jobs that keep in-memory pipeline state bounded."""

    def __init__(self, limiters: list[RateLimiter], interval_seconds: int = 300):
        self.scheduler = AsyncIOScheduler()
        self.limiters = limiters
        self.interval_seconds = interval_seconds
        self._is_running = False

    @safe_job_wrapper
    async def sweep_rate_limits_job(self) -> int:
        """Drop expired rate-limit windows from every limiter."""
        removed = sum(limiter.sweep() for limiter in self.limiters)
        if removed:
            logger.info(f"Rate-limit sweep removed {removed} expired windows")
        return removed

    def start(self) -> None:
        if self._is_running:
            logger.warning("Maintenance scheduler is already running")
            return

        self.scheduler.add_job(
            self.sweep_rate_limits_job,
            trigger="interval",
            seconds=self.interval_seconds,
            id="rate_limit_sweep",
            name="Rate limit sweep",
            replace_existing=True,
        )
        self.scheduler.start()
        self._is_running = True

        logger.info(
            f"Maintenance scheduler started: sweeping every {self.interval_seconds}s"
        )

    def stop(self) -> None:
        if not self._is_running:
            return

        self.scheduler.shutdown(wait=False)
        self._is_running = False
        logger.info("Maintenance scheduler stopped")

    def is_running(self) -> bool:
        return self._is_running
