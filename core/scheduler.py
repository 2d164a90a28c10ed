import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from datetime import datetime, timezone

from features.alerts.services.alert_runner import AlertEvaluationService
from core.config import settings

logger = logging.getLogger(__name__)

ALERT_CYCLE_JOB_ID = "alert_cycle"

class Scheduler:
    def __init__(self, alert_service: AlertEvaluationService, interval_minutes: Optional[int] = None):
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self.alert_service = alert_service
        self.interval_minutes = interval_minutes or settings.alert_cycle_minutes

    async def run_alert_cycle(self):
        """Run one alert cycle, logging failures so the job keeps its schedule."""
        try:
            await self.alert_service.run_cycle()
        except Exception as e:
            logger.error(f"Alert cycle failed: {str(e)}")

    def start(self):
        """Start the scheduler with configured jobs."""
        logger.info("Starting scheduler")

        self.scheduler.add_job(
            self.run_alert_cycle,
            IntervalTrigger(minutes=self.interval_minutes),
            id=ALERT_CYCLE_JOB_ID,
            name="alert_cycle",
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc)
        )

        self.scheduler.start()
        logger.info(f"Scheduler started, alert cycle every {self.interval_minutes} minutes")

    def get_next_run_time(self, job_id: str = ALERT_CYCLE_JOB_ID) -> Optional[str]:
        """Get the next run time for a scheduled job."""
        job = self.scheduler.get_job(job_id)
        if job and job.next_run_time:
            return job.next_run_time.isoformat()
        return None

    def shutdown(self):
        """Shutdown the scheduler."""
        if self.scheduler.running:
            logger.info("Shutting down scheduler")
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler shutdown complete")
