"""APScheduler-based scheduler for the reconciliation passes.

The full inventory pass reschedules itself: when a cycle's job has finished,
a listener arms a one-shot job that fires the next cycle
``check_all_interval_ms`` later. Status and detail passes run on optional
fixed intervals. Every pass, scheduled or triggered on demand, goes
through the overlap guard of its pass type.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MAX_INSTANCES,
    EVENT_JOB_MISSED,
)
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from bmcsync.config import settings
from bmcsync.config.settings import IpmiSettings
from bmcsync.core.guard import PassGuard
from bmcsync.core.inventory import InventoryService
from bmcsync.core.records import PassResult, PassType

logger = logging.getLogger(__name__)

CHECK_ALL_JOB_ID = "check_all"
CHECK_STATUS_JOB_ID = "check_status"
CHECK_NODES_DETAIL_JOB_ID = "check_nodes_detail"


class InventoryScheduler:
    """Owns the pass timers and the per-pass overlap guards."""

    def __init__(
        self,
        service: InventoryService | None = None,
        ipmi: IpmiSettings | None = None,
    ):
        self.scheduler = AsyncIOScheduler(
            job_defaults={"coalesce": True, "max_instances": 1}
        )
        self.service = service
        self.ipmi = ipmi or settings.ipmi
        self.guards: dict[PassType, PassGuard] = {
            pass_type: PassGuard(f"{pass_type.value} pass") for pass_type in PassType
        }
        self._in_flight: set[asyncio.Task] = set()
        self._stopping = False
        self.scheduler.add_listener(
            self._on_check_all_done,
            EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED | EVENT_JOB_MAX_INSTANCES,
        )

    def set_service(self, service: InventoryService) -> None:
        """Set the inventory service the passes run against."""
        self.service = service

    # ============== Guarded passes ==============

    async def run_pass(self, pass_type: PassType) -> PassResult | None:
        """Run one pass unless the same pass type is already running.

        Returns None when the trigger was dropped.
        """
        if self.service is None:
            logger.warning(f"No inventory service set, skipping {pass_type.value} pass")
            return None

        runners = {
            PassType.FULL: self.service.update_all_nodes,
            PassType.STATUS: self.service.update_status_nodes,
            PassType.DETAIL: self.service.update_nodes_detail,
        }

        with self.guards[pass_type].hold() as acquired:
            if not acquired:
                return None
            task = asyncio.current_task()
            self._in_flight.add(task)
            try:
                return await runners[pass_type]()
            finally:
                self._in_flight.discard(task)

    async def check_all(self) -> PassResult | None:
        return await self.run_pass(PassType.FULL)

    async def check_status(self) -> PassResult | None:
        return await self.run_pass(PassType.STATUS)

    async def check_nodes_detail(self) -> PassResult | None:
        return await self.run_pass(PassType.DETAIL)

    def is_pass_running(self, pass_type: PassType) -> bool:
        return self.guards[pass_type].locked

    async def wait_for_passes(self) -> None:
        """Wait until every pass in flight has finished."""
        current = asyncio.current_task()
        pending = {task for task in self._in_flight if task is not current}
        if pending:
            logger.info(f"Waiting for {len(pending)} running pass(es) to finish")
            await asyncio.wait(pending)

    # ============== Full inventory cycle ==============

    async def _run_check_all_cycle(self) -> None:
        """Run one full inventory cycle."""
        try:
            await self.check_all()
        except Exception as e:
            logger.exception(f"Full inventory cycle failed: {e}")

    def _on_check_all_done(self, event) -> None:
        """Queue the next cycle once the executor has released the last one.

        Missed and skipped runs re-arm too, so the cycle never stops while
        the scheduler is running.
        """
        if event.job_id != CHECK_ALL_JOB_ID:
            return
        if self._stopping or not self.scheduler.running:
            return
        self.queue_check_all()

    def queue_check_all(self) -> datetime | None:
        """Fire the next full inventory cycle after the configured delay.

        Returns the time the cycle is due, or None if the scheduler is
        not running.
        """
        if not self.scheduler.running:
            logger.warning("Scheduler not running, full inventory cycle not queued")
            return None

        delay_ms = self.ipmi.check_all_interval_ms
        if self.ipmi.debug:
            logger.info(f"queue_check_all(): rerun check_all after {delay_ms}ms")

        job = self.scheduler.add_job(
            self._run_check_all_cycle,
            trigger=DateTrigger(
                run_date=datetime.now(timezone.utc) + timedelta(milliseconds=delay_ms)
            ),
            id=CHECK_ALL_JOB_ID,
            replace_existing=True,
        )
        return job.next_run_time

    def cancel_check_all(self) -> None:
        """Cancel the pending full inventory cycle, if any."""
        self.remove_job(CHECK_ALL_JOB_ID)

    # ============== Periodic status / detail ==============

    def _schedule_interval(self, job_id: str, func, interval_ms: int) -> datetime | None:
        self.remove_job(job_id)
        if interval_ms <= 0:
            return None

        job = self.scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=interval_ms / 1000),
            id=job_id,
            replace_existing=True,
        )
        logger.info(f"Scheduled job {job_id} every {interval_ms}ms")
        return job.next_run_time

    def schedule_periodic_passes(self) -> None:
        """Register interval jobs for the status and detail passes."""
        self._schedule_interval(
            CHECK_STATUS_JOB_ID, self.check_status, self.ipmi.check_status_interval_ms
        )
        self._schedule_interval(
            CHECK_NODES_DETAIL_JOB_ID,
            self.check_nodes_detail,
            self.ipmi.check_nodes_detail_interval_ms,
        )

    # ============== Lifecycle ==============

    def remove_job(self, job_id: str) -> None:
        """Remove job from scheduler."""
        try:
            self.scheduler.remove_job(job_id)
            logger.info(f"Removed job {job_id} from scheduler")
        except JobLookupError:
            pass  # Job doesn't exist

    def get_next_run_time(self, job_id: str) -> datetime | None:
        """Get next scheduled run time for a job."""
        job = self.scheduler.get_job(job_id)
        return job.next_run_time if job else None

    def start(self, run_check_all: bool = True) -> None:
        """Start scheduler and the perpetual full inventory cycle.

        With ``run_check_all`` the first cycle fires right away, otherwise
        it is queued after the configured delay.
        """
        if self.scheduler.running:
            return

        self._stopping = False
        self.scheduler.start()
        logger.info("Scheduler started")

        if run_check_all:
            self.scheduler.add_job(
                self._run_check_all_cycle,
                id=CHECK_ALL_JOB_ID,
                replace_existing=True,
            )
        else:
            self.queue_check_all()
        self.schedule_periodic_passes()

    async def shutdown(self, wait: bool = True) -> None:
        """Cancel pending timers and stop the scheduler.

        With ``wait`` the passes already in flight run to completion before
        the scheduler stops, otherwise the executor cancels them.
        """
        if not self.scheduler.running:
            return

        self._stopping = True
        self.scheduler.remove_all_jobs()
        if wait:
            await self.wait_for_passes()

        self.scheduler.shutdown(wait=False)
        # AsyncIOScheduler stops on the next loop iteration
        await asyncio.sleep(0)
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self.scheduler.running


# Global instance
inventory_scheduler = InventoryScheduler()
