"""
Job Scheduler Service for deferred publishing.

This module provides the JobScheduler class that integrates with APScheduler
to poll every open tenant database on a fixed interval and execute the
scheduled jobs that have come due. Each job is persisted as executing before
it is dispatched and ends completed or failed; a failing job never stops the
processing of other jobs or tenants.
"""

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from flask import Flask
from sqlalchemy.orm import joinedload

from socgate.db.database import TenantDatabaseManager, TenantStore
from socgate.db.settings import DEFAULT_SCHEDULER_INTERVAL_SECONDS
from socgate.models.post_model import PostModel
from socgate.models.scheduled_job_model import JobStatus, JobType, ScheduledJobModel
from socgate.utils.time_utils import isoformat_or_none, to_naive_utc, utc_now

from .error_handling import ErrorCategory, ErrorSeverity, StructuredErrorLogger
from .provider_service import ProviderService

logger = logging.getLogger(__name__)

SCHEDULER_JOB_ID = "process_scheduled_jobs"


class JobDispatchError(Exception):
    """Raised when a due job cannot be handed to a provider."""


@dataclass
class TickSummary:
    """Counters describing one polling pass."""

    tenants: int = 0
    due: int = 0
    completed: int = 0
    failed: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class JobScheduler:
    """
    APScheduler-based poller for scheduled publishing jobs.

    A single interval job runs the polling pass; APScheduler is configured
    with ``max_instances=1`` so ticks never overlap, and the first tick runs
    immediately when the scheduler starts. Stopping waits for an in-flight
    tick to finish.
    """

    def __init__(
        self,
        db_manager: TenantDatabaseManager,
        provider_service: ProviderService,
        interval_seconds: int = DEFAULT_SCHEDULER_INTERVAL_SECONDS,
    ):
        """
        Initialize JobScheduler.

        Args:
            db_manager: Registry of open tenant databases
            provider_service: Service used to publish due content
            interval_seconds: Seconds between polling passes
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.db_manager = db_manager
        self.provider_service = provider_service
        self.interval_seconds = interval_seconds
        self.scheduler: Optional[BackgroundScheduler] = None
        self.is_running = False
        self._lock = threading.Lock()
        self._last_run_at: Optional[datetime] = None
        self._last_summary: Optional[TickSummary] = None

        self.error_logger = StructuredErrorLogger("job_scheduler")

    def init_app(self, app: Flask) -> None:
        """
        Register the scheduler with a Flask application.

        The interval is read from ``SCHEDULER_INTERVAL_SECONDS`` when the
        application sets it.

        Raises:
            ValueError: If the configured interval is not positive
        """
        interval = app.config.get("SCHEDULER_INTERVAL_SECONDS")
        if interval is not None:
            interval = int(interval)
            if interval <= 0:
                raise ValueError("SCHEDULER_INTERVAL_SECONDS must be positive")
            self.interval_seconds = interval

        app.extensions["job_scheduler"] = self
        logger.info(
            f"JobScheduler registered with Flask app (interval {self.interval_seconds}s)"
        )

    def start(self) -> None:
        """
        Start the background scheduler.

        The first polling pass runs immediately, later passes every
        ``interval_seconds``.
        """
        with self._lock:
            if self.is_running:
                logger.warning("JobScheduler is already running")
                return

            scheduler = BackgroundScheduler(timezone="UTC", daemon=True)
            scheduler.add_job(
                func=self._run_tick,
                trigger=IntervalTrigger(seconds=self.interval_seconds),
                id=SCHEDULER_JOB_ID,
                name="Process due scheduled jobs",
                replace_existing=True,
                max_instances=1,  # Ticks never overlap
                coalesce=True,  # Combine missed ticks
                next_run_time=datetime.now(timezone.utc),
            )

            try:
                scheduler.start()
            except Exception as e:
                logger.error(f"Failed to start JobScheduler: {str(e)}")
                raise

            self.scheduler = scheduler
            self.is_running = True
            logger.info(
                f"JobScheduler started, polling every {self.interval_seconds}s"
            )

    def stop(self) -> None:
        """
        Stop the scheduler gracefully.

        A polling pass that is already running is allowed to finish; no new
        pass starts afterwards.
        """
        with self._lock:
            if not self.is_running:
                logger.info("JobScheduler is not running")
                return

            try:
                if self.scheduler:
                    self.scheduler.shutdown(wait=True)
                logger.info("JobScheduler stopped gracefully")
            finally:
                self.scheduler = None
                self.is_running = False

    def get_scheduler_status(self) -> Dict[str, Any]:
        """
        Get current scheduler status.

        Returns:
            dict: Scheduler status information
        """
        next_run_time = None
        if self.scheduler is not None:
            job = self.scheduler.get_job(SCHEDULER_JOB_ID)
            if job is not None and job.next_run_time:
                next_run_time = job.next_run_time.isoformat()

        return {
            "is_running": self.is_running,
            "interval_seconds": self.interval_seconds,
            "open_tenants": len(self.db_manager.open_tenants()),
            "next_run_time": next_run_time,
            "last_run_at": isoformat_or_none(self._last_run_at),
            "last_run": self._last_summary.to_dict() if self._last_summary else None,
        }

    def _run_tick(self) -> None:
        try:
            self.run_pending_jobs()
        except Exception as e:
            # Keep the interval job alive whatever happens in a pass
            logger.critical(f"Polling pass failed: {str(e)}", exc_info=True)

    def run_pending_jobs(self, now: Optional[datetime] = None) -> TickSummary:
        """
        Execute one polling pass over every open tenant database.

        Args:
            now: Reference instant for due jobs (defaults to the current time)

        Returns:
            TickSummary: Counters for the pass
        """
        now = to_naive_utc(now) if now is not None else utc_now()
        summary = TickSummary()

        tenants = self.db_manager.open_tenants()
        for tenant_id, store in tenants.items():
            summary.tenants += 1
            try:
                self._process_tenant(tenant_id, store, now, summary)
            except Exception as e:
                summary.errors += 1
                self._log_failure(e, tenant_id, context={"operation": "load_due_jobs"})

        self._last_run_at = now
        self._last_summary = summary

        if summary.due:
            logger.info(
                f"Processed {summary.due} due jobs across {summary.tenants} tenants: "
                f"{summary.completed} completed, {summary.failed} failed, "
                f"{summary.errors} errors"
            )
        else:
            logger.debug(f"No due jobs across {summary.tenants} tenants")

        return summary

    def _process_tenant(
        self, tenant_id: str, store: TenantStore, now: datetime, summary: TickSummary
    ) -> None:
        with store.session() as db:
            due_jobs: List[ScheduledJobModel] = (
                db.query(ScheduledJobModel)
                .options(joinedload(ScheduledJobModel.provider))
                .filter(
                    ScheduledJobModel.status == JobStatus.PENDING.value,
                    ScheduledJobModel.scheduled_at <= now,
                )
                .order_by(ScheduledJobModel.scheduled_at, ScheduledJobModel.id)
                .all()
            )

        for job in due_jobs:
            summary.due += 1
            self._process_job(tenant_id, store, job, summary)

    def _process_job(
        self,
        tenant_id: str,
        store: TenantStore,
        job: ScheduledJobModel,
        summary: TickSummary,
    ) -> None:
        try:
            with store.session() as db:
                record = self._load_job(db, job.id)
                if record is None or record.status != JobStatus.PENDING.value:
                    logger.info(f"Job {job.id} for tenant {tenant_id} is no longer pending")
                    return
                record.mark_executing()
        except Exception as e:
            # Without a recorded state the job cannot be processed safely
            summary.errors += 1
            self._log_failure(
                e, tenant_id, job.id, context={"operation": "mark_executing"}
            )
            return

        logger.info(f"Executing job {job.id} ({job.job_type}) for tenant {tenant_id}")

        platform_post_id: Optional[str] = None
        error: Optional[Exception] = None
        try:
            platform_post_id = self._dispatch(tenant_id, job)
        except Exception as e:
            error = e
            self._log_failure(e, tenant_id, job.id, context={"job_type": job.job_type})

        try:
            with store.session() as db:
                record = self._load_job(db, job.id)
                if error is None:
                    record.mark_completed()
                    db.add(
                        PostModel(
                            content=job.payload_data,
                            user_id=tenant_id,
                            provider_id=job.provider_id,
                            platform_post_id=platform_post_id,
                            scheduled_job_id=job.id,
                        )
                    )
                else:
                    record.mark_failed(str(error))
        except Exception as e:
            summary.errors += 1
            self._log_failure(
                e, tenant_id, job.id, context={"operation": "record_outcome"}
            )
            return

        if error is None:
            summary.completed += 1
            logger.info(f"Job {job.id} for tenant {tenant_id} completed: {platform_post_id}")
        else:
            summary.failed += 1
            logger.warning(f"Job {job.id} for tenant {tenant_id} failed: {error}")

    def _dispatch(self, tenant_id: str, job: ScheduledJobModel) -> str:
        job_type = JobType.parse(job.job_type)

        if job_type == JobType.PUBLISH_POST:
            if job.provider is None:
                raise JobDispatchError("Provider not found for job")
            return self.provider_service.publish_content(
                tenant_id, job.provider.name, job.payload_data
            )

        raise JobDispatchError(f"No handler for job type: {job_type.value}")

    @staticmethod
    def _load_job(db, job_id: int) -> Optional[ScheduledJobModel]:
        return db.query(ScheduledJobModel).filter(ScheduledJobModel.id == job_id).first()

    def _log_failure(
        self,
        exception: Exception,
        tenant_id: str,
        job_id: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        severity = None
        category = None
        if context and context.get("operation") in ("mark_executing", "record_outcome"):
            category = ErrorCategory.PERSISTENCE
            severity = ErrorSeverity.CRITICAL

        error_details = self.error_logger.create_error_details(
            exception=exception,
            tenant_id=tenant_id,
            job_id=job_id,
            category=category,
            severity=severity,
            context=context,
        )
        self.error_logger.log_error(error_details)
