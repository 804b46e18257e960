"""
Post Service for content submission.

This module provides the PostService class behind the posting API. A
submission either publishes right away through the ProviderService or
creates a pending ScheduledJob for the JobScheduler to execute later.
"""

import logging
from calendar import monthrange
from collections import Counter
from datetime import MAXYEAR, MINYEAR, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import joinedload

from socgate.db.database import TenantDatabaseManager
from socgate.error_handling import ValidationError, not_found_if_none
from socgate.models.post_model import PostModel
from socgate.models.scheduled_job_model import JobStatus, JobType, ScheduledJobModel
from socgate.utils.time_utils import isoformat_or_none, parse_iso8601, utc_now

from .provider_service import ProviderService
from .providers.errors import ProviderNotConfigured

logger = logging.getLogger(__name__)

SCHEDULE_NOW = "now"
MAX_TITLE_LENGTH = 200
HISTORY_PAGE_SIZE = 20


class PostService:
    """Service class for publishing and scheduling tenant content."""

    def __init__(
        self, db_manager: TenantDatabaseManager, provider_service: ProviderService
    ):
        self.db_manager = db_manager
        self.provider_service = provider_service

    def submit_post(
        self,
        tenant_id: str,
        provider_id: Any,
        content: Any,
        schedule_at: Any = None,
        title: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Publish content now or schedule it for later.

        Args:
            tenant_id: Tenant submitting the content
            provider_id: ID of the tenant's provider record
            content: Content body to publish
            schedule_at: ``"now"`` (or omitted) to publish immediately, or an
                ISO-8601 timestamp in the future
            title: Optional title kept with the post record

        Returns:
            dict: ``{"status": "published", "post": {...}}`` or
            ``{"status": "scheduled", "job": {...}}``

        Raises:
            ValidationError: For invalid content, provider id or schedule
            ResourceNotFoundError: If the provider record does not exist
            ProviderNotConfigured: If the provider has been disconnected
            ProviderError: If publishing right away fails
        """
        content = self._validate_content(content)
        provider_id = self._validate_provider_id(provider_id)
        if title is not None and (
            not isinstance(title, str) or len(title) > MAX_TITLE_LENGTH
        ):
            raise ValidationError(
                f"title must be a string of at most {MAX_TITLE_LENGTH} characters"
            )

        scheduled_at = self._parse_schedule(schedule_at)

        provider = not_found_if_none(
            self.provider_service.get_provider_by_id(tenant_id, provider_id),
            "Provider",
            provider_id,
        )
        if not provider.is_active:
            raise ProviderNotConfigured(tenant_id, provider.name)

        if scheduled_at is None:
            return self._publish_now(tenant_id, provider.id, provider.name, content, title)
        return self._schedule(tenant_id, provider.id, content, scheduled_at)

    def list_posts(
        self, tenant_id: str, limit: int = 50, offset: int = 0
    ) -> List[PostModel]:
        """List a tenant's published posts, newest first."""
        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            return (
                db.query(PostModel)
                .options(joinedload(PostModel.provider))
                .filter(PostModel.user_id == tenant_id)
                .order_by(PostModel.created_at.desc(), PostModel.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )

    def get_history(
        self, tenant_id: str, page: int = 1, page_size: int = HISTORY_PAGE_SIZE
    ) -> Dict[str, Any]:
        """
        Return one page of the tenant's posting history.

        Published posts and scheduled jobs are paged side by side with the
        same offset and merged newest first. ``total`` counts both tables.

        Args:
            tenant_id: Tenant owning the history
            page: 1-based page number
            page_size: Entries taken from each table per page

        Raises:
            ValidationError: If the page number is not positive
        """
        if page < 1:
            raise ValidationError("page must be a positive integer")
        offset = (page - 1) * page_size

        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            total_posts = (
                db.query(PostModel).filter(PostModel.user_id == tenant_id).count()
            )
            total_jobs = (
                db.query(ScheduledJobModel)
                .filter(ScheduledJobModel.user_id == tenant_id)
                .count()
            )
            jobs = (
                db.query(ScheduledJobModel)
                .options(joinedload(ScheduledJobModel.provider))
                .filter(ScheduledJobModel.user_id == tenant_id)
                .order_by(
                    ScheduledJobModel.scheduled_at.desc(), ScheduledJobModel.id.desc()
                )
                .offset(offset)
                .limit(page_size)
                .all()
            )

        posts = self.list_posts(tenant_id, limit=page_size, offset=offset)

        entries = [self._history_entry("post", post, "published") for post in posts]
        entries += [self._history_entry("job", job, job.status) for job in jobs]
        entries.sort(key=lambda entry: entry["created_at"] or "", reverse=True)

        return {
            "posts": entries,
            "page": page,
            "page_size": page_size,
            "total": total_posts + total_jobs,
        }

    def get_calendar(
        self, tenant_id: str, year: Optional[int] = None, month: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Count a tenant's posts per day of one month.

        Published posts are counted on their creation day. Jobs that have not
        completed are counted on their scheduled day; completed jobs already
        left a published post behind.

        Args:
            tenant_id: Tenant owning the posts
            year: Calendar year, defaults to the current UTC year
            month: Month 1-12, defaults to the current UTC month

        Returns:
            dict: ``{"year", "month", "days": [{"day", "has_posts",
            "post_count", "published_count", "scheduled_count"}, ...]}``

        Raises:
            ValidationError: If the year or month is out of range
        """
        now = utc_now()
        year = now.year if year is None else year
        month = now.month if month is None else month
        if not MINYEAR <= year <= MAXYEAR - 1:
            raise ValidationError(f"year must be between {MINYEAR} and {MAXYEAR - 1}")
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12")

        start = datetime(year, month, 1)
        end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)

        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            published = (
                db.query(PostModel.created_at)
                .filter(
                    PostModel.user_id == tenant_id,
                    PostModel.created_at >= start,
                    PostModel.created_at < end,
                )
                .all()
            )
            scheduled = (
                db.query(ScheduledJobModel.scheduled_at)
                .filter(
                    ScheduledJobModel.user_id == tenant_id,
                    ScheduledJobModel.status != JobStatus.COMPLETED.value,
                    ScheduledJobModel.scheduled_at >= start,
                    ScheduledJobModel.scheduled_at < end,
                )
                .all()
            )

        published_by_day = Counter(row[0].day for row in published)
        scheduled_by_day = Counter(row[0].day for row in scheduled)

        days = []
        for day in range(1, monthrange(year, month)[1] + 1):
            count = published_by_day[day] + scheduled_by_day[day]
            days.append(
                {
                    "day": day,
                    "has_posts": count > 0,
                    "post_count": count,
                    "published_count": published_by_day[day],
                    "scheduled_count": scheduled_by_day[day],
                }
            )

        return {"year": year, "month": month, "days": days}

    def list_jobs(
        self, tenant_id: str, status: Optional[str] = None
    ) -> List[ScheduledJobModel]:
        """
        List a tenant's scheduled jobs.

        Args:
            tenant_id: Tenant owning the jobs
            status: Optional status filter (pending, executing, completed, failed)

        Raises:
            ValidationError: If the status filter is not a job status
        """
        status_filter = None
        if status:
            try:
                status_filter = JobStatus(status.strip().lower())
            except ValueError:
                raise ValidationError(
                    f"Invalid job status: {status}",
                    {"allowed": [s.value for s in JobStatus]},
                )

        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            query = db.query(ScheduledJobModel).filter(
                ScheduledJobModel.user_id == tenant_id
            )
            if status_filter is not None:
                query = query.filter(ScheduledJobModel.status == status_filter.value)
            return query.order_by(ScheduledJobModel.scheduled_at.desc()).all()

    def get_job(self, tenant_id: str, job_id: int) -> ScheduledJobModel:
        """
        Return one of a tenant's scheduled jobs.

        Raises:
            ResourceNotFoundError: If the job does not exist
        """
        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            job = (
                db.query(ScheduledJobModel)
                .filter(
                    ScheduledJobModel.id == job_id,
                    ScheduledJobModel.user_id == tenant_id,
                )
                .first()
            )

        return not_found_if_none(job, "ScheduledJob", job_id)

    def _publish_now(
        self,
        tenant_id: str,
        provider_id: int,
        provider_name: str,
        content: str,
        title: Optional[str],
    ) -> Dict[str, Any]:
        platform_post_id = self.provider_service.publish_content(
            tenant_id, provider_name, content
        )

        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            post = PostModel(
                content=content,
                title=title,
                user_id=tenant_id,
                provider_id=provider_id,
                platform_post_id=platform_post_id,
            )
            db.add(post)
            db.flush()
            post_dict = post.to_dict()
            post_dict["provider_name"] = provider_name

        logger.info(
            f"Tenant {tenant_id} published post {post_dict['id']} via '{provider_name}'"
        )
        return {"status": "published", "post": post_dict}

    def _schedule(
        self, tenant_id: str, provider_id: int, content: str, scheduled_at: datetime
    ) -> Dict[str, Any]:
        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            job = ScheduledJobModel(
                job_type=JobType.PUBLISH_POST.value,
                payload_data=content,
                user_id=tenant_id,
                provider_id=provider_id,
                scheduled_at=scheduled_at,
                status=JobStatus.PENDING.value,
            )
            db.add(job)
            db.flush()
            job_dict = job.to_dict()

        logger.info(
            f"Tenant {tenant_id} scheduled job {job_dict['id']} for {job_dict['scheduled_at']}"
        )
        return {"status": "scheduled", "job": job_dict}

    @staticmethod
    def _history_entry(kind: str, record, status: str) -> Dict[str, Any]:
        is_job = kind == "job"
        return {
            "kind": kind,
            "id": record.id,
            "content": record.payload_data if is_job else record.content,
            "provider_id": record.provider_id,
            "provider_name": record.provider.name if record.provider else None,
            "status": status,
            "scheduled_at": isoformat_or_none(record.scheduled_at) if is_job else None,
            "created_at": isoformat_or_none(record.created_at),
        }

    @staticmethod
    def _validate_content(content: Any) -> str:
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("content is required and must be a non-empty string")
        return content

    @staticmethod
    def _validate_provider_id(provider_id: Any) -> int:
        if isinstance(provider_id, bool) or (
            isinstance(provider_id, float) and not provider_id.is_integer()
        ):
            raise ValidationError("provider_id must be a positive integer")
        try:
            value = int(provider_id)
        except (TypeError, ValueError):
            raise ValidationError("provider_id must be a positive integer")
        if value <= 0:
            raise ValidationError("provider_id must be a positive integer")
        return value

    @staticmethod
    def _parse_schedule(schedule_at: Any) -> Optional[datetime]:
        """Return None for immediate publishing, else the naive-UTC instant."""
        if schedule_at is None:
            return None
        if not isinstance(schedule_at, str):
            raise ValidationError("schedule_at must be 'now' or an ISO-8601 timestamp")

        value = schedule_at.strip()
        if not value or value.lower() == SCHEDULE_NOW:
            return None

        try:
            scheduled_at = parse_iso8601(value)
        except ValueError:
            raise ValidationError(
                "schedule_at must be 'now' or an ISO-8601 timestamp",
                {"schedule_at": schedule_at},
            )

        if scheduled_at <= utc_now():
            raise ValidationError(
                "schedule_at must be in the future", {"schedule_at": schedule_at}
            )
        return scheduled_at
