"""
Scheduled Job Model for deferred publishing.

This module provides the ScheduledJobModel class together with the closed
JobStatus and JobType enumerations. Free-text job type tags read from the
database are converted into JobType at the point they are dispatched, and
unknown tags are rejected with UnknownJobType.

Status transitions are monotonic:
    pending -> executing -> completed
    pending -> executing -> failed
"""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from socgate.db.database import Base
from socgate.utils.time_utils import isoformat_or_none, utc_now


class JobStatus(str, Enum):
    """Lifecycle states of a scheduled job."""

    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class UnknownJobType(Exception):
    """Raised when a job carries a type tag the scheduler cannot dispatch."""

    def __init__(self, job_type: str):
        super().__init__(f"Unknown job type: {job_type}")
        self.job_type = job_type


class InvalidJobTransition(Exception):
    """Raised when a status change would violate the job lifecycle."""

    def __init__(self, job_id, current: str, target: str):
        super().__init__(
            f"Job {job_id} cannot move from '{current}' to '{target}'"
        )
        self.job_id = job_id
        self.current = current
        self.target = target


class JobType(str, Enum):
    """Job types the scheduler knows how to dispatch."""

    PUBLISH_POST = "publish_post"

    @classmethod
    def parse(cls, value: str) -> "JobType":
        """
        Convert a stored job type tag into a JobType.

        Raises:
            UnknownJobType: If the tag is not a known job type
        """
        try:
            return cls(value)
        except ValueError:
            raise UnknownJobType(value) from None


_ALLOWED_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.EXECUTING},
    JobStatus.EXECUTING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


class ScheduledJobModel(Base):
    """
    Database model for a job scheduled to run at a future instant.

    Jobs are created by the posting API, mutated only by the scheduler and
    never deleted, so the table doubles as execution history.
    """

    __tablename__ = "scheduled_jobs"

    id = Column(Integer, primary_key=True, index=True)
    job_type = Column(String(50), nullable=False)
    payload_data = Column(Text, nullable=False, default="")
    user_id = Column(String(128), nullable=False, index=True)

    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=True, index=True)

    scheduled_at = Column(DateTime, nullable=False, index=True)
    executed_at = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default=JobStatus.PENDING.value)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    provider = relationship("ProviderModel")

    __table_args__ = (Index("idx_jobs_status_scheduled", "status", "scheduled_at"),)

    def __repr__(self) -> str:
        """String representation of the scheduled job model."""
        return f"<ScheduledJobModel(id={self.id}, type='{self.job_type}', status='{self.status}')>"

    def _transition(self, target: JobStatus) -> None:
        current = JobStatus(self.status)
        if target not in _ALLOWED_TRANSITIONS[current]:
            raise InvalidJobTransition(self.id, current.value, target.value)
        self.status = target.value
        self.updated_at = utc_now()

    def mark_executing(self) -> None:
        """Move a pending job into the executing state."""
        self._transition(JobStatus.EXECUTING)

    def mark_completed(self) -> None:
        """Record successful execution."""
        self._transition(JobStatus.COMPLETED)
        self.executed_at = utc_now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        """
        Record failed execution.

        Args:
            error_message: Text describing why the job failed
        """
        self._transition(JobStatus.FAILED)
        self.executed_at = utc_now()
        self.error_message = error_message

    def to_dict(self) -> dict:
        """
        Convert scheduled job to dictionary representation.

        Returns:
            dict: Job data as dictionary
        """
        return {
            "id": self.id,
            "job_type": self.job_type,
            "payload_data": self.payload_data,
            "user_id": self.user_id,
            "provider_id": self.provider_id,
            "scheduled_at": isoformat_or_none(self.scheduled_at),
            "executed_at": isoformat_or_none(self.executed_at),
            "status": self.status,
            "error_message": self.error_message,
            "created_at": isoformat_or_none(self.created_at),
            "updated_at": isoformat_or_none(self.updated_at),
        }
