from .post_model import PostModel
from .provider_model import ProviderModel
from .scheduled_job_model import JobStatus, JobType, ScheduledJobModel

__all__ = ["PostModel", "ProviderModel", "ScheduledJobModel", "JobStatus", "JobType"]
