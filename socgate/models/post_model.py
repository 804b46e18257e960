"""
Post Model for publication history.

A PostModel row is the artifact recorded after content was accepted by a
provider platform, whether published immediately or by a scheduled job.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from socgate.db.database import Base
from socgate.utils.time_utils import isoformat_or_none, utc_now


class PostModel(Base):
    """Database model for published content."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    title = Column(String(200), nullable=True)
    user_id = Column(String(128), nullable=False, index=True)

    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=True, index=True)
    platform_post_id = Column(String(200), nullable=True)
    scheduled_job_id = Column(
        Integer, ForeignKey("scheduled_jobs.id"), nullable=True, index=True
    )

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    provider = relationship("ProviderModel")

    __table_args__ = (Index("idx_posts_created", "created_at"),)

    def __repr__(self) -> str:
        return f"<PostModel(id={self.id}, provider_id={self.provider_id}, platform_post_id='{self.platform_post_id}')>"

    def to_dict(self) -> dict:
        """Convert post model to dictionary representation."""
        return {
            "id": self.id,
            "content": self.content,
            "title": self.title,
            "user_id": self.user_id,
            "provider_id": self.provider_id,
            "provider_name": self.provider.name if self.provider else None,
            "platform_post_id": self.platform_post_id,
            "scheduled_job_id": self.scheduled_job_id,
            "created_at": isoformat_or_none(self.created_at),
            "updated_at": isoformat_or_none(self.updated_at),
        }
