"""
Provider Model for stored platform credentials.

This module provides the ProviderModel class holding one named provider
instance per row: the platform type tag and the OAuth credential issued for
it, serialized as JSON with the token fields encrypted.
"""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from socgate.db.database import Base
from socgate.utils.time_utils import isoformat_or_none, utc_now


class ProviderModel(Base):
    """
    Database model for a tenant's connected provider instance.

    Records are soft-deactivated on disconnect and never hard-deleted, so
    scheduled jobs and posts keep a valid reference.
    """

    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, index=True)

    # Instance name, unique within the tenant's database
    name = Column(String(100), nullable=False, unique=True)
    type = Column(String(50), nullable=False)  # 'tiktok', 'instagram', 'facebook'

    # Encrypted JSON credential (access/refresh token, expiry, scope, user info)
    config = Column(Text, nullable=False, default="{}")

    user_id = Column(String(128), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        Index("idx_providers_user_active", "user_id", "is_active"),
        Index("idx_providers_type", "type"),
    )

    def __repr__(self) -> str:
        """String representation of the provider model."""
        return f"<ProviderModel(id={self.id}, name='{self.name}', type='{self.type}', active={self.is_active})>"

    def to_dict(self) -> dict:
        """
        Convert provider model to dictionary representation.

        Returns:
            dict: Provider data (the credential config is never included)
        """
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "user_id": self.user_id,
            "is_active": self.is_active,
            "created_at": isoformat_or_none(self.created_at),
            "updated_at": isoformat_or_none(self.updated_at),
        }
