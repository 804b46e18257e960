"""
Base Provider for social media platform integrations.

This module provides the abstract capability interface every platform
integration implements, together with the value types that cross it:
the ProviderType and PostStatus enumerations, the ProviderCredential bound
to a provider instance, and the OAuthClientConfig of the application
registered with the platform.
"""

import dataclasses
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from socgate.utils.time_utils import utc_now

from .errors import AuthError, NoRefreshToken, PlatformError, UnsupportedProviderType


class ProviderType(str, Enum):
    """Supported social media platforms."""

    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"

    @classmethod
    def parse(cls, value) -> "ProviderType":
        """
        Convert a free-text type tag into a ProviderType.

        Raises:
            UnsupportedProviderType: If the tag is not a supported platform
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedProviderType(value) from None


class PostStatus(str, Enum):
    """Status of a post as reported by the platform."""

    PUBLISHED = "published"
    PENDING = "pending"
    FAILED = "failed"
    DELETED = "deleted"


@dataclass(frozen=True)
class OAuthClientConfig:
    """Client application registered with a provider platform."""

    name: str
    client_id: str
    client_secret: str
    description: str = ""


@dataclass(frozen=True)
class ProviderCredential:
    """
    OAuth credential of one named provider instance.

    Instances are immutable; a token refresh produces a new credential which
    the caller is responsible for persisting.
    """

    name: str
    type: ProviderType
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_at: Optional[datetime] = None
    scope: str = ""
    is_active: bool = True
    platform_user_id: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None, leeway_seconds: int = 0) -> bool:
        """Check whether the access token expires within the leeway."""
        if self.expires_at is None:
            return False
        now = now or utc_now()
        return self.expires_at <= now + timedelta(seconds=leeway_seconds)


class BaseProvider(ABC):
    """
    Abstract capability interface for all provider platforms.

    A provider instance is bound to a single credential. Construction never
    performs network I/O; every capability call may block on the platform.
    """

    provider_type: ProviderType

    def __init__(
        self,
        credential: ProviderCredential,
        http_client,
        client_config: Optional[OAuthClientConfig] = None,
    ):
        """
        Initialize provider with a credential.

        Args:
            credential: Credential the provider acts with
            http_client: ProviderHTTPClient used for platform calls
            client_config: Client application, needed by some token refreshes
        """
        self.credential = credential
        self.http_client = http_client
        self.client_config = client_config
        self.logger = logging.getLogger(f"{self.__class__.__name__}")

    @abstractmethod
    def publish(self, content: str) -> str:
        """
        Publish content to the platform.

        Returns:
            Platform-assigned identifier of the new post

        Raises:
            TransportError, AuthError, PlatformError
        """

    @abstractmethod
    def get_status(self, post_id: str) -> PostStatus:
        """
        Query the platform for the status of a post.

        Raises:
            TransportError, AuthError, PlatformError
        """

    @abstractmethod
    def refresh_token(self) -> ProviderCredential:
        """
        Exchange the stored refresh token for a new access token.

        Returns:
            A new credential carrying the refreshed token fields

        Raises:
            NoRefreshToken: If no refresh token is stored
            AuthError, TransportError, PlatformError
        """

    def _auth_headers(self) -> Dict[str, str]:
        token_type = self.credential.token_type or "Bearer"
        if token_type.lower() == "bearer":
            token_type = "Bearer"
        return {"Authorization": f"{token_type} {self.credential.access_token}"}

    def _require_refresh_token(self) -> None:
        if not self.credential.refresh_token:
            raise NoRefreshToken(self.provider_type.value)

    def _require_client_config(self) -> OAuthClientConfig:
        if self.client_config is None:
            raise AuthError(
                f"no {self.provider_type.value} client application configured, "
                "token cannot be refreshed",
                self.provider_type.value,
            )
        return self.client_config

    def _refreshed_credential(
        self,
        data: Dict[str, Any],
        access_token: Optional[str],
    ) -> ProviderCredential:
        """
        Build the credential that results from a refresh response.

        Args:
            data: Token fields from the platform response
            access_token: New access token extracted from the response
        """
        if not access_token:
            raise PlatformError(
                "token refresh response did not include an access token",
                self.provider_type.value,
            )

        updates: Dict[str, Any] = {"access_token": access_token}

        if data.get("token_type"):
            updates["token_type"] = data["token_type"]
        if data.get("refresh_token"):
            updates["refresh_token"] = data["refresh_token"]
        if data.get("scope"):
            updates["scope"] = data["scope"]

        expires_in = data.get("expires_in")
        if expires_in is not None:
            try:
                updates["expires_at"] = utc_now() + timedelta(seconds=int(expires_in))
            except (TypeError, ValueError):
                self.logger.warning(f"Ignoring invalid expires_in value: {expires_in!r}")

        self.logger.info(f"Refreshed access token for provider '{self.credential.name}'")
        return dataclasses.replace(self.credential, **updates)
