"""
Provider integrations package.

This package contains the provider capability interface, the per-platform
implementations and the factory that selects between them.
"""

from .base_provider import (
    BaseProvider,
    OAuthClientConfig,
    PostStatus,
    ProviderCredential,
    ProviderType,
)
from .config import ProvidersConfig
from .errors import (
    AuthError,
    NoRefreshToken,
    PlatformError,
    ProviderError,
    ProviderNotConfigured,
    TransportError,
    UnsupportedProviderType,
)
from .facebook_provider import FacebookProvider
from .http_utils import ProviderHTTPClient
from .instagram_provider import InstagramProvider
from .provider_factory import ProviderFactory
from .tiktok_provider import TikTokProvider

__all__ = [
    "AuthError",
    "BaseProvider",
    "FacebookProvider",
    "InstagramProvider",
    "NoRefreshToken",
    "OAuthClientConfig",
    "PlatformError",
    "PostStatus",
    "ProviderCredential",
    "ProviderError",
    "ProviderFactory",
    "ProviderHTTPClient",
    "ProviderNotConfigured",
    "ProvidersConfig",
    "ProviderType",
    "TikTokProvider",
    "TransportError",
    "UnsupportedProviderType",
]
