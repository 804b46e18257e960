"""
Provider Factory and Registry.

Maps provider type tags to the classes implementing them and constructs
capability instances bound to a credential. Implementations can be replaced
at runtime, which is how tests substitute doubles without touching callers.
"""

import logging
from typing import Callable, Dict, List, Optional, Union

from .base_provider import BaseProvider, OAuthClientConfig, ProviderCredential, ProviderType
from .errors import UnsupportedProviderType
from .facebook_provider import FacebookProvider
from .http_utils import ProviderHTTPClient
from .instagram_provider import InstagramProvider
from .tiktok_provider import TikTokProvider

logger = logging.getLogger(__name__)

# Anything called as constructor(credential, http_client=..., client_config=...)
ProviderConstructor = Callable[..., BaseProvider]

DEFAULT_PROVIDERS: Dict[ProviderType, ProviderConstructor] = {
    ProviderType.TIKTOK: TikTokProvider,
    ProviderType.INSTAGRAM: InstagramProvider,
    ProviderType.FACEBOOK: FacebookProvider,
}


class ProviderFactory:
    """
    Registry of provider implementations keyed by ProviderType.

    Construction is pure: creating a provider never touches the network.
    """

    def __init__(
        self,
        http_client: Optional[ProviderHTTPClient] = None,
        register_defaults: bool = True,
    ):
        """
        Initialize the factory.

        Args:
            http_client: HTTP client shared by created providers
            register_defaults: Register the built-in platform implementations
        """
        self.http_client = http_client or ProviderHTTPClient()
        self._constructors: Dict[ProviderType, ProviderConstructor] = {}

        if register_defaults:
            self._constructors.update(DEFAULT_PROVIDERS)

    def register(
        self, provider_type: Union[ProviderType, str], constructor: ProviderConstructor
    ) -> None:
        """
        Register (or replace) the implementation for a provider type.

        Raises:
            UnsupportedProviderType: If the type tag is not a known platform
        """
        provider_type = ProviderType.parse(provider_type)
        self._constructors[provider_type] = constructor
        logger.debug(f"Registered provider implementation for {provider_type.value}")

    def unregister(self, provider_type: Union[ProviderType, str]) -> None:
        """Remove the implementation for a provider type, if registered."""
        self._constructors.pop(ProviderType.parse(provider_type), None)

    def supported_types(self) -> List[ProviderType]:
        """Return the provider types that currently have an implementation."""
        return [t for t in ProviderType if t in self._constructors]

    def is_supported(self, provider_type: Union[ProviderType, str]) -> bool:
        try:
            return ProviderType.parse(provider_type) in self._constructors
        except UnsupportedProviderType:
            return False

    def create_provider(
        self,
        provider_type: Union[ProviderType, str],
        credential: ProviderCredential,
        client_config: Optional[OAuthClientConfig] = None,
    ) -> BaseProvider:
        """
        Create a provider instance bound to a credential.

        Args:
            provider_type: Provider type or free-text type tag
            credential: Credential the provider will act with
            client_config: Client application for token refreshes

        Returns:
            Provider capability instance

        Raises:
            UnsupportedProviderType: For unknown or unregistered type tags
        """
        parsed = ProviderType.parse(provider_type)
        constructor = self._constructors.get(parsed)
        if constructor is None:
            raise UnsupportedProviderType(provider_type)

        return constructor(
            credential,
            http_client=self.http_client,
            client_config=client_config,
        )
