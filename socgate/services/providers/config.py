"""
Provider client application configuration.

The gateway talks to each platform as one or more registered client
applications. They are listed per provider type in a YAML file:

    providers:
      tiktok:
        - name: main
          client_id: abc
          client_secret: xyz
          description: Primary TikTok app

When the file is absent, ``<TYPE>_CLIENT_ID`` and ``<TYPE>_CLIENT_SECRET``
environment variables define a single instance named ``default``.
"""

import logging
import os
from typing import Dict, List, Optional

import yaml

from .base_provider import OAuthClientConfig, ProviderType

logger = logging.getLogger(__name__)


class ProvidersConfigError(ValueError):
    """Raised when the providers configuration file is malformed."""


class ProvidersConfig:
    """Named client applications for every provider type."""

    def __init__(
        self, instances: Optional[Dict[ProviderType, List[OAuthClientConfig]]] = None
    ):
        self.instances: Dict[ProviderType, List[OAuthClientConfig]] = {
            provider_type: [] for provider_type in ProviderType
        }
        for provider_type, configs in (instances or {}).items():
            self.instances[ProviderType.parse(provider_type)] = list(configs)

    @classmethod
    def load(cls, path: Optional[str] = None) -> "ProvidersConfig":
        """
        Load from the YAML file if it exists, else from the environment.

        Raises:
            ProvidersConfigError: If the file exists but is malformed
            UnsupportedProviderType: If the file names an unknown provider type
        """
        if path and os.path.exists(path):
            return cls.from_yaml(path)

        logger.info("No providers config file found, using environment variables")
        return cls.from_env()

    @classmethod
    def from_yaml(cls, path: str) -> "ProvidersConfig":
        with open(path, "r", encoding="utf-8") as f:
            try:
                document = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ProvidersConfigError(f"Failed to parse {path}: {e}") from e

        if not isinstance(document, dict):
            raise ProvidersConfigError(f"{path} must contain a mapping")

        providers = document.get("providers") or {}
        if not isinstance(providers, dict):
            raise ProvidersConfigError(f"'providers' in {path} must be a mapping")

        instances: Dict[ProviderType, List[OAuthClientConfig]] = {}
        for type_tag, entries in providers.items():
            provider_type = ProviderType.parse(type_tag)
            instances[provider_type] = [
                cls._parse_instance(path, provider_type, entry) for entry in entries or []
            ]

        config = cls(instances)
        logger.info(
            f"Loaded {sum(len(v) for v in config.instances.values())} provider "
            f"client applications from {path}"
        )
        return config

    @classmethod
    def from_env(cls) -> "ProvidersConfig":
        instances: Dict[ProviderType, List[OAuthClientConfig]] = {}
        for provider_type in ProviderType:
            prefix = provider_type.value.upper()
            client_id = os.getenv(f"{prefix}_CLIENT_ID", "")
            client_secret = os.getenv(f"{prefix}_CLIENT_SECRET", "")
            if client_id and client_secret:
                instances[provider_type] = [
                    OAuthClientConfig(
                        name="default", client_id=client_id, client_secret=client_secret
                    )
                ]
        return cls(instances)

    @staticmethod
    def _parse_instance(path: str, provider_type: ProviderType, entry) -> OAuthClientConfig:
        if not isinstance(entry, dict):
            raise ProvidersConfigError(
                f"{provider_type.value} entries in {path} must be mappings"
            )

        missing = [k for k in ("name", "client_id", "client_secret") if not entry.get(k)]
        if missing:
            raise ProvidersConfigError(
                f"{provider_type.value} instance in {path} is missing: {', '.join(missing)}"
            )

        return OAuthClientConfig(
            name=str(entry["name"]),
            client_id=str(entry["client_id"]),
            client_secret=str(entry["client_secret"]),
            description=str(entry.get("description", "")),
        )

    def get_instance(
        self, provider_type: ProviderType, name: Optional[str] = None
    ) -> Optional[OAuthClientConfig]:
        """
        Return the client application for a provider instance.

        Falls back to the first application of the type when no instance has
        the given name.
        """
        candidates = self.instances.get(ProviderType.parse(provider_type), [])
        for instance in candidates:
            if instance.name == name:
                return instance
        return candidates[0] if candidates else None
