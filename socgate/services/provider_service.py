"""
Provider Service for tenant-scoped platform operations.

This module provides the ProviderService class which resolves a tenant's
stored credential by instance name, builds the matching provider through the
ProviderFactory, invokes the capability and persists credential changes
back into the tenant's database.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy.orm import Session

from socgate.db.database import TenantDatabaseManager
from socgate.models.provider_model import ProviderModel
from socgate.security.credential_encryption import CredentialEncryption
from socgate.utils.time_utils import parse_iso8601, utc_now

from .providers.base_provider import (
    OAuthClientConfig,
    PostStatus,
    ProviderCredential,
    ProviderType,
)
from .providers.config import ProvidersConfig
from .providers.errors import ProviderError, ProviderNotConfigured
from .providers.provider_factory import ProviderFactory

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderService:
    """
    Tenant-aware front end to the provider integrations.

    Capability errors raised by providers keep their type when they leave
    this service; tenant, instance name and operation are attached to them
    for context.
    """

    def __init__(
        self,
        db_manager: TenantDatabaseManager,
        factory: Optional[ProviderFactory] = None,
        providers_config: Optional[ProvidersConfig] = None,
        encryption: Optional[CredentialEncryption] = None,
    ):
        """
        Initialize ProviderService.

        Args:
            db_manager: Registry of tenant databases
            factory: Provider factory (a default one is created if omitted)
            providers_config: Client applications used for token refreshes
            encryption: Credential encryption (default reads SECRET_KEY)
        """
        self.db_manager = db_manager
        self.factory = factory or ProviderFactory()
        self.providers_config = providers_config or ProvidersConfig()
        self.encryption = encryption or CredentialEncryption()

    # ------------------------------------------------------------------
    # Capability operations
    # ------------------------------------------------------------------

    def publish_content(self, tenant_id: str, provider_name: str, content: str) -> str:
        """
        Publish content through a tenant's provider instance.

        Args:
            tenant_id: Tenant owning the credential
            provider_name: Name of the provider instance
            content: Content body to publish

        Returns:
            Platform-assigned post identifier

        Raises:
            ProviderNotConfigured: If no active credential has that name
            TransportError, AuthError, PlatformError: From the platform
        """
        credential, client_config = self._resolve(tenant_id, provider_name)

        def call() -> str:
            provider = self.factory.create_provider(credential.type, credential, client_config)
            return provider.publish(content)

        post_id = self._invoke(tenant_id, provider_name, "publish", call)
        logger.info(
            f"Published content for tenant {tenant_id} via '{provider_name}' "
            f"({credential.type.value}): {post_id}"
        )
        return post_id

    def get_post_status(
        self, tenant_id: str, provider_name: str, post_id: str
    ) -> PostStatus:
        """
        Query the platform for the status of a post.

        Raises:
            ProviderNotConfigured: If no active credential has that name
            TransportError, AuthError, PlatformError: From the platform
        """
        credential, client_config = self._resolve(tenant_id, provider_name)

        def call() -> PostStatus:
            provider = self.factory.create_provider(credential.type, credential, client_config)
            return provider.get_status(post_id)

        return self._invoke(tenant_id, provider_name, "get_status", call)

    def refresh_provider_token(
        self, tenant_id: str, provider_name: str
    ) -> ProviderCredential:
        """
        Refresh a provider's access token and persist the result.

        Returns:
            The refreshed credential as stored

        Raises:
            ProviderNotConfigured: If no active credential has that name
            NoRefreshToken: If the credential has no refresh token
            AuthError, TransportError, PlatformError: From the platform
        """
        credential, client_config = self._resolve(tenant_id, provider_name)

        def call() -> ProviderCredential:
            provider = self.factory.create_provider(credential.type, credential, client_config)
            return provider.refresh_token()

        refreshed = self._invoke(tenant_id, provider_name, "refresh_token", call)

        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            record = self._find_active(db, tenant_id, provider_name)
            if record is None:
                # Disconnected while the refresh was in flight
                raise ProviderNotConfigured(tenant_id, provider_name)
            self._write_token_fields(record, refreshed)

        logger.info(
            f"Refreshed and stored token for tenant {tenant_id} provider '{provider_name}'"
        )
        return refreshed

    def ensure_fresh_token(
        self, tenant_id: str, provider_name: str, leeway_seconds: int = 300
    ) -> bool:
        """
        Refresh the token if it expires within the leeway.

        Returns:
            True if a refresh was performed
        """
        credential, _ = self._resolve(tenant_id, provider_name)
        if not credential.refresh_token or not credential.is_expired(
            leeway_seconds=leeway_seconds
        ):
            return False

        self.refresh_provider_token(tenant_id, provider_name)
        return True

    def is_provider_configured(self, tenant_id: str, provider_name: str) -> bool:
        """
        Check whether a tenant has an active credential with this name.

        A missing credential is reported as False, not as an error. A tenant
        id that cannot name a database has no credentials either.
        """
        try:
            store = self.db_manager.get_or_create(tenant_id)
        except ValueError:
            return False

        with store.session() as db:
            return self._find_active(db, tenant_id, provider_name) is not None

    def get_supported_providers(self) -> List[str]:
        """Return the provider type tags the factory can build."""
        return [provider_type.value for provider_type in self.factory.supported_types()]

    # ------------------------------------------------------------------
    # Credential records
    # ------------------------------------------------------------------

    def get_credential(self, tenant_id: str, provider_name: str) -> ProviderCredential:
        """
        Load an active credential.

        Raises:
            ProviderNotConfigured: If no active credential has that name
        """
        credential, _ = self._resolve(tenant_id, provider_name)
        return credential

    def save_credential(
        self,
        tenant_id: str,
        credential: ProviderCredential,
        user_info: Optional[Dict[str, Any]] = None,
    ) -> ProviderModel:
        """
        Create or update the credential record for a provider instance.

        This is the persistence step of an OAuth callback. A soft-deactivated
        record with the same name is reactivated.

        Args:
            tenant_id: Tenant owning the credential
            credential: Credential to store
            user_info: Optional platform account details to keep with it

        Returns:
            ProviderModel: The stored record
        """
        provider_type = ProviderType.parse(credential.type)

        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            record = (
                db.query(ProviderModel)
                .filter(
                    ProviderModel.user_id == tenant_id,
                    ProviderModel.name == credential.name,
                )
                .first()
            )

            if record is None:
                record = ProviderModel(name=credential.name, user_id=tenant_id)
                db.add(record)
                config: Dict[str, Any] = {}
            else:
                config = self.encryption.decrypt_config_json(record.config)

            record.type = provider_type.value
            record.is_active = True

            if user_info is not None:
                config["user_info"] = dict(user_info)
            elif credential.platform_user_id:
                config.setdefault("user_info", {})["id"] = credential.platform_user_id

            config.update(self._token_fields(credential))
            record.config = self.encryption.encrypt_config_json(config)
            record.updated_at = utc_now()
            db.flush()

            logger.info(
                f"Stored {provider_type.value} credential '{credential.name}' "
                f"for tenant {tenant_id}"
            )
            return record

    def list_providers(
        self, tenant_id: str, include_inactive: bool = False
    ) -> List[ProviderModel]:
        """List a tenant's provider records."""
        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            query = db.query(ProviderModel).filter(ProviderModel.user_id == tenant_id)
            if not include_inactive:
                query = query.filter(ProviderModel.is_active.is_(True))
            return query.order_by(ProviderModel.name).all()

    def get_provider_by_id(
        self, tenant_id: str, provider_id: int
    ) -> Optional[ProviderModel]:
        """Return a tenant's provider record by primary key."""
        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            return (
                db.query(ProviderModel)
                .filter(
                    ProviderModel.id == provider_id,
                    ProviderModel.user_id == tenant_id,
                )
                .first()
            )

    def deactivate_provider(self, tenant_id: str, provider_name: str) -> bool:
        """
        Soft-disconnect a provider instance.

        Returns:
            True if an active record was deactivated
        """
        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            record = self._find_active(db, tenant_id, provider_name)
            if record is None:
                return False

            record.is_active = False
            record.updated_at = utc_now()

        logger.info(f"Deactivated provider '{provider_name}' for tenant {tenant_id}")
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _invoke(
        self, tenant_id: str, provider_name: str, operation: str, call: Callable[[], T]
    ) -> T:
        try:
            return call()
        except ProviderError as e:
            e.with_context(tenant_id, provider_name, operation)
            logger.warning(str(e))
            raise

    def _resolve(
        self, tenant_id: str, provider_name: str
    ) -> Tuple[ProviderCredential, Optional[OAuthClientConfig]]:
        store = self.db_manager.get_or_create(tenant_id)
        with store.session() as db:
            record = self._find_active(db, tenant_id, provider_name)
            if record is None:
                raise ProviderNotConfigured(tenant_id, provider_name)

            try:
                credential = self._to_credential(record)
            except ProviderError as e:
                e.with_context(tenant_id, provider_name, "load_credential")
                raise

        client_config = self.providers_config.get_instance(credential.type, provider_name)
        return credential, client_config

    @staticmethod
    def _find_active(
        db: Session, tenant_id: str, provider_name: str
    ) -> Optional[ProviderModel]:
        return (
            db.query(ProviderModel)
            .filter(
                ProviderModel.user_id == tenant_id,
                ProviderModel.name == provider_name,
                ProviderModel.is_active.is_(True),
            )
            .first()
        )

    def _to_credential(self, record: ProviderModel) -> ProviderCredential:
        config = self.encryption.decrypt_config_json(record.config)

        expires_at: Optional[datetime] = None
        if config.get("expires_at"):
            expires_at = parse_iso8601(config["expires_at"])

        user_info = config.get("user_info") or {}

        return ProviderCredential(
            name=record.name,
            type=ProviderType.parse(record.type),
            access_token=config.get("access_token", ""),
            refresh_token=config.get("refresh_token") or None,
            token_type=config.get("token_type") or "Bearer",
            expires_at=expires_at,
            scope=config.get("scope", ""),
            is_active=record.is_active,
            platform_user_id=user_info.get("id"),
        )

    @staticmethod
    def _token_fields(credential: ProviderCredential) -> Dict[str, Any]:
        return {
            "access_token": credential.access_token,
            "refresh_token": credential.refresh_token or "",
            "token_type": credential.token_type,
            "expires_at": credential.expires_at.isoformat()
            if credential.expires_at
            else None,
            "scope": credential.scope,
        }

    def _write_token_fields(
        self, record: ProviderModel, credential: ProviderCredential
    ) -> None:
        config = self.encryption.decrypt_config_json(record.config)
        config.update(self._token_fields(credential))
        record.config = self.encryption.encrypt_config_json(config)
        record.updated_at = utc_now()
