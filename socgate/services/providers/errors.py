"""
Error taxonomy for provider integrations.

Exception hierarchy:
    ProviderError
    +-- TransportError           platform unreachable, timeouts, connection resets
    +-- AuthError                token rejected and refresh not possible
    |   +-- NoRefreshToken       refresh attempted without a stored refresh token
    +-- PlatformError            structured rejection returned by the platform
    +-- UnsupportedProviderType  unknown provider type tag (also a ValueError)
    +-- ProviderNotConfigured    no active credential for tenant + instance name

Errors raised by a provider travel through ProviderService unchanged in type;
the service only attaches tenant/provider context with ``with_context``.
"""

from typing import Optional


class ProviderError(Exception):
    """Base exception for all provider-related errors."""

    def __init__(self, message: str, provider_type: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.provider_type = provider_type
        self.tenant_id: Optional[str] = None
        self.provider_name: Optional[str] = None
        self.operation: Optional[str] = None

    def with_context(
        self,
        tenant_id: Optional[str] = None,
        provider_name: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> "ProviderError":
        """Attach caller context without changing the error's type."""
        if tenant_id is not None:
            self.tenant_id = tenant_id
        if provider_name is not None:
            self.provider_name = provider_name
        if operation is not None:
            self.operation = operation
        return self

    def __str__(self) -> str:
        if self.operation and self.provider_name:
            return (
                f"{self.operation} via provider '{self.provider_name}' "
                f"(tenant {self.tenant_id}) failed: {self.message}"
            )
        return self.message


class TransportError(ProviderError):
    """Raised when the platform cannot be reached."""


class AuthError(ProviderError):
    """Raised when the platform rejects the credential."""


class NoRefreshToken(AuthError):
    """Raised when a token refresh is attempted without a refresh token."""

    def __init__(self, provider_type: Optional[str] = None):
        super().__init__("no refresh token available", provider_type)


class PlatformError(ProviderError):
    """Raised when the platform returns a structured error payload."""

    def __init__(
        self,
        message: str,
        provider_type: Optional[str] = None,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        error_type: Optional[str] = None,
    ):
        super().__init__(message, provider_type)
        self.status_code = status_code
        self.error_code = error_code
        self.error_type = error_type


class UnsupportedProviderType(ProviderError, ValueError):
    """Raised for provider type tags with no registered implementation."""

    def __init__(self, provider_type):
        super().__init__(f"unsupported provider type: {provider_type}", str(provider_type))


class ProviderNotConfigured(ProviderError):
    """Raised when no active credential matches the tenant and instance name."""

    def __init__(self, tenant_id: str, provider_name: str):
        super().__init__(
            f"provider not found: no active provider '{provider_name}' "
            f"is configured for tenant {tenant_id}"
        )
        self.tenant_id = tenant_id
        self.provider_name = provider_name

    def __str__(self) -> str:
        return self.message
