"""
Services package for business logic layer.

This package contains service classes that implement business logic
and coordinate between the tenant databases and the provider integrations.
"""

from .provider_service import ProviderService

__all__ = ["ProviderService"]
