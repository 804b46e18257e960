"""
Provider management API routes.

Lists a tenant's connected provider instances, refreshes their tokens and
disconnects them. Credentials themselves are never returned.
"""

import logging

from flask import Blueprint, jsonify, request

from socgate.error_handling import ResourceNotFoundError
from socgate.utils.time_utils import isoformat_or_none

from .context import get_service, get_tenant_id

logger = logging.getLogger(__name__)

provider_bp = Blueprint("providers", __name__, url_prefix="/api/providers")


@provider_bp.route("", methods=["GET"])
def list_providers():
    """
    List the tenant's provider instances.

    Query parameters:
        include_inactive: "true" to include disconnected providers
    """
    tenant_id = get_tenant_id()
    include_inactive = request.args.get("include_inactive", "").lower() in (
        "true",
        "1",
        "yes",
    )

    provider_service = get_service("provider_service")
    providers = provider_service.list_providers(tenant_id, include_inactive)
    providers_data = [provider.to_dict() for provider in providers]

    return jsonify(
        {
            "providers": providers_data,
            "total": len(providers_data),
            "supported_types": provider_service.get_supported_providers(),
        }
    ), 200


@provider_bp.route("/<name>/refresh", methods=["POST"])
def refresh_provider(name: str):
    """Refresh a provider's access token and store the new credential."""
    tenant_id = get_tenant_id()

    credential = get_service("provider_service").refresh_provider_token(tenant_id, name)

    return jsonify(
        {
            "provider": {
                "name": credential.name,
                "type": credential.type.value,
                "token_type": credential.token_type,
                "expires_at": isoformat_or_none(credential.expires_at),
                "scope": credential.scope,
            },
            "message": "Token refreshed",
        }
    ), 200


@provider_bp.route("/<name>", methods=["DELETE"])
def disconnect_provider(name: str):
    """Soft-disconnect a provider instance."""
    tenant_id = get_tenant_id()

    if not get_service("provider_service").deactivate_provider(tenant_id, name):
        raise ResourceNotFoundError("Provider", name)

    logger.info(f"Tenant {tenant_id} disconnected provider '{name}'")
    return jsonify({"message": f"Provider '{name}' disconnected"}), 200
