"""
Request context helpers shared by the API blueprints.
"""

from flask import current_app, request

from socgate.db.database import validate_tenant_id
from socgate.error_handling import AuthenticationRequired, ValidationError

TENANT_HEADER = "X-User-ID"


def get_tenant_id() -> str:
    """
    Return the tenant identifier of the current request.

    Raises:
        AuthenticationRequired: If the request carries no tenant header
        ValidationError: If the identifier cannot name a tenant database
    """
    tenant_id = request.headers.get(TENANT_HEADER, "").strip()
    if not tenant_id:
        raise AuthenticationRequired(f"Missing {TENANT_HEADER} header")

    try:
        return validate_tenant_id(tenant_id)
    except ValueError as e:
        raise ValidationError(str(e))


def get_service(name: str):
    """Return a service registered on the application by ``create_app``."""
    return current_app.extensions["socgate"][name]
