"""
Centralized error handling for the publishing gateway API.

Every failure leaves the API in the same JSON envelope::

    {"error": {"type", "message", "timestamp", "status_code",
               "details", "request_id", "help"}}

Gateway errors carry their own status code. Provider errors are mapped by
class: the ones caused by the caller (unknown provider, unsupported type,
nothing to refresh with) are 400s, the rest are upstream failures and
become 502s.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple, Union

from flask import Flask, request
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import BadRequest, HTTPException, NotFound

from socgate.services.providers.errors import (
    NoRefreshToken,
    ProviderError,
    ProviderNotConfigured,
    UnsupportedProviderType,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)

HELP_MESSAGES = {
    "validation_error": "Check the request body and query parameters and try again.",
    "authentication_required": "Send the tenant identifier in the X-User-ID header.",
    "not_found": "Verify the ID and that the resource belongs to this tenant.",
    "conflict": "The record already exists for this tenant.",
    "provider_error": (
        "The social media platform rejected or did not answer the request. "
        "Reconnect the provider if its token has expired."
    ),
    "server_error": "Internal server error. Try again later.",
}
DEFAULT_HELP = "Please check your request and try again."


class GatewayError(Exception):
    """Base exception class for API-level errors."""

    error_type = "server_error"

    def __init__(
        self, message: str, status_code: int = 500, details: Optional[Dict] = None
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class ValidationError(GatewayError):
    """Raised when request input does not pass validation."""

    error_type = "validation_error"

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, 400, details)


class AuthenticationRequired(GatewayError):
    """Raised when a request carries no tenant identity."""

    error_type = "authentication_required"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, 401)


class ResourceNotFoundError(GatewayError):
    """Raised when a tenant-scoped record does not exist."""

    error_type = "not_found"

    def __init__(self, resource_type: str, resource_id: Union[str, int]):
        super().__init__(
            f"{resource_type} with ID {resource_id} not found",
            404,
            {"resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: Optional[Dict] = None,
    request_id: Optional[str] = None,
) -> Tuple[Dict, int]:
    """
    Build the JSON error envelope.

    Args:
        error_type: Envelope type (validation_error, not_found, provider_error, ...)
        message: Human-readable error message
        status_code: HTTP status code
        details: Additional error details
        request_id: Error ID returned by ``log_error``

    Returns:
        Tuple of (response_dict, status_code)
    """
    body = {
        "type": error_type,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status_code": status_code,
        "help": HELP_MESSAGES.get(error_type, DEFAULT_HELP),
    }
    if details:
        body["details"] = details
    if request_id:
        body["request_id"] = request_id

    return {"error": body}, status_code


def log_error(
    error: Exception, request_info: Optional[Dict] = None, user_id: Optional[str] = None
) -> str:
    """
    Log an error together with its request context.

    Returns:
        Unique error ID, echoed to the client as ``request_id``
    """
    now = datetime.now(timezone.utc)
    error_id = f"ERR_{now.strftime('%Y%m%d_%H%M%S')}_{id(error)}"

    entry = {
        "error_id": error_id,
        "error_type": type(error).__name__,
        "error_message": str(error),
        "timestamp": now.isoformat(),
    }
    if request_info:
        entry["request"] = request_info
    if user_id:
        entry["user_id"] = user_id
    if error.__traceback__ is not None:
        entry["traceback"] = traceback.format_exception(
            type(error), error, error.__traceback__
        )

    logger.error(f"Request failed: {entry}")
    return error_id


def get_request_info() -> Dict:
    """Extract the parts of the current request worth logging."""
    return {
        "method": request.method,
        "path": request.path,
        "remote_addr": request.remote_addr,
        "user_agent": request.headers.get("User-Agent", "Unknown"),
    }


def _current_tenant() -> Optional[str]:
    return request.headers.get("X-User-ID") or None


def _respond(
    error: Exception,
    error_type: str,
    message: str,
    status_code: int,
    details: Optional[Dict] = None,
) -> Tuple[Dict, int]:
    error_id = log_error(error, get_request_info(), _current_tenant())
    return create_error_response(error_type, message, status_code, details, error_id)


def _integrity_message(error: IntegrityError) -> Tuple[str, Dict]:
    reason = str(error.orig).lower()
    if "unique" in reason:
        return "A record with these values already exists", {
            "constraint_type": "unique_violation"
        }
    if "foreign key" in reason:
        return "Referenced record does not exist", {
            "constraint_type": "foreign_key_violation"
        }
    if "not null" in reason:
        return "A required field is missing", {"constraint_type": "not_null_violation"}
    return "Data integrity constraint violation", {}


def register_error_handlers(app: Flask) -> None:
    """Attach the gateway's error handlers to ``app``."""

    @app.errorhandler(GatewayError)
    def handle_gateway_error(error: GatewayError):
        return _respond(
            error, error.error_type, error.message, error.status_code, error.details
        )

    @app.errorhandler(ProviderNotConfigured)
    @app.errorhandler(NoRefreshToken)
    def handle_provider_request_error(error: ProviderError):
        """The request names a provider that cannot serve it."""
        return _respond(
            error,
            "validation_error",
            str(error),
            400,
            {"provider_name": error.provider_name},
        )

    @app.errorhandler(UnsupportedProviderType)
    def handle_unsupported_provider_type(error: UnsupportedProviderType):
        return _respond(
            error,
            "validation_error",
            error.message,
            400,
            {"provider_type": error.provider_type},
        )

    @app.errorhandler(ProviderError)
    def handle_provider_error(error: ProviderError):
        """Transport, auth and platform failures of a provider call."""
        details = {
            "error_class": type(error).__name__,
            "provider_type": error.provider_type,
            "provider_name": error.provider_name,
        }
        platform_status = getattr(error, "status_code", None)
        if platform_status:
            details["platform_status"] = platform_status

        return _respond(error, "provider_error", str(error), 502, details)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error: IntegrityError):
        message, details = _integrity_message(error)
        return _respond(error, "conflict", message, 409, details)

    @app.errorhandler(OperationalError)
    def handle_operational_error(error: OperationalError):
        # Tenant database paths stay out of the response
        return _respond(
            error,
            "server_error",
            "Tenant database temporarily unavailable",
            503,
        )

    @app.errorhandler(BadRequest)
    def handle_bad_request(error: BadRequest):
        details = {}
        message = "Invalid request format"
        if "JSON" in str(error):
            message = "Request body is not valid JSON"
            details["expected_format"] = "JSON object"
        return _respond(error, "validation_error", message, 400, details)

    @app.errorhandler(NotFound)
    def handle_unknown_endpoint(error: NotFound):
        return _respond(error, "not_found", f"Endpoint {request.path} not found", 404)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        if isinstance(error, HTTPException):
            return _respond(
                error, "http_error", error.description or error.name, error.code or 500
            )

        logger.critical(f"Unhandled exception: {error}", exc_info=True)
        return _respond(
            error,
            "server_error",
            "An unexpected error occurred. Please try again later.",
            500,
        )


def not_found_if_none(
    resource: Optional[object], resource_type: str, resource_id: Union[str, int]
) -> object:
    """Return ``resource``, or raise ResourceNotFoundError when it is None."""
    if resource is None:
        raise ResourceNotFoundError(resource_type, resource_id)
    return resource
