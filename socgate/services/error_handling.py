"""
Structured error logging for scheduled job execution.

Errors raised while a job is dispatched are classified by the provider error
taxonomy and logged with a category, a severity and the job's context so that
failed publications can be traced per tenant.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from socgate.models.scheduled_job_model import UnknownJobType

from .providers.errors import (
    AuthError,
    PlatformError,
    ProviderNotConfigured,
    TransportError,
    UnsupportedProviderType,
)

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels for structured logging."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors for better classification."""

    NETWORK = "network"
    API = "api"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    PERSISTENCE = "persistence"
    SYSTEM = "system"


@dataclass
class ErrorDetails:
    """Structured error information for logging."""

    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    exception_type: str
    timestamp: datetime
    tenant_id: Optional[str] = None
    job_id: Optional[int] = None
    http_status: Optional[int] = None
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error details to dictionary for logging."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "exception_type": self.exception_type,
            "timestamp": self.timestamp.isoformat(),
            "tenant_id": self.tenant_id,
            "job_id": self.job_id,
            "http_status": self.http_status,
            "context": self.context or {},
        }


class StructuredErrorLogger:
    """Structured error logging with categorization and severity levels."""

    def __init__(self, logger_name: str = "job_error_handler"):
        self.logger = logging.getLogger(logger_name)

    def log_error(self, error_details: ErrorDetails) -> None:
        """
        Log structured error information.

        The log level follows the severity of the error.
        """
        error_dict = error_details.to_dict()
        message = f"Job execution error: {error_details.message}"

        if error_details.severity == ErrorSeverity.CRITICAL:
            self.logger.critical(message, extra={"error_details": error_dict})
        elif error_details.severity == ErrorSeverity.HIGH:
            self.logger.error(message, extra={"error_details": error_dict})
        elif error_details.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(message, extra={"error_details": error_dict})
        else:
            self.logger.info(message, extra={"error_details": error_dict})

    def create_error_details(
        self,
        exception: Exception,
        tenant_id: Optional[str] = None,
        job_id: Optional[int] = None,
        category: Optional[ErrorCategory] = None,
        severity: Optional[ErrorSeverity] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorDetails:
        """
        Create structured error details from exception.

        Args:
            exception: Exception that occurred
            tenant_id: Tenant the job belongs to (if applicable)
            job_id: ID of the job (if applicable)
            category: Error category (derived from the exception if omitted)
            severity: Error severity (derived from the exception if omitted)
            context: Additional context information

        Returns:
            Structured error details
        """
        default_category, default_severity = categorize_error(exception)

        return ErrorDetails(
            category=category or default_category,
            severity=severity or default_severity,
            message=str(exception),
            exception_type=type(exception).__name__,
            timestamp=datetime.now(timezone.utc),
            tenant_id=tenant_id,
            job_id=job_id,
            http_status=getattr(exception, "status_code", None),
            context=context,
        )


def categorize_error(exception: Exception) -> Tuple[ErrorCategory, ErrorSeverity]:
    """
    Categorize an exception and determine its severity.

    Args:
        exception: Exception to categorize

    Returns:
        Tuple of (category, severity)
    """
    if isinstance(exception, TransportError):
        return ErrorCategory.NETWORK, ErrorSeverity.MEDIUM

    if isinstance(exception, AuthError):
        return ErrorCategory.AUTHENTICATION, ErrorSeverity.HIGH

    if isinstance(exception, PlatformError):
        status_code = exception.status_code or 0
        if status_code >= 500:
            return ErrorCategory.API, ErrorSeverity.HIGH
        return ErrorCategory.API, ErrorSeverity.MEDIUM

    if isinstance(
        exception, (ProviderNotConfigured, UnsupportedProviderType, UnknownJobType)
    ):
        return ErrorCategory.CONFIGURATION, ErrorSeverity.MEDIUM

    if isinstance(exception, SQLAlchemyError):
        return ErrorCategory.PERSISTENCE, ErrorSeverity.CRITICAL

    return ErrorCategory.SYSTEM, ErrorSeverity.HIGH
