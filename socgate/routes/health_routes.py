"""
Health check routes for monitoring application status.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, jsonify

from .context import get_service

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health_check():
    """
    Basic health check endpoint.

    Reports the application as healthy together with the scheduler status.
    """
    scheduler = get_service("job_scheduler")

    return jsonify(
        {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "socgate-api",
            "scheduler": scheduler.get_scheduler_status(),
        }
    ), 200
