"""
Post and scheduled job API routes.

POST /api/posts publishes content immediately or schedules it. The history,
calendar and job endpoints expose what was published and what is queued.
"""

import logging

from flask import Blueprint, jsonify, request

from socgate.error_handling import ValidationError

from .context import get_service, get_tenant_id

logger = logging.getLogger(__name__)

post_bp = Blueprint("posts", __name__, url_prefix="/api")


@post_bp.route("/posts", methods=["POST"])
def submit_post():
    """
    Publish or schedule content.

    Request body:
        {"provider_id": 1, "content": "...", "schedule_at": "now" | ISO-8601}

    Returns:
        201 Created: Content published (``status: published``)
        202 Accepted: Job scheduled (``status: scheduled``)
        400 Bad Request: Invalid body or provider not connected
        404 Not Found: Unknown provider id
        502 Bad Gateway: Platform rejected the publication
    """
    tenant_id = get_tenant_id()

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    result = get_service("post_service").submit_post(
        tenant_id,
        provider_id=data.get("provider_id"),
        content=data.get("content"),
        schedule_at=data.get("schedule_at"),
        title=data.get("title"),
    )

    status_code = 201 if result["status"] == "published" else 202
    return jsonify(result), status_code


def _int_arg(name: str):
    """Read an optional integer query parameter."""
    value = request.args.get(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", {name: value})


@post_bp.route("/posts", methods=["GET"])
def list_posts():
    """
    Page through the tenant's posting history.

    Query parameters:
        page: 1-based page number, 20 published posts and 20 jobs per page

    Returns:
        200 OK: ``{"posts": [...], "page", "page_size", "total"}``
    """
    tenant_id = get_tenant_id()

    page = _int_arg("page")
    history = get_service("post_service").get_history(
        tenant_id, page=1 if page is None else page
    )
    return jsonify(history), 200


@post_bp.route("/posts/calendar", methods=["GET"])
def post_calendar():
    """Per-day post counts for ``?year=&month=`` (defaults to this month)."""
    tenant_id = get_tenant_id()

    calendar = get_service("post_service").get_calendar(
        tenant_id, year=_int_arg("year"), month=_int_arg("month")
    )
    return jsonify(calendar), 200


@post_bp.route("/jobs", methods=["GET"])
def list_jobs():
    """List the tenant's scheduled jobs, optionally filtered by status."""
    tenant_id = get_tenant_id()

    jobs = get_service("post_service").list_jobs(
        tenant_id, status=request.args.get("status")
    )
    jobs_data = [job.to_dict() for job in jobs]
    return jsonify({"jobs": jobs_data, "total": len(jobs_data)}), 200


@post_bp.route("/jobs/<int:job_id>", methods=["GET"])
def get_job(job_id: int):
    tenant_id = get_tenant_id()
    job = get_service("post_service").get_job(tenant_id, job_id)
    return jsonify({"job": job.to_dict()}), 200
