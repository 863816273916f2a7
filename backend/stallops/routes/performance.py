# Overview: Flask API routes for stall performance reports; scoring, review lifecycle and rankings.

from decimal import Decimal, InvalidOperation

from flask import Blueprint, jsonify, g, current_app, request

from ..decorators import require_actor, require_role, APPROVER_ROLES
from ..domain.errors import DomainError, ValidationError
from ..models import StallPerformance
from ..responses import error_response, flag_arg, json_body, page, paging_args, split_expected_version
from ..services import performance_service, record_service


performance_bp = Blueprint("performance", __name__, url_prefix="/api/stall-performance")


def _ranking_limit() -> int:
    return min(max(request.args.get("limit", 10, type=int), 1), 100)


@performance_bp.get("")
@require_actor
def list_reports_route():
    """
    List performance reports (latest date first).

    Query parameters:
    - stall_id
    - period: daily | weekly | monthly | yearly
    - status: draft | submitted | reviewed | approved | archived
    - include_inactive (default: false)
    - limit / offset
    """
    limit, offset = paging_args()
    rows, total = performance_service.list_reports(
        stall_id=request.args.get("stall_id"),
        period=request.args.get("period"),
        status=request.args.get("status"),
        include_inactive=flag_arg("include_inactive"),
        limit=limit,
        offset=offset,
    )
    return page(rows, total, limit, offset)


@performance_bp.post("")
@require_actor
def create_report_route():
    """
    Create a draft report; metrics and grade are computed server-side.

    Request body:
    {
        "stall_id": "STALL-01", "stall_name": "...",   // required
        "performance_date": "2026-01-05",             // required
        "period": "daily",
        "sales": {"sales_amount": "12000", "sales_target": "10000",
                  "total_orders": 150, "cancelled_orders": 3},
        "feedback": {"average_rating": "4.4", "total_reviews": 40},
        "wastage": {"quantity": "3", "value": "240"}
    }

    One report per (stall_id, performance_date, period).
    """
    try:
        row = performance_service.create_report(payload=json_body(), actor=g.actor)
        return jsonify(row.to_dict()), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create performance report")
        return jsonify({"error": "Internal server error"}), 500


@performance_bp.get("/top")
@require_actor
def top_performing_route():
    """Reports ranked by performance score. Query: period (default daily), limit (default 10)."""
    try:
        rows = performance_service.top_performing(
            period=request.args.get("period", "daily"), limit=_ranking_limit(),
        )
        return jsonify({"items": [row.to_dict() for row in rows], "count": len(rows)})
    except DomainError as e:
        return error_response(e)


@performance_bp.get("/high-wastage")
@require_actor
def high_wastage_route():
    """Reports whose wastage percentage exceeds `threshold` (default 10). Query: threshold, limit."""
    try:
        raw = request.args.get("threshold")
        try:
            threshold = Decimal(raw) if raw else None
        except InvalidOperation:
            raise ValidationError("threshold must be a number")
        rows = performance_service.high_wastage(threshold=threshold, limit=_ranking_limit())
        return jsonify({"items": [row.to_dict() for row in rows], "count": len(rows)})
    except DomainError as e:
        return error_response(e)


@performance_bp.get("/<int:report_id>")
@require_actor
def get_report_route(report_id: int):
    try:
        return jsonify(record_service.get(StallPerformance, report_id).to_dict())
    except DomainError as e:
        return error_response(e)


@performance_bp.patch("/<int:report_id>")
@require_actor
def update_report_route(report_id: int):
    """Revise figures of a draft or submitted report; the score is recomputed."""
    try:
        expected, data = split_expected_version(json_body())
        row = performance_service.update_report(
            report_id=report_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@performance_bp.post("/<int:report_id>/complaints")
@require_actor
def add_complaint_route(report_id: int):
    """Request body: {"complaint": "cold food"}; repeats increment the count."""
    try:
        expected, data = split_expected_version(json_body())
        row = performance_service.add_complaint(
            report_id=report_id, complaint=data.get("complaint"), actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@performance_bp.post("/<int:report_id>/action-items")
@require_actor
def add_action_item_route(report_id: int):
    """
    Request body:
    {"action": "...", "priority": "high", "assigned_to": "...", "due_date": "2026-01-10"}
    """
    try:
        expected, data = split_expected_version(json_body())
        row = performance_service.add_action_item(
            report_id=report_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@performance_bp.post("/<int:report_id>/submit")
@require_actor
def submit_report_route(report_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = performance_service.submit(report_id=report_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@performance_bp.post("/<int:report_id>/review")
@require_actor
@require_role(*APPROVER_ROLES)
def review_report_route(report_id: int):
    """Request body: {"comments": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = performance_service.review(
            report_id=report_id, actor=g.actor, comments=data.get("comments"), expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@performance_bp.post("/<int:report_id>/approve")
@require_actor
@require_role(*APPROVER_ROLES)
def approve_report_route(report_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = performance_service.approve(report_id=report_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@performance_bp.post("/<int:report_id>/archive")
@require_actor
@require_role(*APPROVER_ROLES)
def archive_report_route(report_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = performance_service.archive(report_id=report_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@performance_bp.delete("/<int:report_id>")
@require_actor
@require_role(*APPROVER_ROLES)
def delete_report_route(report_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = performance_service.delete_report(report_id=report_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)
