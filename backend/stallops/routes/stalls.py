# Overview: Flask API routes for stall operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g, current_app, request

from ..decorators import require_actor, require_role, APPROVER_ROLES
from ..domain.errors import DomainError
from ..models import Stall
from ..responses import error_response, flag_arg, json_body, page, paging_args, split_expected_version
from ..services import record_service, stall_service


stalls_bp = Blueprint("stalls", __name__, url_prefix="/api/stalls")


@stalls_bp.get("")
@require_actor
def list_stalls_route():
    """
    List stalls.

    Query parameters:
    - status: open | closed | temporarily-closed
    - city
    - include_inactive: Include soft-deleted stalls (default: false)
    - limit / offset

    Returns:
        {items: Stall[], count: int, limit: int, offset: int}
    """
    limit, offset = paging_args()
    rows, total = stall_service.list_stalls(
        status=request.args.get("status"),
        city=request.args.get("city"),
        include_inactive=flag_arg("include_inactive"),
        limit=limit,
        offset=offset,
    )
    return page(rows, total, limit, offset)


@stalls_bp.post("")
@require_actor
@require_role(*APPROVER_ROLES)
def create_stall_route():
    """
    Create a stall.

    Request body:
    {
        "code": "STALL-01",       // required, unique
        "name": "Main Street",    // required
        "stall_type": "kiosk",    // stall | kiosk | food-truck | production-house
        "location": "...", "city": "...", "pin_code": "...",
        "manager_name": "...", "contact_number": "..."
    }
    """
    try:
        row = stall_service.create_stall(payload=json_body(), actor=g.actor)
        return jsonify(row.to_dict()), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create stall")
        return jsonify({"error": "Internal server error"}), 500


@stalls_bp.get("/<int:stall_id>")
@require_actor
def get_stall_route(stall_id: int):
    try:
        return jsonify(record_service.get(Stall, stall_id).to_dict())
    except DomainError as e:
        return error_response(e)


@stalls_bp.patch("/<int:stall_id>")
@require_actor
@require_role(*APPROVER_ROLES)
def update_stall_route(stall_id: int):
    """Partial update of stall details. Body may carry expected_version."""
    try:
        expected, data = split_expected_version(json_body())
        row = stall_service.update_stall(
            stall_id=stall_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@stalls_bp.post("/<int:stall_id>/status")
@require_actor
@require_role(*APPROVER_ROLES)
def set_stall_status_route(stall_id: int):
    """
    Open or close a stall.

    Request body: {"status": "open" | "closed" | "temporarily-closed", "expected_version": 3}
    """
    try:
        expected, data = split_expected_version(json_body())
        row = stall_service.set_status(
            stall_id=stall_id, status=data.get("status"), actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@stalls_bp.delete("/<int:stall_id>")
@require_actor
@require_role(*APPROVER_ROLES)
def delete_stall_route(stall_id: int):
    """Soft delete (is_active=false)."""
    try:
        expected, _ = split_expected_version(json_body())
        row = stall_service.delete_stall(stall_id=stall_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)
