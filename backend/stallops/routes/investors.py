# Overview: Flask API routes for investors; ROI projections, payouts, notes and lifecycle.

from flask import Blueprint, jsonify, g, current_app, request

from ..decorators import require_actor, require_role, APPROVER_ROLES, FINANCE_ROLES
from ..domain.errors import DomainError
from ..models import Investor
from ..responses import (
    date_arg,
    error_response,
    flag_arg,
    json_body,
    page,
    paging_args,
    record_json,
    split_expected_version,
)
from ..services import investor_service, record_service


investors_bp = Blueprint("investors", __name__, url_prefix="/api/investors")


@investors_bp.get("")
@require_actor
def list_investors_route():
    """
    List investors (ordered by name).

    Query parameters:
    - status: active | completed | cancelled | on-hold
    - stall_id
    - include_inactive (default: false)
    - limit / offset
    """
    limit, offset = paging_args()
    rows, total = investor_service.list_investors(
        status=request.args.get("status"),
        stall_id=request.args.get("stall_id"),
        include_inactive=flag_arg("include_inactive"),
        limit=limit,
        offset=offset,
    )
    return page(rows, total, limit, offset)


@investors_bp.post("")
@require_actor
@require_role(*FINANCE_ROLES)
def create_investor_route():
    """
    Register an investor.

    Request body:
    {
        "code": "INV-001", "name": "...",          // required
        "contact": {"mobile_number": "9876543210", "email": "..."},  // required
        "investment_amount": "100000",             // required, minimum 1000
        "investment_date": "2026-01-01",           // required
        "profit_share_percentage": "10",           // percent of stall profit
        "distribution_frequency": "monthly",       // monthly | quarterly | yearly
        "stall_id": "STALL-01"
    }
    """
    try:
        row = investor_service.create_investor(payload=json_body(), actor=g.actor)
        return jsonify(row.to_dict()), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create investor")
        return jsonify({"error": "Internal server error"}), 500


@investors_bp.get("/payouts-due")
@require_actor
def payouts_due_route():
    """Active investors whose next calculation date is on or before `date` (default today)."""
    try:
        rows = investor_service.payouts_due(date_arg("date"))
        return jsonify({"items": [row.to_dict() for row in rows], "count": len(rows)})
    except DomainError as e:
        return error_response(e)


@investors_bp.get("/<int:investor_id>")
@require_actor
def get_investor_route(investor_id: int):
    try:
        return jsonify(record_service.get(Investor, investor_id).to_dict())
    except DomainError as e:
        return error_response(e)


@investors_bp.patch("/<int:investor_id>")
@require_actor
@require_role(*FINANCE_ROLES)
def update_investor_route(investor_id: int):
    try:
        expected, data = split_expected_version(json_body())
        row = investor_service.update_investor(
            investor_id=investor_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@investors_bp.get("/<int:investor_id>/roi")
@require_actor
def roi_route(investor_id: int):
    """Projected return over `months` (default 1) at the investor's expected ROI."""
    try:
        months = request.args.get("months", 1, type=int)
        return record_json(investor_service.calculate_roi(investor_id=investor_id, months=months))
    except DomainError as e:
        return error_response(e)


@investors_bp.post("/<int:investor_id>/payouts")
@require_actor
@require_role(*FINANCE_ROLES)
def add_payout_route(investor_id: int):
    """
    Record a profit payout.

    Request body:
    {
        "payout_date": "2026-02-01",          // required
        "base_profit_amount": "50000",        // required, stall profit for the period
        "payment_mode": "bank-transfer",      // required
        "transaction_id": "...",
        "remarks": "..."
    }
    """
    try:
        expected, data = split_expected_version(json_body())
        row = investor_service.add_payout(
            investor_id=investor_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record investor payout")
        return jsonify({"error": "Internal server error"}), 500


@investors_bp.post("/<int:investor_id>/hold")
@require_actor
@require_role(*APPROVER_ROLES)
def hold_investor_route(investor_id: int):
    """Request body: {"reason": "..."} (required)"""
    try:
        expected, data = split_expected_version(json_body())
        row = investor_service.put_on_hold(
            investor_id=investor_id, actor=g.actor, reason=data.get("reason"), expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@investors_bp.post("/<int:investor_id>/resume")
@require_actor
@require_role(*APPROVER_ROLES)
def resume_investor_route(investor_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = investor_service.resume(investor_id=investor_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@investors_bp.post("/<int:investor_id>/complete")
@require_actor
@require_role(*APPROVER_ROLES)
def complete_investor_route(investor_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = investor_service.complete(investor_id=investor_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@investors_bp.post("/<int:investor_id>/cancel")
@require_actor
@require_role(*APPROVER_ROLES)
def cancel_investor_route(investor_id: int):
    """Request body: {"reason": "..."} (required)"""
    try:
        expected, data = split_expected_version(json_body())
        row = investor_service.cancel(
            investor_id=investor_id, actor=g.actor, reason=data.get("reason"), expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@investors_bp.post("/<int:investor_id>/notes")
@require_actor
@require_role(*APPROVER_ROLES, "accountant")
def add_investor_note_route(investor_id: int):
    """Request body: {"note": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = investor_service.add_note(
            investor_id=investor_id, actor=g.actor, note=data.get("note"), expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@investors_bp.delete("/<int:investor_id>")
@require_actor
@require_role(*APPROVER_ROLES)
def delete_investor_route(investor_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = investor_service.delete_investor(investor_id=investor_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)
