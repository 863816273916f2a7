# Overview: Flask API routes for profit/loss reports; figures, investor distribution and publication.

from flask import Blueprint, jsonify, g, current_app, request

from ..decorators import require_actor, require_role, APPROVER_ROLES, FINANCE_ROLES
from ..domain.errors import DomainError
from ..models import ProfitLossReport
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
from ..services import profit_loss_service, record_service


profit_loss_bp = Blueprint("profit_loss", __name__, url_prefix="/api/profit-loss")


@profit_loss_bp.get("")
@require_actor
def list_reports_route():
    """
    List profit/loss reports (latest period first).

    Query parameters:
    - status: draft | finalized | approved | published
    - period_type, stall_id
    - include_inactive (default: false)
    - limit / offset
    """
    limit, offset = paging_args()
    rows, total = profit_loss_service.list_reports(
        status=request.args.get("status"),
        period_type=request.args.get("period_type"),
        stall_id=request.args.get("stall_id"),
        include_inactive=flag_arg("include_inactive"),
        limit=limit,
        offset=offset,
    )
    return page(rows, total, limit, offset)


@profit_loss_bp.post("")
@require_actor
@require_role(*FINANCE_ROLES)
def create_report_route():
    """
    Create a draft report; summary and distribution are computed server-side.

    Request body:
    {
        "code": "PL-2026-01",                                   // required
        "period_start": "2026-01-01", "period_end": "2026-01-31", // required
        "period_type": "monthly",
        "revenue": {"total_sales": "100000", "cash_sales": "40000", "upi_sales": "60000"},
        "expenses": {"total_expenses": "60000", "fixed_expenses": "25000"},
        "deductions": {"total_discount_given": "2000"},
        "tax": {"tax_collected": "5000", "tax_payable": "5000"},
        "cogs": "30000", "operating_expenses": "10000", "total_orders": 1200,
        "owner_share_percentage": "70"
    }
    """
    try:
        row = profit_loss_service.create_report(payload=json_body(), actor=g.actor)
        return jsonify(row.to_dict()), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create profit/loss report")
        return jsonify({"error": "Internal server error"}), 500


@profit_loss_bp.get("/stats")
@require_actor
def overall_stats_route():
    """Aggregates over approved/published reports. Query: start, end, stall_id (all optional)."""
    try:
        stats = profit_loss_service.overall_stats(
            start=date_arg("start"), end=date_arg("end"), stall_id=request.args.get("stall_id"),
        )
        return record_json(stats)
    except DomainError as e:
        return error_response(e)


@profit_loss_bp.get("/<int:report_id>")
@require_actor
def get_report_route(report_id: int):
    try:
        return jsonify(record_service.get(ProfitLossReport, report_id).to_dict())
    except DomainError as e:
        return error_response(e)


@profit_loss_bp.patch("/<int:report_id>")
@require_actor
@require_role(*FINANCE_ROLES)
def update_report_route(report_id: int):
    """Revise a draft report's figures."""
    try:
        expected, data = split_expected_version(json_body())
        row = profit_loss_service.update_report(
            report_id=report_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@profit_loss_bp.post("/<int:report_id>/calculate")
@require_actor
@require_role(*FINANCE_ROLES)
def recalculate_report_route(report_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = profit_loss_service.recalculate(report_id=report_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@profit_loss_bp.post("/<int:report_id>/import-expenses")
@require_actor
@require_role(*FINANCE_ROLES)
def import_expenses_route(report_id: int):
    """Replace the expense figures with approved/paid expenses dated inside the period."""
    try:
        expected, _ = split_expected_version(json_body())
        row = profit_loss_service.import_expenses(report_id=report_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@profit_loss_bp.post("/<int:report_id>/investor-shares")
@require_actor
@require_role(*FINANCE_ROLES)
def add_investor_share_route(report_id: int):
    """
    Add an investor to the profit distribution.

    Request body:
    {
        "investor_id": 3,              // required, investor row id
        "share_percentage": "10"       // defaults to the investor's profit_share_percentage
    }
    """
    try:
        expected, data = split_expected_version(json_body())
        row = profit_loss_service.add_investor_share(
            report_id=report_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@profit_loss_bp.delete("/<int:report_id>/investor-shares/<investor_code>")
@require_actor
@require_role(*FINANCE_ROLES)
def remove_investor_share_route(report_id: int, investor_code: str):
    try:
        expected, _ = split_expected_version(json_body())
        row = profit_loss_service.remove_investor_share(
            report_id=report_id, investor_code=investor_code, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@profit_loss_bp.post("/<int:report_id>/finalize")
@require_actor
@require_role(*FINANCE_ROLES)
def finalize_report_route(report_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = profit_loss_service.finalize(report_id=report_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@profit_loss_bp.post("/<int:report_id>/approve")
@require_actor
@require_role(*APPROVER_ROLES)
def approve_report_route(report_id: int):
    """Request body: {"comments": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = profit_loss_service.approve(
            report_id=report_id,
            actor=g.actor,
            comments=data.get("comments"),
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@profit_loss_bp.post("/<int:report_id>/publish")
@require_actor
@require_role(*APPROVER_ROLES)
def publish_report_route(report_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = profit_loss_service.publish(report_id=report_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@profit_loss_bp.post("/<int:report_id>/notes")
@require_actor
def add_report_note_route(report_id: int):
    """Request body: {"note": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = profit_loss_service.add_note(
            report_id=report_id, actor=g.actor, note=data.get("note"), expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@profit_loss_bp.delete("/<int:report_id>")
@require_actor
@require_role(*APPROVER_ROLES)
def delete_report_route(report_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = profit_loss_service.delete_report(report_id=report_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)
