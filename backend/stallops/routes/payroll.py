# Overview: Flask API routes for payroll; calculation, approval workflow, payment and monthly summaries.

from flask import Blueprint, jsonify, g, current_app, request

from ..decorators import require_actor, require_role, APPROVER_ROLES, FINANCE_ROLES
from ..domain.errors import DomainError, ValidationError
from ..models import Payroll
from ..responses import (
    error_response,
    flag_arg,
    json_body,
    page,
    paging_args,
    record_json,
    split_expected_version,
)
from ..services import payroll_service, record_service


payroll_bp = Blueprint("payroll", __name__, url_prefix="/api/payroll")


def _month_year_arg() -> str:
    month_year = (request.args.get("month_year") or "").strip()
    if not month_year:
        raise ValidationError("month_year is required (e.g. 'January 2026')")
    return month_year


@payroll_bp.get("")
@require_actor
def list_payrolls_route():
    """
    List payroll records.

    Query parameters:
    - status, employee_id, month_year, stall_id
    - include_inactive (default: false)
    - limit / offset
    """
    limit, offset = paging_args()
    rows, total = payroll_service.list_payrolls(
        status=request.args.get("status"),
        employee_id=request.args.get("employee_id"),
        month_year=request.args.get("month_year"),
        stall_id=request.args.get("stall_id"),
        include_inactive=flag_arg("include_inactive"),
        limit=limit,
        offset=offset,
    )
    return page(rows, total, limit, offset)


@payroll_bp.post("")
@require_actor
@require_role(*FINANCE_ROLES)
def create_payroll_route():
    """
    Create a payroll record; all derived totals are computed server-side.

    Request body:
    {
        "code": "PAY-2026-01-E001",                                    // required
        "employee": {"employee_id": "E001", "employee_name": "...",
                     "designation": "Cook", "role": "chef"},          // required
        "period": {"start_date": "2026-01-01", "end_date": "2026-01-31"}, // required
        "base_salary": "10000",                                        // required
        "allowances": {"house_rent": "2000"},
        "attendance": {"total_working_days": 26, "present_days": 26},
        "overtime": {"hours": "5", "rate": "100"},
        "bonus": {"performance": "300"},
        "deductions": {"fine": "800"},
        "payment": {"method": "bank-transfer"}
    }
    """
    try:
        row = payroll_service.create_payroll(payload=json_body(), actor=g.actor)
        return jsonify(row.to_dict()), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create payroll")
        return jsonify({"error": "Internal server error"}), 500


@payroll_bp.get("/monthly-total")
@require_actor
def monthly_total_route():
    """Aggregate totals for one month. Query: month_year (required)."""
    try:
        return record_json(payroll_service.monthly_total(_month_year_arg()))
    except DomainError as e:
        return error_response(e)


@payroll_bp.get("/top-earners")
@require_actor
def top_earners_route():
    """Highest final payments for one month. Query: month_year (required), limit (default 10)."""
    try:
        limit = min(max(request.args.get("limit", 10, type=int), 1), 100)
        earners = payroll_service.top_earners(_month_year_arg(), limit)
        return record_json({"items": earners, "count": len(earners)})
    except DomainError as e:
        return error_response(e)


@payroll_bp.get("/<int:payroll_id>")
@require_actor
def get_payroll_route(payroll_id: int):
    try:
        return jsonify(record_service.get(Payroll, payroll_id).to_dict())
    except DomainError as e:
        return error_response(e)


@payroll_bp.patch("/<int:payroll_id>")
@require_actor
@require_role(*FINANCE_ROLES)
def update_payroll_route(payroll_id: int):
    """Revise inputs of a draft or pending payroll; totals are recomputed."""
    try:
        expected, data = split_expected_version(json_body())
        row = payroll_service.update_payroll(
            payroll_id=payroll_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@payroll_bp.post("/<int:payroll_id>/calculate")
@require_actor
@require_role(*FINANCE_ROLES)
def recalculate_payroll_route(payroll_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = payroll_service.recalculate(payroll_id=payroll_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@payroll_bp.post("/<int:payroll_id>/submit")
@require_actor
def submit_payroll_route(payroll_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = payroll_service.submit(payroll_id=payroll_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@payroll_bp.post("/<int:payroll_id>/approve")
@require_actor
@require_role(*APPROVER_ROLES)
def approve_payroll_route(payroll_id: int):
    """Request body: {"comments": "...", "expected_version": 2}"""
    try:
        expected, data = split_expected_version(json_body())
        row = payroll_service.approve(
            payroll_id=payroll_id,
            actor=g.actor,
            comments=data.get("comments"),
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@payroll_bp.post("/<int:payroll_id>/reject")
@require_actor
@require_role(*APPROVER_ROLES)
def reject_payroll_route(payroll_id: int):
    """Request body: {"reason": "..."} (required)"""
    try:
        expected, data = split_expected_version(json_body())
        row = payroll_service.reject(
            payroll_id=payroll_id,
            actor=g.actor,
            reason=data.get("reason"),
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@payroll_bp.post("/<int:payroll_id>/process")
@require_actor
@require_role(*FINANCE_ROLES)
def process_payroll_route(payroll_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = payroll_service.process_payment(payroll_id=payroll_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@payroll_bp.post("/<int:payroll_id>/pay")
@require_actor
@require_role(*FINANCE_ROLES)
def pay_payroll_route(payroll_id: int):
    """Request body: {"transaction_id": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = payroll_service.mark_as_paid(
            payroll_id=payroll_id,
            actor=g.actor,
            transaction_id=data.get("transaction_id"),
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@payroll_bp.post("/<int:payroll_id>/cancel")
@require_actor
@require_role(*APPROVER_ROLES)
def cancel_payroll_route(payroll_id: int):
    """Request body: {"reason": "..."} (required)"""
    try:
        expected, data = split_expected_version(json_body())
        row = payroll_service.cancel(
            payroll_id=payroll_id,
            actor=g.actor,
            reason=data.get("reason"),
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@payroll_bp.post("/<int:payroll_id>/notes")
@require_actor
def add_payroll_note_route(payroll_id: int):
    """Request body: {"note": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = payroll_service.add_note(
            payroll_id=payroll_id,
            actor=g.actor,
            note=data.get("note"),
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@payroll_bp.delete("/<int:payroll_id>")
@require_actor
@require_role(*APPROVER_ROLES)
def delete_payroll_route(payroll_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = payroll_service.delete_payroll(payroll_id=payroll_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)
