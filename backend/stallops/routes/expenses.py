# Overview: Flask API routes for expenses; approval workflow, payment, recurring schedules and totals.

from flask import Blueprint, jsonify, g, current_app, request

from ..decorators import require_actor, require_role, APPROVER_ROLES, FINANCE_ROLES
from ..domain.errors import DomainError
from ..models import Expense
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
from ..services import expense_service, record_service


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_actor
def list_expenses_route():
    """
    List expenses (newest expense_date first).

    Query parameters:
    - status: draft | submitted | approved | rejected | paid | cancelled
    - expense_type, stall_id
    - start / end: ISO dates bounding expense_date (inclusive)
    - include_inactive (default: false)
    - limit / offset
    """
    try:
        limit, offset = paging_args()
        rows, total = expense_service.list_expenses(
            status=request.args.get("status"),
            expense_type=request.args.get("expense_type"),
            stall_id=request.args.get("stall_id"),
            start=date_arg("start"),
            end=date_arg("end"),
            include_inactive=flag_arg("include_inactive"),
            limit=limit,
            offset=offset,
        )
        return page(rows, total, limit, offset)
    except DomainError as e:
        return error_response(e)


@expenses_bp.post("")
@require_actor
def create_expense_route():
    """
    Record an expense in draft.

    Request body:
    {
        "code": "EXP-0001",                          // required
        "expense_type": "rent",                      // required
        "amount": "15000",                           // required
        "expense_date": "2026-01-05",                // required
        "category": "fixed",                         // fixed | variable
        "tax": {"tax_percentage": "18", "tax_included": false},
        "payment": {"paid_to": "...", "mode": "upi"},
        "recurring": {"is_recurring": true, "frequency": "monthly", "total_occurrences": 12},
        "stall_id": "STALL-01", "department": "admin"
    }
    """
    try:
        row = expense_service.create_expense(payload=json_body(), actor=g.actor)
        return jsonify(row.to_dict()), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.get("/total-paid")
@require_actor
def total_paid_route():
    """Paid expense total within [start, end]. Query: start, end (required), stall_id."""
    try:
        total = expense_service.total_paid(
            start=date_arg("start"), end=date_arg("end"), stall_id=request.args.get("stall_id"),
        )
        return record_json(total)
    except DomainError as e:
        return error_response(e)


@expenses_bp.get("/breakdown")
@require_actor
def breakdown_route():
    """Per-type totals (largest first) within [start, end]. Query: start, end (required), stall_id."""
    try:
        items = expense_service.breakdown_by_type(
            start=date_arg("start"), end=date_arg("end"), stall_id=request.args.get("stall_id"),
        )
        return record_json({"items": items, "count": len(items)})
    except DomainError as e:
        return error_response(e)


@expenses_bp.get("/due-recurring")
@require_actor
def due_recurring_route():
    """Recurring expenses due on or before `date` (default today)."""
    try:
        rows = expense_service.due_recurring(date_arg("date"))
        return jsonify({"items": [row.to_dict() for row in rows], "count": len(rows)})
    except DomainError as e:
        return error_response(e)


@expenses_bp.get("/<int:expense_id>")
@require_actor
def get_expense_route(expense_id: int):
    try:
        return jsonify(record_service.get(Expense, expense_id).to_dict())
    except DomainError as e:
        return error_response(e)


@expenses_bp.patch("/<int:expense_id>")
@require_actor
def update_expense_route(expense_id: int):
    """Revise a draft or submitted expense."""
    try:
        expected, data = split_expected_version(json_body())
        row = expense_service.update_expense(
            expense_id=expense_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@expenses_bp.post("/<int:expense_id>/submit")
@require_actor
def submit_expense_route(expense_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = expense_service.submit(expense_id=expense_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@expenses_bp.post("/<int:expense_id>/approve")
@require_actor
@require_role(*APPROVER_ROLES)
def approve_expense_route(expense_id: int):
    """Request body: {"comments": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = expense_service.approve(
            expense_id=expense_id,
            actor=g.actor,
            comments=data.get("comments"),
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@expenses_bp.post("/<int:expense_id>/reject")
@require_actor
@require_role(*APPROVER_ROLES)
def reject_expense_route(expense_id: int):
    """Request body: {"reason": "..."} (required)"""
    try:
        expected, data = split_expected_version(json_body())
        row = expense_service.reject(
            expense_id=expense_id,
            actor=g.actor,
            reason=data.get("reason"),
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@expenses_bp.post("/<int:expense_id>/pay")
@require_actor
@require_role(*FINANCE_ROLES)
def pay_expense_route(expense_id: int):
    """Request body: {"transaction_id": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = expense_service.mark_as_paid(
            expense_id=expense_id,
            actor=g.actor,
            transaction_id=data.get("transaction_id"),
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@expenses_bp.post("/<int:expense_id>/cancel")
@require_actor
def cancel_expense_route(expense_id: int):
    """Request body: {"reason": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = expense_service.cancel(
            expense_id=expense_id,
            actor=g.actor,
            reason=data.get("reason"),
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@expenses_bp.post("/<int:expense_id>/notes")
@require_actor
def add_expense_note_route(expense_id: int):
    """Request body: {"note": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = expense_service.add_note(
            expense_id=expense_id, actor=g.actor, note=data.get("note"), expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@expenses_bp.post("/<int:expense_id>/advance-recurrence")
@require_actor
@require_role(*FINANCE_ROLES)
def advance_recurrence_route(expense_id: int):
    """Count one occurrence and move next_due_date forward by the frequency."""
    try:
        expected, _ = split_expected_version(json_body())
        row = expense_service.advance_recurring(expense_id=expense_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@expenses_bp.delete("/<int:expense_id>")
@require_actor
@require_role(*APPROVER_ROLES)
def delete_expense_route(expense_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = expense_service.delete_expense(expense_id=expense_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)
