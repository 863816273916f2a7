# Overview: Flask API routes for inventory batches; stock movements, wastage and freshness alerts.

from flask import Blueprint, jsonify, g, current_app, request

from ..decorators import require_actor, require_role, APPROVER_ROLES
from ..domain.errors import DomainError
from ..models import InventoryBatch
from ..responses import error_response, flag_arg, json_body, page, paging_args, split_expected_version
from ..services import inventory_service, record_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _items(rows):
    return jsonify({"items": [row.to_dict() for row in rows], "count": len(rows)})


@inventory_bp.get("")
@require_actor
def list_batches_route():
    """
    List inventory batches (soonest expiry first).

    Query parameters:
    - batch_status: fresh | near-expiry | expired
    - item_type: product | raw-material
    - item_name
    - include_inactive (default: false)
    - limit / offset
    """
    limit, offset = paging_args()
    rows, total = inventory_service.list_batches(
        batch_status=request.args.get("batch_status"),
        item_type=request.args.get("item_type"),
        item_name=request.args.get("item_name"),
        include_inactive=flag_arg("include_inactive"),
        limit=limit,
        offset=offset,
    )
    return page(rows, total, limit, offset)


@inventory_bp.post("")
@require_actor
def create_batch_route():
    """
    Register a produced batch.

    Request body:
    {
        "batch_number": "B-2026-0001",                 // required, unique
        "item_type": "product", "item_name": "Momos",  // required
        "unit": "plate",
        "production_date": "2026-01-05T06:00:00Z",     // required
        "expiry_date": "2026-01-07T06:00:00Z",         // required
        "cost_per_unit": "40",                         // required
        "total_stock": "200",
        "min_stock_level": "20",
        "near_expiry_alert_days": 1
    }
    """
    try:
        row = inventory_service.create_batch(payload=json_body(), actor=g.actor)
        return jsonify(row.to_dict()), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create inventory batch")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/low-stock")
@require_actor
def low_stock_route():
    """Active batches at or below min_stock_level (lowest stock first)."""
    return _items(inventory_service.low_stock())


@inventory_bp.get("/near-expiry")
@require_actor
def near_expiry_route():
    """Active, unexpired batches expiring within `days` (default NEAR_EXPIRY_ALERT_DAYS)."""
    days = request.args.get("days", None, type=int)
    return _items(inventory_service.near_expiry(days=days))


@inventory_bp.post("/refresh")
@require_actor
@require_role(*APPROVER_ROLES)
def refresh_batches_route():
    """Re-derive freshness for every active batch. Returns {checked, updated, expired}."""
    try:
        return jsonify(inventory_service.refresh_batches())
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to refresh inventory batches")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:batch_id>")
@require_actor
def get_batch_route(batch_id: int):
    try:
        return jsonify(record_service.get(InventoryBatch, batch_id).to_dict())
    except DomainError as e:
        return error_response(e)


@inventory_bp.patch("/<int:batch_id>")
@require_actor
def update_batch_route(batch_id: int):
    """Update batch details; stock levels move only through the stock endpoints."""
    try:
        expected, data = split_expected_version(json_body())
        row = inventory_service.update_batch(
            batch_id=batch_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@inventory_bp.post("/<int:batch_id>/stock/add")
@require_actor
def add_stock_route(batch_id: int):
    """Request body: {"quantity": "50"}"""
    try:
        expected, data = split_expected_version(json_body())
        row = inventory_service.add_stock(
            batch_id=batch_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@inventory_bp.post("/<int:batch_id>/stock/remove")
@require_actor
def remove_stock_route(batch_id: int):
    """
    Take stock out of the production house, or out of one stall when stall_id is given.

    Request body: {"quantity": "5", "reason": "sale", "stall_id": "STALL-01"}
    """
    try:
        expected, data = split_expected_version(json_body())
        row = inventory_service.remove_stock(
            batch_id=batch_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@inventory_bp.post("/<int:batch_id>/transfer")
@require_actor
def transfer_stock_route(batch_id: int):
    """Request body: {"quantity": "30", "stall_id": "STALL-01", "stall_name": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = inventory_service.transfer_stock(
            batch_id=batch_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@inventory_bp.post("/<int:batch_id>/wastage")
@require_actor
def record_wastage_route(batch_id: int):
    """
    Record wastage.

    Request body:
    {
        "quantity": "4",                 // required
        "reason": "spillage",            // expired | damaged | spillage | over-production | quality-issue | other
        "reason_details": "...",
        "cost_impact": "160",            // defaults to quantity x cost_per_unit
        "stall_id": "STALL-01"           // deduct from this stall instead of the production house
    }
    """
    try:
        expected, data = split_expected_version(json_body())
        row = inventory_service.record_wastage(
            batch_id=batch_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@inventory_bp.delete("/<int:batch_id>")
@require_actor
@require_role(*APPROVER_ROLES)
def delete_batch_route(batch_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = inventory_service.delete_batch(batch_id=batch_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)
