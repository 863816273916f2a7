# Overview: Flask API routes for orders; placement with server-side pricing, status moves, payment, riders, reviews and complaints.

from flask import Blueprint, jsonify, g, current_app, request

from ..decorators import require_actor, require_role, APPROVER_ROLES, FINANCE_ROLES
from ..domain.errors import DomainError
from ..models import Order
from ..responses import error_response, flag_arg, json_body, page, paging_args, split_expected_version
from ..services import order_service, record_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_actor
def list_orders_route():
    """
    List orders (newest first).

    Query parameters:
    - stall_id, status, payment_status
    - order_type: dine-in | takeaway | delivery
    - include_inactive (default: false)
    - limit / offset
    """
    limit, offset = paging_args()
    rows, total = order_service.list_orders(
        stall_id=request.args.get("stall_id"),
        status=request.args.get("status"),
        payment_status=request.args.get("payment_status"),
        order_type=request.args.get("order_type"),
        include_inactive=flag_arg("include_inactive"),
        limit=limit,
        offset=offset,
    )
    return page(rows, total, limit, offset)


@orders_bp.post("")
@require_actor
def place_order_route():
    """
    Place an order. Totals, tax and delivery charge are computed server-side.

    Request body:
    {
        "code": "ORD-0001", "stall_id": "STALL-01",                 // required
        "customer": {"name": "...", "mobile": "9876543210"},        // required
        "items": [{"product_id": "P1", "product_name": "Momos",
                   "quantity": 2, "unit_price": "120"}],            // required, non-empty
        "order_type": "delivery",                                   // dine-in | takeaway | delivery
        "delivery": {"zone_id": "ZONE-NORTH", "distance_km": "3", "address": "..."},
        "pricing": {"discount_amount": "20", "tax_percentage": "5"},
        "payment": {"method": "upi"}
    }

    A delivery order whose zone cannot serve it is rejected with 400.
    """
    try:
        row = order_service.place_order(payload=json_body(), actor=g.actor)
        return jsonify(row.to_dict()), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_actor
def get_order_route(order_id: int):
    try:
        return jsonify(record_service.get(Order, order_id).to_dict())
    except DomainError as e:
        return error_response(e)


@orders_bp.post("/<int:order_id>/status")
@require_actor
def advance_order_route(order_id: int):
    """
    Move an order forward.

    Request body: {"status": "accepted", "notes": "...", "expected_version": 1}
    """
    try:
        expected, data = split_expected_version(json_body())
        row = order_service.advance(
            order_id=order_id,
            status=data.get("status"),
            notes=data.get("notes"),
            actor=g.actor,
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@orders_bp.post("/<int:order_id>/cancel")
@require_actor
def cancel_order_route(order_id: int):
    """Request body: {"reason": "...", "remarks": "..."}; reason is required."""
    try:
        expected, data = split_expected_version(json_body())
        row = order_service.cancel(
            order_id=order_id,
            reason=data.get("reason"),
            remarks=data.get("remarks"),
            actor=g.actor,
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@orders_bp.post("/<int:order_id>/payment")
@require_actor
@require_role(*FINANCE_ROLES, "cashier")
def confirm_payment_route(order_id: int):
    """Request body: {"transaction_id": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = order_service.confirm_payment(
            order_id=order_id,
            transaction_id=data.get("transaction_id"),
            actor=g.actor,
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@orders_bp.post("/<int:order_id>/delivery-person")
@require_actor
def assign_delivery_person_route(order_id: int):
    """
    Hand a delivery order to a rider from its zone's roster.

    Request body: {"person_id": "DP-1", "expected_version": 3}
    """
    try:
        expected, data = split_expected_version(json_body())
        row = order_service.assign_delivery_person(
            order_id=order_id,
            person_id=data.get("person_id"),
            actor=g.actor,
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@orders_bp.post("/<int:order_id>/review")
@require_actor
def add_review_route(order_id: int):
    """
    Request body:
    {
        "rating": 4,                    // required, 1-5
        "comment": "...",
        "food_quality": 5, "delivery_speed": 3, "packaging": 4
    }

    Only delivered or completed orders, once each.
    """
    try:
        expected, data = split_expected_version(json_body())
        row = order_service.add_review(
            order_id=order_id,
            payload=data,
            actor=g.actor,
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@orders_bp.post("/<int:order_id>/complaints")
@require_actor
def register_complaint_route(order_id: int):
    """Request body: {"category": "late-delivery", "description": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = order_service.register_complaint(
            order_id=order_id,
            category=data.get("category"),
            description=data.get("description"),
            actor=g.actor,
            expected_version=expected,
        )
        return jsonify(row.to_dict()), 201
    except DomainError as e:
        return error_response(e)


@orders_bp.post("/<int:order_id>/complaints/<ticket_id>/resolve")
@require_actor
@require_role(*APPROVER_ROLES)
def resolve_complaint_route(order_id: int, ticket_id: str):
    """Request body: {"resolution": "..."}"""
    try:
        expected, data = split_expected_version(json_body())
        row = order_service.resolve_complaint(
            order_id=order_id,
            ticket_id=ticket_id,
            resolution=data.get("resolution"),
            actor=g.actor,
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@orders_bp.delete("/<int:order_id>")
@require_actor
@require_role(*APPROVER_ROLES)
def delete_order_route(order_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = order_service.delete_order(order_id=order_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)
