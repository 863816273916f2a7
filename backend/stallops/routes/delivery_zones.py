# Overview: Flask API routes for delivery zones; quotes, localities, delivery persons and outcomes.

from flask import Blueprint, jsonify, g, current_app, request

from ..decorators import require_actor, require_role, APPROVER_ROLES
from ..domain.errors import DomainError, NotFound
from ..models import DeliveryZone
from ..responses import (
    error_response,
    flag_arg,
    json_body,
    page,
    paging_args,
    record_json,
    split_expected_version,
)
from ..services import delivery_zone_service, record_service
from ..time_utils import parse_iso_datetime


delivery_zones_bp = Blueprint("delivery_zones", __name__, url_prefix="/api/delivery-zones")


@delivery_zones_bp.get("")
@require_actor
def list_zones_route():
    """
    List delivery zones.

    Query parameters:
    - operational_status: active | inactive | temporarily-unavailable | under-maintenance
    - stall_id
    - include_inactive (default: false)
    - limit / offset
    """
    limit, offset = paging_args()
    rows, total = delivery_zone_service.list_zones(
        operational_status=request.args.get("operational_status"),
        stall_id=request.args.get("stall_id"),
        include_inactive=flag_arg("include_inactive"),
        limit=limit,
        offset=offset,
    )
    return page(rows, total, limit, offset)


@delivery_zones_bp.post("")
@require_actor
@require_role(*APPROVER_ROLES)
def create_zone_route():
    """
    Create a delivery zone.

    Request body:
    {
        "code": "ZONE-NORTH",           // required, ZONE- + 4-8 uppercase letters/digits
        "name": "North",                // required
        "max_distance_km": "8",         // required, 0.5 - 50
        "charge": {"base_charge": "20", "per_km_charge": "5", "free_delivery_above": "500",
                   "surge_enabled": false, "surge_multiplier": "1.5"},
        "minimum_order_amount": "100",
        "estimated_time": {"min_minutes": 20, "max_minutes": 40},
        "localities": [{"name": "...", "pin_code": "560001"}],
        "peak_hours": [{"day_of_week": "all", "start_time": "12:00", "end_time": "14:00",
                        "extra_delay_minutes": 10}]
    }
    """
    try:
        row = delivery_zone_service.create_zone(payload=json_body(), actor=g.actor)
        return jsonify(row.to_dict()), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create delivery zone")
        return jsonify({"error": "Internal server error"}), 500


@delivery_zones_bp.get("/by-pin/<pin_code>")
@require_actor
def find_zone_by_pin_route(pin_code: str):
    """First active zone serving the PIN code."""
    try:
        row = delivery_zone_service.find_by_pin_code(pin_code)
        if row is None:
            raise NotFound(f"No active delivery zone serves pin code {pin_code}")
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@delivery_zones_bp.get("/<int:zone_id>")
@require_actor
def get_zone_route(zone_id: int):
    try:
        return jsonify(record_service.get(DeliveryZone, zone_id).to_dict())
    except DomainError as e:
        return error_response(e)


@delivery_zones_bp.patch("/<int:zone_id>")
@require_actor
@require_role(*APPROVER_ROLES)
def update_zone_route(zone_id: int):
    try:
        expected, data = split_expected_version(json_body())
        row = delivery_zone_service.update_zone(
            zone_id=zone_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@delivery_zones_bp.post("/<int:zone_id>/quote")
@require_actor
def quote_route(zone_id: int):
    """
    Delivery charge and ETA for one order.

    Request body:
    {
        "order_amount": "450",            // required
        "distance_km": "3.5",             // required
        "at": "2026-01-05T13:00:00Z"      // optional, defaults to now
    }

    Returns:
        {serviceable, charge, min_minutes, max_minutes, is_peak_hour, free_delivery, reasons}
    """
    try:
        data = json_body()
        at = parse_iso_datetime(data.get("at")) if data.get("at") else None
        quote = delivery_zone_service.quote(
            zone_id=zone_id,
            order_amount=data.get("order_amount"),
            distance_km=data.get("distance_km"),
            at=at,
        )
        return record_json(quote)
    except DomainError as e:
        return error_response(e)
    except ValueError:
        return jsonify({"error": "at must be an ISO-8601 datetime", "code": "validation_error"}), 400


@delivery_zones_bp.post("/<int:zone_id>/localities")
@require_actor
@require_role(*APPROVER_ROLES)
def add_locality_route(zone_id: int):
    """Request body: {"name": "...", "pin_code": "560001", "area": "...", "expected_version": 2}"""
    try:
        expected, data = split_expected_version(json_body())
        row = delivery_zone_service.add_locality(
            zone_id=zone_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@delivery_zones_bp.post("/<int:zone_id>/persons")
@require_actor
@require_role(*APPROVER_ROLES)
def assign_person_route(zone_id: int):
    """
    Assign a delivery person.

    Request body:
    {"person_id": "...", "person_name": "...", "contact_number": "9876543210",
     "vehicle_type": "bike", "vehicle_number": "..."}
    """
    try:
        expected, data = split_expected_version(json_body())
        row = delivery_zone_service.assign_person(
            zone_id=zone_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@delivery_zones_bp.delete("/<int:zone_id>/persons/<person_id>")
@require_actor
@require_role(*APPROVER_ROLES)
def remove_person_route(zone_id: int, person_id: str):
    try:
        expected, _ = split_expected_version(json_body())
        row = delivery_zone_service.remove_person(
            zone_id=zone_id, person_id=person_id, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@delivery_zones_bp.post("/<int:zone_id>/persons/<person_id>/availability")
@require_actor
def set_person_availability_route(zone_id: int, person_id: str):
    """Request body: {"is_available": true}"""
    try:
        expected, data = split_expected_version(json_body())
        row = delivery_zone_service.set_person_availability(
            zone_id=zone_id,
            person_id=person_id,
            is_available=data.get("is_available"),
            actor=g.actor,
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@delivery_zones_bp.post("/<int:zone_id>/status")
@require_actor
@require_role(*APPROVER_ROLES)
def set_zone_status_route(zone_id: int):
    """Request body: {"operational_status": "under-maintenance"}"""
    try:
        expected, data = split_expected_version(json_body())
        row = delivery_zone_service.set_status(
            zone_id=zone_id,
            status=data.get("operational_status"),
            actor=g.actor,
            expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)


@delivery_zones_bp.post("/<int:zone_id>/deliveries")
@require_actor
def record_delivery_route(zone_id: int):
    """
    Record one delivery outcome into zone (and delivery person) performance.

    Request body:
    {
        "success": true,              // required
        "delivery_minutes": 28,
        "rating": 4.5,
        "person_id": "...",
        "order_amount": "450",
        "delivery_charge": "35"
    }
    """
    try:
        expected, data = split_expected_version(json_body())
        row = delivery_zone_service.record_outcome(
            zone_id=zone_id, payload=data, actor=g.actor, expected_version=expected,
        )
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record delivery outcome")
        return jsonify({"error": "Internal server error"}), 500


@delivery_zones_bp.delete("/<int:zone_id>")
@require_actor
@require_role(*APPROVER_ROLES)
def delete_zone_route(zone_id: int):
    try:
        expected, _ = split_expected_version(json_body())
        row = delivery_zone_service.delete_zone(zone_id=zone_id, actor=g.actor, expected_version=expected)
        return jsonify(row.to_dict())
    except DomainError as e:
        return error_response(e)
