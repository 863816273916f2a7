# Overview: Service-layer operations for delivery zones; quotes, localities, delivery persons and outcomes.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import DeliveryZone
from ..domain import delivery as rules
from ..domain.actors import Actor
from ..domain.errors import ValidationError
from ..domain.records import build_record, policy
from ..time_utils import to_local_time, utcnow
from . import record_service


ZONE_POLICY = policy(
    writable=(
        "code", "name", "max_distance_km", "charge", "minimum_order_amount",
        "estimated_time", "localities", "peak_hours", "stall_id",
        "description", "notes",
    ),
    required=("code", "name", "max_distance_km"),
)

OUTCOME_POLICY = policy(
    writable=("success", "delivery_minutes", "rating", "person_id", "order_amount", "delivery_charge"),
    required=("success",),
)


def business_time(at: Optional[datetime] = None) -> datetime:
    """`at` (UTC, default now) as stall wall-clock time, for peak-window checks."""
    return to_local_time(at or utcnow(), current_app.config.get("BUSINESS_TIMEZONE", "UTC"))


def create_zone(*, payload, actor: Actor) -> DeliveryZone:
    zone = record_service.build_from_payload(DeliveryZone, payload, ZONE_POLICY)
    return record_service.create(DeliveryZone, zone, actor=actor)


def update_zone(*, zone_id: int, payload, actor: Actor, expected_version=None) -> DeliveryZone:
    return record_service.update(
        DeliveryZone, zone_id, payload,
        policy=ZONE_POLICY,
        actor=actor,
        revise=lambda current, revised: revised,
        expected_version=expected_version,
    )


def list_zones(*, operational_status=None, stall_id=None, include_inactive=False, limit=100, offset=0):
    return record_service.list_rows(
        DeliveryZone,
        filters={"operational_status": operational_status, "stall_id": stall_id},
        include_inactive=include_inactive,
        limit=limit,
        offset=offset,
    )


def quote(*, zone_id: int, order_amount, distance_km, at: Optional[datetime] = None) -> rules.DeliveryQuote:
    """Read-only: charge, ETA window and serviceability for one order."""
    zone = record_service.get(DeliveryZone, zone_id).to_record()
    return rules.quote_delivery(zone, order_amount, distance_km, business_time(at))


def find_by_pin_code(pin_code: str) -> Optional[DeliveryZone]:
    """First active zone whose localities include the PIN, or None."""
    if not rules.PIN_CODE_RE.match(pin_code or ""):
        raise ValidationError("pin_code must be 6 digits")
    rows = (
        db.session.query(DeliveryZone)
        .filter(
            DeliveryZone.is_active.is_(True),
            DeliveryZone.pin_codes.like(f"%{pin_code}%"),
        )
        .order_by(DeliveryZone.id.asc())
        .all()
    )
    by_code = {row.code: row for row in rows}
    zone = rules.find_zone_by_pin_code((row.to_record() for row in rows), pin_code)
    return by_code[zone.code] if zone else None


def add_locality(*, zone_id: int, payload, actor: Actor, expected_version=None) -> DeliveryZone:
    locality = build_record(rules.Locality, payload)
    return record_service.transition(
        DeliveryZone, zone_id,
        lambda zone: rules.add_locality(zone, locality),
        action="locality_added",
        actor=actor,
        expected_version=expected_version,
        payload={"name": locality.name, "pin_code": locality.pin_code},
    )


def assign_person(*, zone_id: int, payload, actor: Actor, expected_version=None,
                  at: Optional[datetime] = None) -> DeliveryZone:
    person = build_record(rules.DeliveryPerson, payload)
    at = at or utcnow()
    return record_service.transition(
        DeliveryZone, zone_id,
        lambda zone: rules.assign_delivery_person(zone, person, at),
        action="person_assigned",
        actor=actor,
        expected_version=expected_version,
        payload={"person_id": person.person_id},
    )


def remove_person(*, zone_id: int, person_id: str, actor: Actor, expected_version=None) -> DeliveryZone:
    return record_service.transition(
        DeliveryZone, zone_id,
        lambda zone: rules.remove_delivery_person(zone, person_id),
        action="person_removed",
        actor=actor,
        expected_version=expected_version,
        payload={"person_id": person_id},
    )


def set_person_availability(*, zone_id: int, person_id: str, is_available, actor: Actor,
                            expected_version=None) -> DeliveryZone:
    if not isinstance(is_available, bool):
        raise ValidationError("is_available must be true or false")
    return record_service.transition(
        DeliveryZone, zone_id,
        lambda zone: rules.set_person_availability(zone, person_id, is_available),
        action="person_availability_changed",
        actor=actor,
        expected_version=expected_version,
        payload={"person_id": person_id, "is_available": is_available},
    )


def set_status(*, zone_id: int, status: str, actor: Actor, expected_version=None) -> DeliveryZone:
    return record_service.transition(
        DeliveryZone, zone_id,
        lambda zone: rules.set_operational_status(zone, status),
        action="status_changed",
        actor=actor,
        expected_version=expected_version,
    )


def record_outcome(*, zone_id: int, payload, actor: Actor, expected_version=None) -> DeliveryZone:
    data = OUTCOME_POLICY.check(payload, partial=False)
    if not isinstance(data["success"], bool):
        raise ValidationError("success must be true or false")
    return record_service.transition(
        DeliveryZone, zone_id,
        lambda zone: rules.record_delivery_outcome(
            zone,
            success=data["success"],
            delivery_minutes=data.get("delivery_minutes"),
            rating=data.get("rating"),
            person_id=data.get("person_id"),
            order_amount=data.get("order_amount", 0),
            delivery_charge=data.get("delivery_charge", 0),
        ),
        action="delivery_recorded",
        actor=actor,
        expected_version=expected_version,
        payload={"success": data["success"], "person_id": data.get("person_id")},
    )


def delete_zone(*, zone_id: int, actor: Actor, expected_version=None) -> DeliveryZone:
    return record_service.soft_delete(DeliveryZone, zone_id, actor=actor, expected_version=expected_version)
