# Overview: Service-layer operations for orders; pricing from the delivery zone, status timeline, payment, riders, reviews and complaints.

"""
Order Service

- Pricing is derived on placement: clients send items, discount and tax
  percentage; totals and the delivery charge are computed here.
- Delivery orders are quoted against their zone (looked up by zone code) at
  placement time; a non-serviceable quote rejects the order.
- Status moves only forward along the order graph; every move appends to the
  timeline.
- Delivering an order records the outcome on its zone, and on its rider when
  one is assigned, in the same transaction.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import DeliveryZone, Order
from ..domain import delivery as delivery_rules
from ..domain import orders as rules
from ..domain.actors import Actor
from ..domain.errors import NotFound, ValidationError
from ..domain.money import sum_amounts
from ..domain.records import build_record, policy
from ..time_utils import utcnow
from . import delivery_zone_service, record_service
from .audit_service import record_event
from .concurrency import lock_for_update
from .repository import RecordRepository


ORDER_POLICY = policy(
    writable=("code", "stall_id", "customer", "items", "order_type", "delivery", "pricing", "payment"),
    required=("code", "stall_id", "customer", "items"),
)

REVIEW_POLICY = policy(
    writable=("rating", "comment", "food_quality", "delivery_speed", "packaging"),
    required=("rating",),
)


def _client_terms(order: rules.Order) -> rules.Order:
    """Keep only what a client may choose: discount, tax rate and payment method."""
    pricing = rules.Pricing(
        discount_amount=order.pricing.discount_amount,
        tax_percentage=order.pricing.tax_percentage,
    )
    payment = rules.OrderPayment(method=order.payment.method)
    return replace(
        order,
        pricing=pricing,
        payment=payment,
        status=rules.STATUS_PENDING,
        timeline=(),
        status_times=rules.StatusTimes(),
        cancellation=None,
    )


def _zone_row(code: str, *, for_update: bool = False) -> Optional[DeliveryZone]:
    query = db.session.query(DeliveryZone).filter(
        DeliveryZone.code == code, DeliveryZone.is_active.is_(True),
    )
    if for_update:
        query = lock_for_update(query)
    return query.first()


def _quote_for(order: rules.Order, at: datetime) -> Optional[delivery_rules.DeliveryQuote]:
    if order.order_type != "delivery":
        return None
    row = _zone_row(order.delivery.zone_id)
    if row is None:
        raise NotFound(f"Delivery zone {order.delivery.zone_id} not found")
    order_amount = sum_amounts(item.subtotal for item in order.items) - order.pricing.discount_amount
    return delivery_rules.quote_delivery(
        row.to_record(), order_amount, order.delivery.distance_km, delivery_zone_service.business_time(at),
    )


def place_order(*, payload, actor: Actor, at: Optional[datetime] = None) -> Order:
    at = at or utcnow()
    order = _client_terms(record_service.build_from_payload(Order, payload, ORDER_POLICY))
    order = rules.price_order(order, _quote_for(order, at))
    order = rules.place_order(order, actor, at)
    return record_service.create(Order, order, actor=actor)


def _record_zone_outcome(actor: Actor, at: datetime):
    """After-save hook: a delivered order counts toward its zone and rider."""

    def hook(row, before: rules.Order, after: rules.Order) -> None:
        if after.status != rules.STATUS_DELIVERED or after.delivery is None:
            return
        zone_row = _zone_row(after.delivery.zone_id, for_update=True)
        if zone_row is None:
            current_app.logger.warning(
                "order %s delivered but zone %s is no longer active; outcome not recorded",
                after.code, after.delivery.zone_id,
            )
            return
        zone = zone_row.to_record()
        person_id = after.delivery_person.person_id if after.delivery_person else None
        if person_id and not any(p.person_id == person_id for p in zone.delivery_persons):
            person_id = None
        updated = delivery_rules.record_delivery_outcome(
            zone,
            success=True,
            delivery_minutes=rules.delivery_minutes(after),
            person_id=person_id,
            order_amount=after.pricing.final_amount,
            delivery_charge=after.pricing.delivery_charge,
        )
        RecordRepository(DeliveryZone).save(zone_row, updated)
        record_event(
            row=zone_row,
            action="delivery_recorded",
            actor=actor,
            payload={"order": after.code, "person_id": person_id},
            occurred_at=at,
        )

    return hook


def advance(*, order_id: int, status: str, actor: Actor, notes: Optional[str] = None,
            expected_version=None, at: Optional[datetime] = None) -> Order:
    at = at or utcnow()
    return record_service.transition(
        Order, order_id,
        lambda order: rules.advance(order, status, actor, at, notes),
        action="status_changed",
        actor=actor,
        expected_version=expected_version,
        note=notes,
        after_save=_record_zone_outcome(actor, at),
    )


def cancel(*, order_id: int, actor: Actor, reason: str, remarks: Optional[str] = None,
           expected_version=None, at: Optional[datetime] = None) -> Order:
    at = at or utcnow()
    return record_service.transition(
        Order, order_id,
        lambda order: rules.cancel(order, actor, reason, at, remarks),
        action="cancelled",
        actor=actor,
        expected_version=expected_version,
        note=reason,
    )


def confirm_payment(*, order_id: int, actor: Actor, transaction_id: Optional[str] = None,
                    expected_version=None, at: Optional[datetime] = None) -> Order:
    at = at or utcnow()
    return record_service.transition(
        Order, order_id,
        lambda order: rules.confirm_payment(order, at, transaction_id),
        action="payment_confirmed",
        actor=actor,
        expected_version=expected_version,
        payload={"transaction_id": transaction_id},
    )


def assign_delivery_person(*, order_id: int, person_id: str, actor: Actor, expected_version=None,
                           at: Optional[datetime] = None) -> Order:
    """Rider must be on the order's zone roster and available."""
    at = at or utcnow()

    def change(order: rules.Order) -> rules.Order:
        if order.delivery is None:
            raise ValidationError(f"cannot assign a delivery person to a {order.order_type} order")
        zone_row = _zone_row(order.delivery.zone_id)
        if zone_row is None:
            raise NotFound(f"Delivery zone {order.delivery.zone_id} not found")
        person = delivery_rules.get_person(zone_row.to_record(), person_id)
        if not person.is_available:
            raise ValidationError(f"Delivery person {person_id} is not available")
        return rules.assign_delivery_person(
            order, person.person_id, person.person_name, at, person.contact_number,
        )

    return record_service.transition(
        Order, order_id, change,
        action="delivery_person_assigned",
        actor=actor,
        expected_version=expected_version,
        payload={"person_id": person_id},
    )


def add_review(*, order_id: int, payload, actor: Actor, expected_version=None,
               at: Optional[datetime] = None) -> Order:
    data = REVIEW_POLICY.check(payload, partial=False)
    review = build_record(rules.Review, {**data, "reviewed_at": at or utcnow()})
    return record_service.transition(
        Order, order_id,
        lambda order: rules.add_review(order, review),
        action="reviewed",
        actor=actor,
        expected_version=expected_version,
        payload={"rating": review.rating},
    )


def register_complaint(*, order_id: int, category: str, description: str, actor: Actor,
                       expected_version=None, at: Optional[datetime] = None) -> Order:
    at = at or utcnow()
    return record_service.transition(
        Order, order_id,
        lambda order: rules.register_complaint(order, category, description, actor, at),
        action="complaint_registered",
        actor=actor,
        expected_version=expected_version,
        payload={"category": category},
    )


def resolve_complaint(*, order_id: int, ticket_id: str, resolution: str, actor: Actor,
                      expected_version=None, at: Optional[datetime] = None) -> Order:
    at = at or utcnow()
    return record_service.transition(
        Order, order_id,
        lambda order: rules.resolve_complaint(order, ticket_id, resolution, actor, at),
        action="complaint_resolved",
        actor=actor,
        expected_version=expected_version,
        payload={"ticket_id": ticket_id},
    )


def list_orders(*, stall_id=None, status=None, payment_status=None, order_type=None,
                include_inactive=False, limit=100, offset=0):
    return record_service.list_rows(
        Order,
        filters={
            "stall_id": stall_id,
            "status": status,
            "payment_status": payment_status,
            "order_type": order_type,
        },
        include_inactive=include_inactive,
        limit=limit,
        offset=offset,
    )


def delete_order(*, order_id: int, actor: Actor, expected_version=None) -> Order:
    return record_service.soft_delete(Order, order_id, actor=actor, expected_version=expected_version)
