# Overview: Order pricing, payment confirmation, the status timeline, riders, reviews and complaints.

"""
Order status timeline

    pending -> accepted -> processing -> ready -> out-for-delivery -> delivered -> completed
                                         ready -> completed            (pickup / dine-in / takeaway)
    pending | accepted | processing | ready -> cancelled

Every status change appends a timeline entry (never rewritten) and stamps the
matching *_at field. Cancelling a paid order leaves its payment refund-pending.

Delivery orders get a rider before they reach the customer; delivered or
completed orders take one review; complaints can be raised at any point.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .actors import ActionStamp, Actor, require_actor, require_text
from .delivery import DeliveryQuote
from .errors import InvalidStateTransition, NotFound, ValidationError
from .money import (
    ZERO,
    percentage_of,
    require_non_negative,
    require_percentage,
    round_money,
    sum_amounts,
)
from .records import require_choice
from .workflow import require_status


ENTITY = "order"

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_PROCESSING = "processing"
STATUS_READY = "ready"
STATUS_OUT_FOR_DELIVERY = "out-for-delivery"
STATUS_DELIVERED = "delivered"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

STATUSES = (
    STATUS_PENDING,
    STATUS_ACCEPTED,
    STATUS_PROCESSING,
    STATUS_READY,
    STATUS_OUT_FOR_DELIVERY,
    STATUS_DELIVERED,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
)

# forward moves only; cancellation has its own operation
TRANSITIONS = {
    STATUS_PENDING: (STATUS_ACCEPTED,),
    STATUS_ACCEPTED: (STATUS_PROCESSING,),
    STATUS_PROCESSING: (STATUS_READY,),
    STATUS_READY: (STATUS_OUT_FOR_DELIVERY, STATUS_COMPLETED),
    STATUS_OUT_FOR_DELIVERY: (STATUS_DELIVERED,),
    STATUS_DELIVERED: (STATUS_COMPLETED,),
    STATUS_COMPLETED: (),
    STATUS_CANCELLED: (),
}
CANCELLABLE_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED, STATUS_PROCESSING, STATUS_READY)

STATUS_TIMESTAMP_FIELD = {
    STATUS_ACCEPTED: "accepted_at",
    STATUS_PROCESSING: "processing_at",
    STATUS_READY: "ready_at",
    STATUS_OUT_FOR_DELIVERY: "out_for_delivery_at",
    STATUS_DELIVERED: "delivered_at",
    STATUS_COMPLETED: "completed_at",
    STATUS_CANCELLED: "cancelled_at",
}

ORDER_TYPES = ("dine-in", "takeaway", "delivery")
PAYMENT_METHODS = ("cash", "upi", "card", "wallet", "bank-transfer")
PAYMENT_UNPAID = "unpaid"
PAYMENT_PAID = "paid"
PAYMENT_REFUND_PENDING = "refund-pending"
PAYMENT_STATUSES = (PAYMENT_UNPAID, PAYMENT_PAID, PAYMENT_REFUND_PENDING)

MOBILE_RE = re.compile(r"^[6-9]\d{9}$")

COMPLAINT_CATEGORIES = ("food-quality", "late-delivery", "wrong-order", "missing-items", "behavior", "other")
COMPLAINT_PENDING = "pending"
COMPLAINT_RESOLVED = "resolved"
COMPLAINT_STATUSES = (COMPLAINT_PENDING, COMPLAINT_RESOLVED)

# a rider can be (re)assigned until the order reaches the customer
ASSIGNABLE_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED, STATUS_PROCESSING, STATUS_READY, STATUS_OUT_FOR_DELIVERY)
REVIEWABLE_STATUSES = (STATUS_DELIVERED, STATUS_COMPLETED)


@dataclass(frozen=True)
class Customer:
    name: str
    mobile: str
    customer_id: Optional[str] = None

    def __post_init__(self):
        require_text(self.name, "customer.name")
        if not MOBILE_RE.match(self.mobile):
            raise ValidationError("customer.mobile must be a 10 digit mobile number starting with 6-9")


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal

    def __post_init__(self):
        require_text(self.product_id, "product_id")
        require_text(self.product_name, "product_name")
        if self.quantity < 1:
            raise ValidationError("quantity must be at least 1")
        require_non_negative(self.unit_price, "unit_price")

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class DeliveryDetails:
    zone_id: str
    distance_km: Decimal
    address: Optional[str] = None
    pin_code: Optional[str] = None

    def __post_init__(self):
        require_non_negative(self.distance_km, "delivery.distance_km")


@dataclass(frozen=True)
class Pricing:
    items_total: Decimal = ZERO
    discount_amount: Decimal = ZERO
    tax_percentage: Decimal = Decimal("5")
    tax_amount: Decimal = ZERO
    delivery_charge: Decimal = ZERO
    final_amount: Decimal = ZERO

    def __post_init__(self):
        require_non_negative(self.discount_amount, "pricing.discount_amount")
        require_percentage(self.tax_percentage, "pricing.tax_percentage")


@dataclass(frozen=True)
class OrderPayment:
    method: str = "cash"
    status: str = PAYMENT_UNPAID
    paid_amount: Decimal = ZERO
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None

    def __post_init__(self):
        require_choice(self.method, PAYMENT_METHODS, "payment.method")
        require_choice(self.status, PAYMENT_STATUSES, "payment.status")


@dataclass(frozen=True)
class TimelineEntry:
    status: str
    at: datetime
    user_id: str
    user_name: str
    user_role: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class StatusTimes:
    accepted_at: Optional[datetime] = None
    processing_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    out_for_delivery_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


@dataclass(frozen=True)
class Cancellation:
    reason: str
    cancelled_by: ActionStamp
    refund_amount: Decimal = ZERO
    remarks: Optional[str] = None


@dataclass(frozen=True)
class DeliveryAssignment:
    person_id: str
    person_name: str
    assigned_at: datetime
    person_mobile: Optional[str] = None


def _rating(value, field: str, *, required: bool = True) -> Optional[int]:
    if value is None and not required:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ValidationError(f"{field} must be a whole number from 1 to 5")
    return value


@dataclass(frozen=True)
class Review:
    rating: int
    reviewed_at: datetime
    comment: Optional[str] = None
    food_quality: Optional[int] = None
    delivery_speed: Optional[int] = None
    packaging: Optional[int] = None

    def __post_init__(self):
        _rating(self.rating, "review.rating")
        for name in ("food_quality", "delivery_speed", "packaging"):
            _rating(getattr(self, name), f"review.{name}", required=False)


@dataclass(frozen=True)
class Complaint:
    ticket_id: str
    category: str
    description: str
    registered_by: ActionStamp
    status: str = COMPLAINT_PENDING
    resolution: Optional[str] = None
    resolved_by: Optional[ActionStamp] = None

    def __post_init__(self):
        require_choice(self.category, COMPLAINT_CATEGORIES, "complaint.category")
        require_choice(self.status, COMPLAINT_STATUSES, "complaint.status")
        require_text(self.description, "complaint.description")


@dataclass(frozen=True)
class Order:
    code: str
    stall_id: str
    customer: Customer
    items: tuple[OrderItem, ...]
    order_type: str = "takeaway"
    delivery: Optional[DeliveryDetails] = None
    pricing: Pricing = field(default_factory=Pricing)
    payment: OrderPayment = field(default_factory=OrderPayment)
    status: str = STATUS_PENDING
    timeline: tuple[TimelineEntry, ...] = ()
    status_times: StatusTimes = field(default_factory=StatusTimes)
    cancellation: Optional[Cancellation] = None
    delivery_person: Optional[DeliveryAssignment] = None
    review: Optional[Review] = None
    complaints: tuple[Complaint, ...] = ()
    is_active: bool = True

    def __post_init__(self):
        require_text(self.code, "code")
        require_text(self.stall_id, "stall_id")
        require_choice(self.order_type, ORDER_TYPES, "order_type")
        require_choice(self.status, STATUSES, "status")
        if not self.items:
            raise ValidationError("order must contain at least one item")
        if self.order_type == "delivery" and self.delivery is None:
            raise ValidationError("delivery details are required for delivery orders")


def _entry(status: str, actor: Actor, at: datetime, notes: Optional[str]) -> TimelineEntry:
    return TimelineEntry(
        status=status,
        at=at,
        user_id=actor.user_id,
        user_name=actor.user_name,
        user_role=actor.user_role,
        notes=notes,
    )


def place_order(order: Order, actor: Actor, at: datetime) -> Order:
    """Open the timeline with the initial pending entry."""
    require_actor(actor)
    if order.timeline:
        return order
    return replace(order, timeline=(_entry(order.status, actor, at, None),))


def price_order(order: Order, quote: Optional[DeliveryQuote] = None) -> Order:
    """
    items_total - discount + tax + delivery charge.

    Delivery orders need a serviceable quote from their zone; the quote's
    charge becomes the delivery charge.
    """
    require_status(ENTITY, order.status, "reprice", (STATUS_PENDING,))
    items_total = sum_amounts(item.subtotal for item in order.items)
    discount = order.pricing.discount_amount
    if discount > items_total:
        raise ValidationError("discount_amount cannot exceed the items total")

    delivery_charge = ZERO
    if order.order_type == "delivery":
        if quote is None:
            raise ValidationError("a delivery quote is required to price a delivery order")
        if not quote.serviceable:
            raise ValidationError("Delivery not available: " + "; ".join(quote.reasons))
        delivery_charge = quote.charge

    taxable = items_total - discount
    tax_amount = round_money(percentage_of(taxable, order.pricing.tax_percentage))
    pricing = replace(
        order.pricing,
        items_total=items_total,
        tax_amount=tax_amount,
        delivery_charge=delivery_charge,
        final_amount=taxable + tax_amount + delivery_charge,
    )
    return replace(order, pricing=pricing)


def advance(order: Order, status: str, actor: Actor, at: datetime, notes: Optional[str] = None) -> Order:
    require_actor(actor)
    require_choice(status, STATUSES, "status")
    if status == STATUS_CANCELLED:
        raise ValidationError("use the cancel operation to cancel an order")

    allowed_from = tuple(src for src, targets in TRANSITIONS.items() if status in targets)
    if status not in TRANSITIONS[order.status]:
        raise InvalidStateTransition(ENTITY, order.status, f"move to '{status}'", allowed_from)

    if order.status == STATUS_READY:
        if status == STATUS_OUT_FOR_DELIVERY and order.order_type != "delivery":
            raise InvalidStateTransition(
                ENTITY, order.status, f"dispatch a {order.order_type} order", ()
            )
        if status == STATUS_COMPLETED and order.order_type == "delivery":
            raise InvalidStateTransition(
                ENTITY, order.status, "complete an undelivered order", (STATUS_DELIVERED,)
            )

    times = replace(order.status_times, **{STATUS_TIMESTAMP_FIELD[status]: at})
    return replace(
        order,
        status=status,
        status_times=times,
        timeline=order.timeline + (_entry(status, actor, at, notes),),
    )


def cancel(order: Order, actor: Actor, reason: str, at: datetime, remarks: Optional[str] = None) -> Order:
    require_actor(actor)
    reason = require_text(reason, "reason")
    require_status(ENTITY, order.status, "cancel", CANCELLABLE_STATUSES)

    payment = order.payment
    refund = ZERO
    if payment.status == PAYMENT_PAID:
        refund = payment.paid_amount
        payment = replace(payment, status=PAYMENT_REFUND_PENDING)

    return replace(
        order,
        status=STATUS_CANCELLED,
        payment=payment,
        status_times=replace(order.status_times, cancelled_at=at),
        cancellation=Cancellation(
            reason=reason,
            cancelled_by=ActionStamp.of(actor, at),
            refund_amount=refund,
            remarks=remarks,
        ),
        timeline=order.timeline + (_entry(STATUS_CANCELLED, actor, at, reason),),
    )


def confirm_payment(order: Order, at: datetime, transaction_id: Optional[str] = None) -> Order:
    if order.status == STATUS_CANCELLED:
        raise InvalidStateTransition(ENTITY, order.status, "confirm payment for", CANCELLABLE_STATUSES)
    if order.payment.status != PAYMENT_UNPAID:
        raise InvalidStateTransition(
            "order payment", order.payment.status, "confirm", (PAYMENT_UNPAID,)
        )
    payment = replace(
        order.payment,
        status=PAYMENT_PAID,
        paid_amount=order.pricing.final_amount,
        paid_at=at,
        transaction_id=transaction_id or order.payment.transaction_id,
    )
    return replace(order, payment=payment)


def assign_delivery_person(order: Order, person_id: str, person_name: str, at: datetime,
                           person_mobile: Optional[str] = None) -> Order:
    """Hand a delivery order to a rider; a later call replaces the rider."""
    if order.order_type != "delivery":
        raise ValidationError(f"cannot assign a delivery person to a {order.order_type} order")
    require_status(ENTITY, order.status, "assign a delivery person to", ASSIGNABLE_STATUSES)
    assignment = DeliveryAssignment(
        person_id=require_text(person_id, "person_id"),
        person_name=require_text(person_name, "person_name"),
        person_mobile=person_mobile,
        assigned_at=at,
    )
    return replace(order, delivery_person=assignment)


def add_review(order: Order, review: Review) -> Order:
    require_status(ENTITY, order.status, "review", REVIEWABLE_STATUSES)
    if order.review is not None:
        raise ValidationError(f"order {order.code} has already been reviewed")
    return replace(order, review=review)


def register_complaint(order: Order, category: str, description: str, actor: Actor, at: datetime) -> Order:
    """Open a support ticket; ticket ids are numbered per order."""
    require_actor(actor)
    complaint = Complaint(
        ticket_id=f"TICKET-{order.code}-{len(order.complaints) + 1}",
        category=category,
        description=description,
        registered_by=ActionStamp.of(actor, at),
    )
    return replace(order, complaints=order.complaints + (complaint,))


def resolve_complaint(order: Order, ticket_id: str, resolution: str, actor: Actor, at: datetime) -> Order:
    require_actor(actor)
    resolution = require_text(resolution, "resolution")
    complaints = list(order.complaints)
    for index, complaint in enumerate(complaints):
        if complaint.ticket_id == ticket_id:
            require_status("complaint", complaint.status, "resolve", (COMPLAINT_PENDING,))
            complaints[index] = replace(
                complaint,
                status=COMPLAINT_RESOLVED,
                resolution=resolution,
                resolved_by=ActionStamp.of(actor, at),
            )
            return replace(order, complaints=tuple(complaints))
    raise NotFound(f"Complaint {ticket_id} not found on order {order.code}")


def delivery_minutes(order: Order) -> Optional[int]:
    """Dispatch to doorstep, when both moments are known."""
    times = order.status_times
    if times.out_for_delivery_at is None or times.delivered_at is None:
        return None
    return max(1, int((times.delivered_at - times.out_for_delivery_at).total_seconds() // 60))


def preparation_minutes(order: Order) -> Optional[int]:
    times = order.status_times
    if times.accepted_at is None or times.ready_at is None:
        return None
    return int((times.ready_at - times.accepted_at).total_seconds() // 60)
