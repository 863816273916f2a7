"""
Order tests.

Verifies:
- Pricing (items, discount, tax, delivery charge from the zone quote)
- Forward-only status graph with timeline entries
- Cancellation and refund marking
- Rider assignment, one review per delivered order, numbered complaint tickets
- Delivering an order updates its zone and rider counters
- Placement over the API, including non-serviceable delivery orders
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from stallops.domain import delivery as delivery_rules
from stallops.domain import orders as rules
from stallops.domain.errors import InvalidStateTransition, NotFound, ValidationError


NOW = datetime(2026, 1, 12, 13, 0)


def make_order(**overrides):
    fields = dict(
        code="ORD-0001",
        stall_id="STALL-01",
        customer=rules.Customer(name="Neha", mobile="9876543210"),
        items=(
            rules.OrderItem(product_id="P1", product_name="Veg Momos", quantity=2, unit_price=Decimal("120")),
            rules.OrderItem(product_id="P2", product_name="Masala Chai", quantity=1, unit_price=Decimal("60")),
        ),
    )
    fields.update(overrides)
    return rules.Order(**fields)


def placed(order=None, actor=None, quote=None):
    order = rules.price_order(order or make_order(), quote)
    return rules.place_order(order, actor, NOW)


def quote(serviceable=True, charge="35"):
    return delivery_rules.DeliveryQuote(
        serviceable=serviceable,
        charge=Decimal(charge),
        min_minutes=20,
        max_minutes=40,
        is_peak_hour=False,
        free_delivery=False,
        reasons=() if serviceable else ("Distance exceeds maximum of 5 km",),
    )


DELIVERY = rules.DeliveryDetails(zone_id="ZONE-NORTH", distance_km=Decimal("3"))


# =============================================================================
# DOMAIN RULES
# =============================================================================


class TestPricing:

    def test_takeaway(self, admin):
        order = placed(actor=admin)
        pricing = order.pricing
        assert pricing.items_total == Decimal("300")
        assert pricing.tax_amount == Decimal("15")
        assert pricing.delivery_charge == 0
        assert pricing.final_amount == Decimal("315")

    def test_discount_before_tax(self, admin):
        order = placed(make_order(pricing=rules.Pricing(discount_amount=Decimal("100"))), admin)
        assert order.pricing.tax_amount == Decimal("10")
        assert order.pricing.final_amount == Decimal("210")

    def test_discount_cannot_exceed_items(self):
        with pytest.raises(ValidationError):
            rules.price_order(make_order(pricing=rules.Pricing(discount_amount=Decimal("301"))))

    def test_delivery_charge_from_quote(self, admin):
        order = placed(make_order(order_type="delivery", delivery=DELIVERY), admin, quote())
        assert order.pricing.delivery_charge == Decimal("35")
        assert order.pricing.final_amount == Decimal("350")

    def test_non_serviceable_rejected(self):
        with pytest.raises(ValidationError):
            rules.price_order(make_order(order_type="delivery", delivery=DELIVERY), quote(serviceable=False))

    def test_delivery_needs_details(self):
        with pytest.raises(ValidationError):
            make_order(order_type="delivery")


class TestStatusGraph:

    def test_takeaway_flow(self, admin):
        order = placed(actor=admin)
        for status in ("accepted", "processing", "ready", "completed"):
            order = rules.advance(order, status, admin, NOW)
        assert order.status == "completed"
        assert [entry.status for entry in order.timeline] == [
            "pending", "accepted", "processing", "ready", "completed",
        ]
        assert order.status_times.completed_at == NOW

    def test_cannot_skip(self, admin):
        with pytest.raises(InvalidStateTransition):
            rules.advance(placed(actor=admin), "ready", admin, NOW)

    def test_takeaway_cannot_dispatch(self, admin):
        order = placed(actor=admin)
        for status in ("accepted", "processing", "ready"):
            order = rules.advance(order, status, admin, NOW)
        with pytest.raises(InvalidStateTransition):
            rules.advance(order, "out-for-delivery", admin, NOW)

    def test_delivery_must_be_delivered_first(self, admin):
        order = placed(make_order(order_type="delivery", delivery=DELIVERY), admin, quote())
        for status in ("accepted", "processing", "ready"):
            order = rules.advance(order, status, admin, NOW)
        with pytest.raises(InvalidStateTransition):
            rules.advance(order, "completed", admin, NOW)
        order = rules.advance(order, "out-for-delivery", admin, NOW)
        order = rules.advance(order, "delivered", admin, NOW)
        assert rules.advance(order, "completed", admin, NOW).status == "completed"

    def test_preparation_minutes(self, admin):
        order = placed(actor=admin)
        order = rules.advance(order, "accepted", admin, NOW)
        order = rules.advance(order, "processing", admin, NOW)
        order = rules.advance(order, "ready", admin, NOW + timedelta(minutes=18))
        assert rules.preparation_minutes(order) == 18


class TestCancellation:

    def test_refund_pending_when_paid(self, admin):
        order = rules.confirm_payment(placed(actor=admin), NOW, "UPI-1")
        order = rules.cancel(order, admin, "customer left", NOW)
        assert order.status == "cancelled"
        assert order.payment.status == rules.PAYMENT_REFUND_PENDING
        assert order.cancellation.refund_amount == Decimal("315")

    def test_unpaid_cancel_no_refund(self, admin):
        order = rules.cancel(placed(actor=admin), admin, "duplicate", NOW)
        assert order.cancellation.refund_amount == 0
        assert order.payment.status == rules.PAYMENT_UNPAID

    def test_cannot_cancel_completed(self, admin):
        order = placed(actor=admin)
        for status in ("accepted", "processing", "ready", "completed"):
            order = rules.advance(order, status, admin, NOW)
        with pytest.raises(InvalidStateTransition):
            rules.cancel(order, admin, "late", NOW)

    def test_cannot_pay_twice(self, admin):
        order = rules.confirm_payment(placed(actor=admin), NOW)
        with pytest.raises(InvalidStateTransition):
            rules.confirm_payment(order, NOW)


class TestRidersReviewsComplaints:

    def _delivery_order(self, admin, until="ready"):
        order = placed(make_order(order_type="delivery", delivery=DELIVERY), admin, quote())
        for status in ("accepted", "processing", "ready", "out-for-delivery", "delivered", "completed"):
            order = rules.advance(order, status, admin, NOW)
            if status == until:
                break
        return order

    def test_assign_rider(self, admin):
        order = rules.assign_delivery_person(self._delivery_order(admin), "DP-1", "Ravi", NOW, "9876500000")
        assert order.delivery_person.person_id == "DP-1"
        assert order.delivery_person.assigned_at == NOW

        order = rules.assign_delivery_person(order, "DP-2", "Kiran", NOW)
        assert order.delivery_person.person_id == "DP-2"

    def test_rider_only_for_undelivered_delivery_orders(self, admin):
        with pytest.raises(ValidationError):
            rules.assign_delivery_person(placed(actor=admin), "DP-1", "Ravi", NOW)
        with pytest.raises(InvalidStateTransition):
            rules.assign_delivery_person(self._delivery_order(admin, until="delivered"), "DP-1", "Ravi", NOW)

    def test_delivery_minutes(self, admin):
        order = self._delivery_order(admin, until="out-for-delivery")
        assert rules.delivery_minutes(order) is None
        order = rules.advance(order, "delivered", admin, NOW + timedelta(minutes=27))
        assert rules.delivery_minutes(order) == 27

    def test_review_once_after_delivery(self, admin):
        review = rules.Review(rating=4, reviewed_at=NOW, comment="hot and fresh", packaging=5)
        with pytest.raises(InvalidStateTransition):
            rules.add_review(self._delivery_order(admin), review)

        order = rules.add_review(self._delivery_order(admin, until="delivered"), review)
        assert order.review.rating == 4
        with pytest.raises(ValidationError):
            rules.add_review(order, review)

    @pytest.mark.parametrize("rating", [0, 6, True])
    def test_rating_bounds(self, rating):
        with pytest.raises(ValidationError):
            rules.Review(rating=rating, reviewed_at=NOW)

    def test_complaint_tickets(self, admin, manager):
        order = rules.register_complaint(placed(actor=admin), "late-delivery", "45 minutes late", admin, NOW)
        order = rules.register_complaint(order, "missing-items", "no chai", admin, NOW)
        assert [c.ticket_id for c in order.complaints] == ["TICKET-ORD-0001-1", "TICKET-ORD-0001-2"]
        assert order.complaints[0].status == rules.COMPLAINT_PENDING

        order = rules.resolve_complaint(order, "TICKET-ORD-0001-2", "chai refunded", manager, NOW)
        assert order.complaints[1].status == rules.COMPLAINT_RESOLVED
        assert order.complaints[1].resolved_by.user_id == manager.user_id
        with pytest.raises(InvalidStateTransition):
            rules.resolve_complaint(order, "TICKET-ORD-0001-2", "again", manager, NOW)
        with pytest.raises(NotFound):
            rules.resolve_complaint(order, "TICKET-ORD-0001-9", "n/a", manager, NOW)

    def test_unknown_complaint_category(self, admin):
        with pytest.raises(ValidationError):
            rules.register_complaint(placed(actor=admin), "weather", "rain", admin, NOW)


# =============================================================================
# API
# =============================================================================


ORDER_PAYLOAD = {
    "code": "ORD-0001",
    "stall_id": "STALL-01",
    "customer": {"name": "Neha", "mobile": "9876543210"},
    "items": [
        {"product_id": "P1", "product_name": "Veg Momos", "quantity": 2, "unit_price": "120"},
        {"product_id": "P2", "product_name": "Masala Chai", "quantity": 1, "unit_price": "60"},
    ],
}


class TestOrderApi:

    def _zone(self, client, headers):
        resp = client.post(
            "/api/delivery-zones",
            json={
                "code": "ZONE-NORTH",
                "name": "North",
                "max_distance_km": "5",
                "charge": {"base_charge": "20", "per_km_charge": "5", "free_delivery_above": "500"},
            },
            headers=headers,
        )
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    def test_place_takeaway(self, client, admin_headers):
        resp = client.post("/api/orders", json=ORDER_PAYLOAD, headers=admin_headers)
        assert resp.status_code == 201, resp.get_json()
        order = resp.get_json()
        assert order["status"] == "pending"
        assert Decimal(order["pricing"]["final_amount"]) == Decimal("315")
        assert order["timeline"][0]["user_id"] == "u-admin"

    def test_client_cannot_set_totals(self, client, admin_headers):
        payload = {**ORDER_PAYLOAD, "pricing": {"final_amount": "1", "tax_percentage": "5"}}
        resp = client.post("/api/orders", json=payload, headers=admin_headers)
        assert resp.status_code == 201
        assert Decimal(resp.get_json()["pricing"]["final_amount"]) == Decimal("315")

    def test_place_delivery(self, client, admin_headers):
        self._zone(client, admin_headers)
        payload = {
            **ORDER_PAYLOAD,
            "order_type": "delivery",
            "delivery": {"zone_id": "ZONE-NORTH", "distance_km": "3"},
        }
        resp = client.post("/api/orders", json=payload, headers=admin_headers)
        assert resp.status_code == 201, resp.get_json()
        assert Decimal(resp.get_json()["pricing"]["delivery_charge"]) == Decimal("35")

    def test_delivery_out_of_range(self, client, admin_headers):
        self._zone(client, admin_headers)
        payload = {
            **ORDER_PAYLOAD,
            "order_type": "delivery",
            "delivery": {"zone_id": "ZONE-NORTH", "distance_km": "9"},
        }
        resp = client.post("/api/orders", json=payload, headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_zone(self, client, admin_headers):
        payload = {
            **ORDER_PAYLOAD,
            "order_type": "delivery",
            "delivery": {"zone_id": "ZONE-NOPE", "distance_km": "1"},
        }
        resp = client.post("/api/orders", json=payload, headers=admin_headers)
        assert resp.status_code == 404

    def test_status_and_cancel(self, client, admin_headers):
        order = client.post("/api/orders", json=ORDER_PAYLOAD, headers=admin_headers).get_json()
        oid = order["id"]

        resp = client.post(f"/api/orders/{oid}/status", json={"status": "accepted"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "accepted"

        resp = client.post(f"/api/orders/{oid}/status", json={"status": "completed"}, headers=admin_headers)
        assert resp.status_code == 409

        resp = client.post(f"/api/orders/{oid}/cancel", json={"reason": "kitchen closed"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["cancellation"]["reason"] == "kitchen closed"

    def test_cashier_confirms_payment(self, client, admin_headers, cashier_headers, staff_headers):
        order = client.post("/api/orders", json=ORDER_PAYLOAD, headers=admin_headers).get_json()
        resp = client.post(f"/api/orders/{order['id']}/payment", headers=staff_headers)
        assert resp.status_code == 403

        resp = client.post(
            f"/api/orders/{order['id']}/payment", json={"transaction_id": "UPI-9"}, headers=cashier_headers,
        )
        assert resp.status_code == 200
        payment = resp.get_json()["payment"]
        assert payment["status"] == "paid"
        assert Decimal(payment["paid_amount"]) == Decimal("315")

    def _delivery_order_ready(self, client, headers):
        payload = {
            **ORDER_PAYLOAD,
            "order_type": "delivery",
            "delivery": {"zone_id": "ZONE-NORTH", "distance_km": "3"},
        }
        order = client.post("/api/orders", json=payload, headers=headers).get_json()
        for status in ("accepted", "processing", "ready"):
            resp = client.post(f"/api/orders/{order['id']}/status", json={"status": status}, headers=headers)
            assert resp.status_code == 200, resp.get_json()
        return order["id"]

    def test_delivery_updates_zone_and_rider(self, client, admin_headers):
        zone = self._zone(client, admin_headers)
        resp = client.post(
            f"/api/delivery-zones/{zone['id']}/persons",
            json={"person_id": "DP-1", "person_name": "Ravi", "contact_number": "9876500000"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        oid = self._delivery_order_ready(client, admin_headers)

        resp = client.post(f"/api/orders/{oid}/delivery-person", json={"person_id": "DP-1"}, headers=admin_headers)
        assert resp.status_code == 200, resp.get_json()
        assert resp.get_json()["delivery_person"]["person_name"] == "Ravi"

        for status in ("out-for-delivery", "delivered"):
            resp = client.post(f"/api/orders/{oid}/status", json={"status": status}, headers=admin_headers)
            assert resp.status_code == 200, resp.get_json()

        zone = client.get(f"/api/delivery-zones/{zone['id']}", headers=admin_headers).get_json()
        assert zone["performance"]["total_orders"] == 1
        assert zone["performance"]["successful_deliveries"] == 1
        assert Decimal(zone["performance"]["monthly_delivery_charges"]) == Decimal("35")
        assert zone["delivery_persons"][0]["performance"]["total_deliveries"] == 1

        events = client.get(
            f"/api/audit?entity_type=delivery_zone&entity_id={zone['id']}&action=delivery_recorded",
            headers=admin_headers,
        ).get_json()
        assert events["count"] == 1

    def test_rider_must_be_on_zone_and_available(self, client, admin_headers):
        zone = self._zone(client, admin_headers)
        oid = self._delivery_order_ready(client, admin_headers)
        resp = client.post(f"/api/orders/{oid}/delivery-person", json={"person_id": "DP-9"}, headers=admin_headers)
        assert resp.status_code == 404

        client.post(
            f"/api/delivery-zones/{zone['id']}/persons",
            json={"person_id": "DP-1", "person_name": "Ravi", "contact_number": "9876500000"},
            headers=admin_headers,
        )
        client.post(
            f"/api/delivery-zones/{zone['id']}/persons/DP-1/availability",
            json={"is_available": False},
            headers=admin_headers,
        )
        resp = client.post(f"/api/orders/{oid}/delivery-person", json={"person_id": "DP-1"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_review_and_complaints(self, client, admin_headers, staff_headers):
        order = client.post("/api/orders", json=ORDER_PAYLOAD, headers=admin_headers).get_json()
        oid = order["id"]

        resp = client.post(f"/api/orders/{oid}/review", json={"rating": 5}, headers=staff_headers)
        assert resp.status_code == 409

        for status in ("accepted", "processing", "ready", "completed"):
            client.post(f"/api/orders/{oid}/status", json={"status": status}, headers=admin_headers)
        resp = client.post(
            f"/api/orders/{oid}/review", json={"rating": "5", "comment": "great momos"}, headers=staff_headers,
        )
        assert resp.status_code == 200, resp.get_json()
        assert resp.get_json()["review"]["rating"] == 5

        resp = client.post(
            f"/api/orders/{oid}/complaints",
            json={"category": "wrong-order", "description": "got paneer instead of veg"},
            headers=staff_headers,
        )
        assert resp.status_code == 201
        ticket = resp.get_json()["complaints"][0]["ticket_id"]

        url = f"/api/orders/{oid}/complaints/{ticket}/resolve"
        assert client.post(url, json={"resolution": "replaced"}, headers=staff_headers).status_code == 403
        resp = client.post(url, json={"resolution": "replaced"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["complaints"][0]["status"] == "resolved"
