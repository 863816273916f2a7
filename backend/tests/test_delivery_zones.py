"""
Delivery zone tests.

Verifies:
- Charge rules (free-delivery threshold, per-km pricing, surge, rounding)
- Peak windows widen the ETA and wrap past midnight
- Quotes explain why an order is not serviceable
- PIN lookup and delivery-person bookkeeping over the API
"""

from datetime import datetime
from decimal import Decimal

import pytest

from stallops.domain import delivery as rules
from stallops.domain.errors import NotFound, ValidationError


MONDAY_NOON = datetime(2026, 1, 5, 12, 0)
MONDAY_EVENING = datetime(2026, 1, 5, 19, 30)


def make_zone(**overrides):
    fields = dict(
        code="ZONE-NORTH",
        name="North",
        max_distance_km=Decimal("5"),
        charge=rules.ChargeRules(
            base_charge=Decimal("20"),
            per_km_charge=Decimal("5"),
            free_delivery_above=Decimal("500"),
        ),
    )
    fields.update(overrides)
    return rules.DeliveryZone(**fields)


ZONE_PAYLOAD = {
    "code": "ZONE-NORTH",
    "name": "North",
    "max_distance_km": "5",
    "charge": {"base_charge": "20", "per_km_charge": "5", "free_delivery_above": "500"},
    "minimum_order_amount": "100",
}


# =============================================================================
# CHARGE AND QUOTE RULES
# =============================================================================


class TestDeliveryCharge:

    def test_free_above_threshold(self):
        zone = make_zone()
        assert rules.calculate_delivery_charge(zone, Decimal("500"), Decimal("3"), MONDAY_NOON) == 0
        assert rules.calculate_delivery_charge(zone, Decimal("750"), Decimal("4"), MONDAY_NOON) == 0

    def test_base_plus_per_km(self):
        zone = make_zone()
        charge = rules.calculate_delivery_charge(zone, Decimal("300"), Decimal("3"), MONDAY_NOON)
        assert charge == Decimal("35")

    def test_surge_only_in_peak_window(self):
        zone = make_zone(
            charge=rules.ChargeRules(
                base_charge=Decimal("20"),
                per_km_charge=Decimal("5"),
                surge_enabled=True,
                surge_multiplier=Decimal("1.5"),
            ),
            peak_hours=(rules.PeakWindow(day_of_week="all", start_time="19:00", end_time="21:00"),),
        )
        assert rules.calculate_delivery_charge(zone, Decimal("300"), Decimal("3"), MONDAY_NOON) == Decimal("35")
        # 35 * 1.5 = 52.5 rounds half up
        assert rules.calculate_delivery_charge(zone, Decimal("300"), Decimal("3"), MONDAY_EVENING) == Decimal("53")

    def test_negative_distance_rejected(self):
        with pytest.raises(ValidationError):
            rules.calculate_delivery_charge(make_zone(), Decimal("300"), Decimal("-1"), MONDAY_NOON)

    def test_zone_code_format(self):
        with pytest.raises(ValidationError):
            make_zone(code="north")

    def test_max_distance_range(self):
        with pytest.raises(ValidationError):
            make_zone(max_distance_km=Decimal("60"))


class TestPeakWindows:

    def test_eta_widened_by_matching_window(self):
        zone = make_zone(
            peak_hours=(rules.PeakWindow(day_of_week="monday", start_time="19:00", end_time="21:00",
                                         extra_delay_minutes=15),),
        )
        assert rules.estimate_delivery_time(zone, MONDAY_NOON) == (20, 40)
        assert rules.estimate_delivery_time(zone, MONDAY_EVENING) == (35, 55)

    def test_window_on_other_day_does_not_match(self):
        zone = make_zone(
            peak_hours=(rules.PeakWindow(day_of_week="sunday", start_time="19:00", end_time="21:00"),),
        )
        assert not rules.is_peak_hour(zone, MONDAY_EVENING)

    def test_window_wraps_past_midnight(self):
        window = rules.PeakWindow(day_of_week="all", start_time="22:00", end_time="01:00")
        assert window.matches(datetime(2026, 1, 5, 23, 30))
        assert window.matches(datetime(2026, 1, 6, 0, 45))
        assert not window.matches(datetime(2026, 1, 6, 2, 0))

    def test_bad_time_format_rejected(self):
        with pytest.raises(ValidationError):
            rules.PeakWindow(day_of_week="all", start_time="7pm", end_time="21:00")


class TestQuote:

    def test_serviceable_quote(self):
        quote = rules.quote_delivery(make_zone(), Decimal("300"), Decimal("3"), MONDAY_NOON)
        assert quote.serviceable
        assert quote.charge == Decimal("35")
        assert not quote.free_delivery
        assert quote.reasons == ()

    def test_free_delivery_flag(self):
        quote = rules.quote_delivery(make_zone(), Decimal("600"), Decimal("3"), MONDAY_NOON)
        assert quote.free_delivery
        assert quote.charge == 0

    def test_reasons_collected(self):
        zone = make_zone(minimum_order_amount=Decimal("200"), operational_status="under-maintenance")
        quote = rules.quote_delivery(zone, Decimal("100"), Decimal("8"), MONDAY_NOON)
        assert not quote.serviceable
        assert len(quote.reasons) == 3


class TestCoverage:

    def test_pin_lookup_skips_non_operational(self):
        locality = rules.Locality(name="Baner", pin_code="411045")
        paused = make_zone(code="ZONE-PAUSED", localities=(locality,), operational_status="inactive")
        live = make_zone(code="ZONE-LIVE", localities=(locality,))
        assert rules.find_zone_by_pin_code([paused, live], "411045").code == "ZONE-LIVE"
        assert rules.find_zone_by_pin_code([paused], "411045") is None

    def test_duplicate_locality_rejected(self):
        zone = rules.add_locality(make_zone(), rules.Locality(name="Baner"))
        with pytest.raises(ValidationError):
            rules.add_locality(zone, rules.Locality(name="baner"))

    def test_remove_unknown_person(self):
        with pytest.raises(NotFound):
            rules.remove_delivery_person(make_zone(), "DP-404")

    def test_outcome_running_averages(self):
        zone = rules.record_delivery_outcome(make_zone(), success=True, delivery_minutes=30, rating=4)
        zone = rules.record_delivery_outcome(zone, success=False, delivery_minutes=40)
        perf = zone.performance
        assert perf.total_orders == 2
        assert perf.successful_deliveries == 1
        assert perf.failed_deliveries == 1
        assert perf.average_delivery_time == Decimal("35.00")
        assert perf.rated_deliveries == 1
        assert perf.average_rating == Decimal("4.00")


# =============================================================================
# API
# =============================================================================


class TestDeliveryZoneApi:

    def _create(self, client, headers, payload=None):
        resp = client.post("/api/delivery-zones", json=payload or ZONE_PAYLOAD, headers=headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    def test_create_and_get(self, client, admin_headers):
        zone = self._create(client, admin_headers)
        assert zone["code"] == "ZONE-NORTH"
        assert zone["version"] == 1

        resp = client.get(f"/api/delivery-zones/{zone['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["charge"]["base_charge"] == "20"

    def test_unknown_field_rejected(self, client, admin_headers):
        resp = client.post(
            "/api/delivery-zones",
            json={**ZONE_PAYLOAD, "performance": {"total_orders": 99}},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_quote(self, client, admin_headers):
        zone = self._create(client, admin_headers)
        resp = client.post(
            f"/api/delivery-zones/{zone['id']}/quote",
            json={"order_amount": "300", "distance_km": "3"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["serviceable"] is True
        assert data["charge"] == "35"

    def test_quote_below_minimum(self, client, admin_headers):
        zone = self._create(client, admin_headers)
        resp = client.post(
            f"/api/delivery-zones/{zone['id']}/quote",
            json={"order_amount": "50", "distance_km": "1"},
            headers=admin_headers,
        )
        data = resp.get_json()
        assert data["serviceable"] is False
        assert data["reasons"]

    def test_peak_window_uses_business_time_zone(self, client, admin_headers, app, monkeypatch):
        monkeypatch.setitem(app.config, "BUSINESS_TIMEZONE", "Asia/Kolkata")
        payload = {
            **ZONE_PAYLOAD,
            "charge": {**ZONE_PAYLOAD["charge"], "surge_enabled": True, "surge_multiplier": "2"},
            "peak_hours": [{"day_of_week": "all", "start_time": "18:00", "end_time": "21:00"}],
        }
        zone = self._create(client, admin_headers, payload)

        # 19:00 at the stall is 13:30 UTC
        for at in ("2026-01-05T19:00:00+05:30", "2026-01-05T13:30:00Z"):
            resp = client.post(
                f"/api/delivery-zones/{zone['id']}/quote",
                json={"order_amount": "300", "distance_km": "3", "at": at},
                headers=admin_headers,
            )
            data = resp.get_json()
            assert data["is_peak_hour"] is True, at
            assert data["charge"] == "70"

        resp = client.post(
            f"/api/delivery-zones/{zone['id']}/quote",
            json={"order_amount": "300", "distance_km": "3", "at": "2026-01-05T19:00:00Z"},
            headers=admin_headers,
        )
        assert resp.get_json()["is_peak_hour"] is False

    def test_lookup_by_pin(self, client, admin_headers):
        zone = self._create(client, admin_headers)
        resp = client.post(
            f"/api/delivery-zones/{zone['id']}/localities",
            json={"name": "Baner", "pin_code": "411045"},
            headers=admin_headers,
        )
        assert resp.status_code == 200

        found = client.get("/api/delivery-zones/by-pin/411045", headers=admin_headers)
        assert found.status_code == 200
        assert found.get_json()["id"] == zone["id"]

        missing = client.get("/api/delivery-zones/by-pin/560001", headers=admin_headers)
        assert missing.status_code == 404

    def test_assign_and_remove_person(self, client, admin_headers):
        zone = self._create(client, admin_headers)
        resp = client.post(
            f"/api/delivery-zones/{zone['id']}/persons",
            json={"person_id": "DP-1", "person_name": "Ravi", "contact_number": "9876543210"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["available_persons_count"] == 1

        resp = client.delete(f"/api/delivery-zones/{zone['id']}/persons/DP-1", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["delivery_persons"] == []

    def test_bad_contact_number(self, client, admin_headers):
        zone = self._create(client, admin_headers)
        resp = client.post(
            f"/api/delivery-zones/{zone['id']}/persons",
            json={"person_id": "DP-1", "person_name": "Ravi", "contact_number": "12345"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_get_missing_zone(self, client, admin_headers):
        resp = client.get("/api/delivery-zones/9999", headers=admin_headers)
        assert resp.status_code == 404
