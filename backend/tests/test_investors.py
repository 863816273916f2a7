"""
Investor tests.

Verifies:
- ROI projection by basis
- Payout ledger: net amount, totals always equal the ledger sum
- Status lifecycle (hold, resume, complete, cancel)
- Internal notes
- Payouts-due listing and API role checks
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from stallops.domain import investors as rules
from stallops.domain.errors import InvalidStateTransition, ValidationError


NOW = datetime(2026, 2, 1, 10, 0)


def make_investor(**overrides):
    fields = dict(
        code="INV-001",
        name="Meera Capital",
        contact=rules.ContactInfo(mobile_number="9876543210", email="meera@example.com"),
        investment_amount=Decimal("100000"),
        investment_date=date(2026, 1, 1),
    )
    fields.update(overrides)
    return rules.initialize_schedule(rules.Investor(**fields))


def payout(base="50000", tax="0", on=date(2026, 2, 1)):
    return rules.PayoutCommand(
        payout_date=on,
        base_profit_amount=Decimal(base),
        payment_mode="bank-transfer",
        tax_deducted=Decimal(tax),
    )


INVESTOR_PAYLOAD = {
    "code": "INV-001",
    "name": "Meera Capital",
    "contact": {"mobile_number": "9876543210", "email": "meera@example.com"},
    "investment_amount": "100000",
    "investment_date": "2026-01-01",
    "profit_share_percentage": "10",
}


# =============================================================================
# DOMAIN RULES
# =============================================================================


class TestInvestorRules:

    def test_minimum_investment(self):
        with pytest.raises(ValidationError):
            make_investor(investment_amount=Decimal("999"))

    def test_invalid_mobile(self):
        with pytest.raises(ValidationError):
            rules.ContactInfo(mobile_number="1234567890")

    def test_schedule_starts_one_period_after_investment(self):
        investor = make_investor(distribution_frequency="quarterly")
        assert investor.next_calculation_date == date(2026, 4, 1)

    def test_roi_projection(self):
        projection = rules.calculate_roi(make_investor(), months=3)
        assert projection.gross_profit == Decimal("45000")
        assert projection.period_profit_share == Decimal("4500")

    def test_roi_yearly_basis(self):
        projection = rules.calculate_roi(make_investor(roi_basis="yearly"), months=6)
        assert projection.basis_months == 12
        assert projection.gross_profit == Decimal("7500")

    def test_roi_rejects_zero_months(self):
        with pytest.raises(ValidationError):
            rules.calculate_roi(make_investor(), months=0)


class TestPayoutLedger:

    def test_net_amount_after_tax(self, admin):
        investor = rules.add_payout(make_investor(), payout(base="50000", tax="500"), admin, NOW)
        record = investor.payout_records[0]
        assert record.sequence == 1
        assert record.net_amount == Decimal("4500")
        assert investor.total_profit_paid == Decimal("4500")
        assert investor.next_calculation_date == date(2026, 3, 1)

    def test_total_matches_ledger(self, admin):
        investor = make_investor()
        investor = rules.add_payout(investor, payout(base="50000", tax="500"), admin, NOW)
        investor = rules.add_payout(investor, payout(base="20000", on=date(2026, 3, 1)), admin, NOW)
        assert len(investor.payout_records) == 2
        assert investor.total_profit_paid == rules.ledger_total(investor) == Decimal("6500")
        assert rules.current_value(investor) == Decimal("106500")

    def test_tax_cannot_exceed_share(self, admin):
        with pytest.raises(ValidationError):
            rules.add_payout(make_investor(), payout(base="1000", tax="500"), admin, NOW)

    def test_no_payout_while_on_hold(self, admin):
        investor = rules.put_on_hold(make_investor(), "dispute")
        with pytest.raises(InvalidStateTransition):
            rules.add_payout(investor, payout(), admin, NOW)


class TestInvestorStatus:

    def test_hold_and_resume(self):
        investor = rules.put_on_hold(make_investor(), "audit pending")
        assert investor.status == rules.STATUS_ON_HOLD
        assert investor.status_reason == "audit pending"
        investor = rules.resume(investor)
        assert investor.status == rules.STATUS_ACTIVE
        assert investor.status_reason is None

    def test_cannot_resume_cancelled(self):
        investor = rules.cancel(make_investor(), "withdrew")
        with pytest.raises(InvalidStateTransition):
            rules.resume(investor)

    def test_payouts_due(self):
        due = make_investor()
        later = make_investor(code="INV-002", investment_date=date(2026, 1, 20))
        held = rules.put_on_hold(make_investor(code="INV-003"), "dispute")
        found = rules.payouts_due([due, later, held], date(2026, 2, 5))
        assert [inv.code for inv in found] == ["INV-001"]

    def test_notes_kept_after_cancel(self, admin):
        investor = rules.add_note(make_investor(), admin, "agreement renewed", NOW)
        investor = rules.cancel(investor, "withdrew")
        investor = rules.add_note(investor, admin, "final statement sent", NOW)
        assert [n.note for n in investor.notes] == ["agreement renewed", "final statement sent"]
        assert investor.notes[0].added_by == admin.user_name

    def test_blank_note_rejected(self, admin):
        with pytest.raises(ValidationError):
            rules.add_note(make_investor(), admin, "   ", NOW)


# =============================================================================
# API
# =============================================================================


class TestInvestorApi:

    def _create(self, client, headers):
        resp = client.post("/api/investors", json=INVESTOR_PAYLOAD, headers=headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    def test_create_sets_schedule(self, client, admin_headers):
        investor = self._create(client, admin_headers)
        assert investor["next_calculation_date"] == "2026-02-01"
        assert investor["total_profit_paid"] == "0"

    def test_ledger_not_client_writable(self, client, admin_headers):
        resp = client.post(
            "/api/investors",
            json={**INVESTOR_PAYLOAD, "total_profit_paid": "5000"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_payout_flow(self, client, admin_headers):
        investor = self._create(client, admin_headers)
        resp = client.post(
            f"/api/investors/{investor['id']}/payouts",
            json={"payout_date": "2026-02-01", "base_profit_amount": "50000", "payment_mode": "upi"},
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.get_json()
        data = resp.get_json()
        assert Decimal(data["total_profit_paid"]) == Decimal("5000")
        assert len(data["payout_records"]) == 1
        assert Decimal(data["current_value"]) == Decimal("105000")

    def test_staff_cannot_add_payout(self, client, admin_headers, staff_headers):
        investor = self._create(client, admin_headers)
        resp = client.post(
            f"/api/investors/{investor['id']}/payouts",
            json={"payout_date": "2026-02-01", "base_profit_amount": "50000", "payment_mode": "upi"},
            headers=staff_headers,
        )
        assert resp.status_code == 403

    def test_roi(self, client, admin_headers):
        investor = self._create(client, admin_headers)
        resp = client.get(f"/api/investors/{investor['id']}/roi?months=3", headers=admin_headers)
        assert resp.status_code == 200
        assert Decimal(resp.get_json()["period_profit_share"]) == Decimal("4500")

    def test_payouts_due(self, client, admin_headers):
        self._create(client, admin_headers)
        resp = client.get("/api/investors/payouts-due?date=2026-02-01", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 1

        resp = client.get("/api/investors/payouts-due?date=2026-01-15", headers=admin_headers)
        assert resp.get_json()["count"] == 0

    def test_add_note(self, client, admin_headers, accountant_headers, staff_headers):
        investor = self._create(client, admin_headers)
        url = f"/api/investors/{investor['id']}/notes"
        assert client.post(url, json={"note": "call back"}, headers=staff_headers).status_code == 403

        resp = client.post(url, json={"note": "KYC documents received"}, headers=accountant_headers)
        assert resp.status_code == 200
        notes = resp.get_json()["notes"]
        assert len(notes) == 1
        assert notes[0]["note"] == "KYC documents received"

        resp = client.patch(
            f"/api/investors/{investor['id']}", json={"notes": []}, headers=admin_headers,
        )
        assert resp.status_code == 400
