"""
Profit/loss report tests.

Verifies:
- Summary derivation (gross/net revenue, net result, margin, average order value)
- Owner and investor distribution with retained earnings
- Share percentages can never exceed 100 in total
- Recalculating an unchanged report yields identical figures
- Report lifecycle and expense import over the API
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from stallops.domain import profit_loss as rules
from stallops.domain.errors import InvalidStateTransition, NotFound, ValidationError


NOW = datetime(2026, 2, 2, 11, 0)


def make_report(**overrides):
    fields = dict(
        code="PL-2026-01",
        period_start=date(2026, 1, 1),
        period_end=date(2026, 1, 31),
        revenue=rules.Revenue(total_sales=Decimal("100000")),
        deductions=rules.SalesDeductions(total_discount_given=Decimal("5000"), refunds_given=Decimal("1000")),
        expenses=rules.ExpenseFigures(total_expenses=Decimal("30000")),
        tax=rules.TaxFigures(tax_payable=Decimal("2000")),
        cogs=Decimal("20000"),
        operating_expenses=Decimal("5000"),
        total_orders=400,
    )
    fields.update(overrides)
    return rules.calculate_all(rules.ProfitLossReport(**fields))


def investor_share(investor_id="INV-001", pct="10"):
    return rules.InvestorShare(
        investor_id=investor_id,
        investor_name="Meera Capital",
        share_percentage=Decimal(pct),
        investment_amount=Decimal("100000"),
    )


# =============================================================================
# DERIVATION
# =============================================================================


class TestSummary:

    def test_summary(self):
        summary = make_report().summary
        assert summary.gross_revenue == Decimal("95000")
        assert summary.net_revenue == Decimal("94000")
        assert summary.total_cost == Decimal("50000")
        assert summary.gross_profit == Decimal("45000")
        assert summary.net_profit_loss == Decimal("38000")
        assert summary.profit_margin_percentage == Decimal("40")
        assert summary.average_order_value == Decimal("250")
        assert summary.status == rules.RESULT_PROFIT

    def test_loss(self):
        report = make_report(revenue=rules.Revenue(total_sales=Decimal("10000")),
                             deductions=rules.SalesDeductions())
        assert report.summary.status == rules.RESULT_LOSS
        assert report.summary.net_profit_loss < 0

    def test_no_orders_means_zero_aov(self):
        assert make_report(total_orders=0).summary.average_order_value == 0

    def test_period_order(self):
        with pytest.raises(ValidationError):
            make_report(period_start=date(2026, 2, 1))


class TestDistribution:

    def test_owner_and_investor_amounts(self):
        report = rules.add_investor_share(make_report(), investor_share())
        dist = report.distribution
        assert dist.owner_share.amount == Decimal("26600")
        assert dist.investor_shares[0].share_amount == Decimal("3800")
        assert dist.investor_shares[0].roi_percentage == Decimal("3.8")
        assert dist.total_investor_share == Decimal("3800")
        assert dist.retained_earnings == Decimal("7600")

    def test_shares_cannot_exceed_100(self):
        report = rules.add_investor_share(make_report(), investor_share(pct="20"))
        with pytest.raises(ValidationError):
            rules.add_investor_share(report, investor_share(investor_id="INV-002", pct="15"))

    def test_duplicate_investor_rejected(self):
        report = rules.add_investor_share(make_report(), investor_share())
        with pytest.raises(ValidationError):
            rules.add_investor_share(report, investor_share())

    def test_remove_share(self):
        report = rules.add_investor_share(make_report(), investor_share())
        report = rules.remove_investor_share(report, "INV-001")
        assert report.distribution.investor_shares == ()
        assert report.distribution.retained_earnings == Decimal("11400")
        with pytest.raises(NotFound):
            rules.remove_investor_share(report, "INV-001")

    def test_owner_key_reserved(self):
        with pytest.raises(ValidationError):
            investor_share(investor_id=rules.OWNER_KEY)

    def test_recalculation_is_stable(self):
        report = rules.add_investor_share(make_report(), investor_share())
        report = rules.add_investor_share(report, investor_share(investor_id="INV-002", pct="7.5"))
        once = rules.calculate_all(report)
        assert rules.calculate_all(once) == once
        assert once.summary == report.summary
        assert once.distribution == report.distribution


class TestReportLifecycle:

    def test_finalize_approve_publish(self, manager):
        report = rules.finalize(make_report())
        report = rules.approve(report, manager, NOW, "checked")
        report = rules.publish(report, NOW)
        assert report.status == rules.STATUS_PUBLISHED
        assert report.published_at == NOW

    def test_no_recalculation_after_finalize(self):
        report = rules.finalize(make_report())
        with pytest.raises(InvalidStateTransition):
            rules.calculate_all(report)
        with pytest.raises(InvalidStateTransition):
            rules.add_investor_share(report, investor_share())

    def test_cannot_publish_unapproved(self):
        with pytest.raises(InvalidStateTransition):
            rules.publish(rules.finalize(make_report()), NOW)

    def test_stats_only_reported(self, manager):
        approved = rules.approve(rules.finalize(make_report()), manager, NOW)
        draft = make_report(code="PL-2026-02", period_start=date(2026, 2, 1), period_end=date(2026, 2, 28))
        stats = rules.overall_stats([approved, draft])
        assert stats.report_count == 1
        assert stats.total_profit == Decimal("38000")
        assert stats.profit_periods == 1


# =============================================================================
# API
# =============================================================================


REPORT_PAYLOAD = {
    "code": "PL-2026-01",
    "period_start": "2026-01-01",
    "period_end": "2026-01-31",
    "revenue": {"total_sales": "100000"},
    "cogs": "20000",
    "total_orders": 400,
}


class TestProfitLossApi:

    def _create(self, client, headers, **overrides):
        resp = client.post("/api/profit-loss", json={**REPORT_PAYLOAD, **overrides}, headers=headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    def test_default_owner_share(self, client, admin_headers):
        report = self._create(client, admin_headers)
        owner = report["distribution"]["owner_share"]
        assert Decimal(owner["percentage"]) == Decimal("70")
        assert Decimal(owner["amount"]) == Decimal("56000")

    def test_import_expenses(self, client, admin_headers):
        expense = client.post(
            "/api/expenses",
            json={"code": "EXP-RENT", "expense_type": "rent", "category": "fixed",
                  "amount": "15000", "expense_date": "2026-01-05"},
            headers=admin_headers,
        ).get_json()
        client.post(f"/api/expenses/{expense['id']}/approve", headers=admin_headers)
        client.post(
            "/api/expenses",
            json={"code": "EXP-DRAFT", "expense_type": "marketing", "amount": "9000", "expense_date": "2026-01-06"},
            headers=admin_headers,
        )

        report = self._create(client, admin_headers)
        resp = client.post(f"/api/profit-loss/{report['id']}/import-expenses", headers=admin_headers)
        assert resp.status_code == 200
        data = resp.get_json()
        assert Decimal(data["expenses"]["total_expenses"]) == Decimal("15000")
        assert Decimal(data["expenses"]["fixed_expenses"]) == Decimal("15000")
        assert Decimal(data["summary"]["net_profit_loss"]) == Decimal("65000")

    def test_investor_share_from_investor_row(self, client, admin_headers):
        investor = client.post(
            "/api/investors",
            json={"code": "INV-001", "name": "Meera Capital", "contact": {"mobile_number": "9876543210"},
                  "investment_amount": "100000", "investment_date": "2026-01-01",
                  "profit_share_percentage": "10"},
            headers=admin_headers,
        ).get_json()
        report = self._create(client, admin_headers)

        resp = client.post(
            f"/api/profit-loss/{report['id']}/investor-shares",
            json={"investor_id": investor["id"]},
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.get_json()
        share = resp.get_json()["distribution"]["investor_shares"][0]
        assert share["investor_id"] == "INV-001"
        assert Decimal(share["share_amount"]) == Decimal("8000")

    def test_lifecycle_roles(self, client, admin_headers, accountant_headers):
        report = self._create(client, admin_headers)
        rid = report["id"]
        assert client.post(f"/api/profit-loss/{rid}/finalize", headers=accountant_headers).status_code == 200
        assert client.post(f"/api/profit-loss/{rid}/approve", headers=accountant_headers).status_code == 403
        assert client.post(f"/api/profit-loss/{rid}/approve", headers=admin_headers).status_code == 200
        resp = client.post(f"/api/profit-loss/{rid}/publish", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "published"

        stats = client.get("/api/profit-loss/stats", headers=admin_headers).get_json()
        assert stats["report_count"] == 1

    def test_edit_after_finalize_conflicts(self, client, admin_headers):
        report = self._create(client, admin_headers)
        client.post(f"/api/profit-loss/{report['id']}/finalize", headers=admin_headers)
        resp = client.patch(f"/api/profit-loss/{report['id']}", json={"cogs": "1"}, headers=admin_headers)
        assert resp.status_code == 409
