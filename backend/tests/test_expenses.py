"""
Expense tests.

Verifies:
- Tax derivation and amount-with-tax
- Approval workflow (approve/reject only before approval, pay only after)
- Recurring schedule: first due date, due check, advance, end of schedule
- Paid totals and per-type breakdown over the API
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from stallops.domain import expenses as rules
from stallops.domain.errors import InvalidStateTransition, ValidationError


NOW = datetime(2026, 1, 10, 9, 0)


def make_expense(**overrides):
    fields = dict(
        code="EXP-0001",
        expense_type="rent",
        amount=Decimal("15000"),
        expense_date=date(2026, 1, 1),
    )
    fields.update(overrides)
    return rules.prepare(rules.Expense(**fields))


def monthly(**overrides):
    return make_expense(recurring=rules.RecurringSchedule(is_recurring=True, frequency="monthly", **overrides))


# =============================================================================
# DOMAIN RULES
# =============================================================================


class TestExpenseFigures:

    def test_tax_from_percentage(self):
        expense = make_expense(amount=Decimal("1000"), tax=rules.TaxDetails(tax_percentage=Decimal("18")))
        assert expense.tax.tax_amount == Decimal("180")
        assert rules.total_amount_with_tax(expense) == Decimal("1180")

    def test_tax_included(self):
        expense = make_expense(
            amount=Decimal("1180"),
            tax=rules.TaxDetails(tax_included=True, tax_amount=Decimal("180")),
        )
        assert rules.total_amount_with_tax(expense) == Decimal("1180")
        assert rules.base_amount(expense) == Decimal("1000")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            make_expense(expense_type="party")

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            make_expense(amount=Decimal("-5"))


class TestExpenseWorkflow:

    def test_submit_approve_pay(self, manager):
        expense = rules.submit(make_expense())
        expense = rules.approve(expense, manager, NOW, "ok")
        assert expense.approval_status == "approved"
        expense = rules.mark_as_paid(expense, NOW, "UTR-1")
        assert expense.status == rules.STATUS_PAID
        assert expense.payment.transaction_id == "UTR-1"

    def test_cannot_pay_unapproved(self):
        with pytest.raises(InvalidStateTransition):
            rules.mark_as_paid(rules.submit(make_expense()), NOW)

    def test_cannot_reject_after_approval(self, manager):
        expense = rules.approve(make_expense(), manager, NOW)
        with pytest.raises(InvalidStateTransition):
            rules.reject(expense, manager, "too high", NOW)

    def test_reject_records_reason(self, manager):
        expense = rules.reject(make_expense(), manager, "no bill", NOW)
        assert expense.status == rules.STATUS_REJECTED
        assert expense.approval_status == "rejected"
        assert expense.rejection_reason == "no bill"

    def test_cannot_cancel_paid(self, manager):
        expense = rules.mark_as_paid(rules.approve(make_expense(), manager, NOW), NOW)
        with pytest.raises(InvalidStateTransition):
            rules.cancel(expense, manager, NOW)


class TestRecurringSchedule:

    def test_first_due_date(self):
        assert monthly().recurring.next_due_date == date(2026, 2, 1)

    def test_due_check(self):
        expense = monthly()
        assert not rules.is_recurrence_due(expense, date(2026, 1, 31))
        assert rules.is_recurrence_due(expense, date(2026, 2, 1))

    def test_advance(self):
        expense = rules.advance_recurrence(monthly())
        assert expense.recurring.next_due_date == date(2026, 3, 1)
        assert expense.recurring.completed_occurrences == 1

    def test_schedule_ends_after_occurrences(self):
        expense = rules.advance_recurrence(monthly(total_occurrences=1))
        assert rules.recurrence_finished(expense)
        assert not rules.is_recurrence_due(expense, date(2026, 12, 31))
        with pytest.raises(ValidationError):
            rules.advance_recurrence(expense)

    def test_not_recurring(self):
        with pytest.raises(ValidationError):
            rules.advance_recurrence(make_expense())

    def test_rejected_never_due(self, manager):
        expense = rules.reject(monthly(), manager, "duplicate", NOW)
        assert not rules.is_recurrence_due(expense, date(2026, 6, 1))


class TestExpenseAggregates:

    def test_total_paid_only_counts_paid(self, manager):
        paid = rules.mark_as_paid(rules.approve(make_expense(), manager, NOW), NOW)
        approved = rules.approve(make_expense(code="EXP-0002"), manager, NOW)
        total = rules.total_paid([paid, approved], date(2026, 1, 1), date(2026, 1, 31))
        assert total.count == 1
        assert total.total_expense == Decimal("15000")

    def test_breakdown_largest_first(self, manager):
        rent = rules.approve(make_expense(), manager, NOW)
        power = rules.approve(make_expense(code="EXP-0002", expense_type="utilities", amount=Decimal("2000")), manager, NOW)
        power2 = rules.approve(make_expense(code="EXP-0003", expense_type="utilities", amount=Decimal("3000")), manager, NOW)
        draft = make_expense(code="EXP-0004", expense_type="marketing", amount=Decimal("90000"))
        rows = rules.breakdown_by_type([rent, power, power2, draft], date(2026, 1, 1), date(2026, 1, 31))
        assert [r["expense_type"] for r in rows] == ["rent", "utilities"]
        assert rows[1]["count"] == 2
        assert rows[1]["average_amount"] == Decimal("2500")


# =============================================================================
# API
# =============================================================================


class TestExpenseApi:

    def _create(self, client, headers, **overrides):
        payload = {
            "code": "EXP-0001",
            "expense_type": "rent",
            "amount": "15000",
            "expense_date": "2026-01-01",
        }
        payload.update(overrides)
        resp = client.post("/api/expenses", json=payload, headers=headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    def test_create_derives_tax(self, client, admin_headers):
        expense = self._create(client, admin_headers, amount="1000", tax={"tax_percentage": "18"})
        assert Decimal(expense["tax"]["tax_amount"]) == Decimal("180")

    def test_paid_total_flow(self, client, admin_headers):
        expense = self._create(client, admin_headers)
        eid = expense["id"]
        assert client.post(f"/api/expenses/{eid}/approve", headers=admin_headers).status_code == 200
        assert client.post(f"/api/expenses/{eid}/pay", json={"transaction_id": "UTR-1"},
                           headers=admin_headers).status_code == 200

        resp = client.get("/api/expenses/total-paid?start=2026-01-01&end=2026-01-31", headers=admin_headers)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["count"] == 1
        assert Decimal(data["total_expense"]) == Decimal("15000")

    def test_total_paid_requires_range(self, client, admin_headers):
        resp = client.get("/api/expenses/total-paid?start=2026-01-01", headers=admin_headers)
        assert resp.status_code == 400

    def test_staff_cannot_approve(self, client, admin_headers, staff_headers):
        expense = self._create(client, admin_headers)
        resp = client.post(f"/api/expenses/{expense['id']}/approve", headers=staff_headers)
        assert resp.status_code == 403

    def test_edit_blocked_after_approval(self, client, admin_headers):
        expense = self._create(client, admin_headers)
        client.post(f"/api/expenses/{expense['id']}/approve", headers=admin_headers)
        resp = client.patch(f"/api/expenses/{expense['id']}", json={"amount": "1"}, headers=admin_headers)
        assert resp.status_code == 409

    def test_due_recurring_and_advance(self, client, admin_headers):
        expense = self._create(client, admin_headers, recurring={"is_recurring": True, "frequency": "monthly"})

        resp = client.get("/api/expenses/due-recurring?date=2026-02-01", headers=admin_headers)
        assert resp.get_json()["count"] == 1

        resp = client.post(f"/api/expenses/{expense['id']}/advance-recurrence", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["recurring"]["next_due_date"] == "2026-03-01"

        resp = client.get("/api/expenses/due-recurring?date=2026-02-01", headers=admin_headers)
        assert resp.get_json()["count"] == 0
