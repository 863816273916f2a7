"""
Payroll tests.

Verifies:
- Salary calculation (allowances, overtime, bonus, deductions, round-off)
- Attendance-based leave deduction
- Approval/payment workflow guards
- Monthly totals only count approved, processed and paid records
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from stallops.domain import payroll as rules
from stallops.domain.errors import InvalidStateTransition, ValidationError


NOW = datetime(2026, 2, 1, 10, 0)


def make_payroll(**overrides):
    fields = dict(
        code="PAY-2026-01-E001",
        employee=rules.EmployeeInfo(
            employee_id="E001", employee_name="Kiran", designation="Cook", role="chef",
        ),
        period=rules.SalaryPeriod(start_date=date(2026, 1, 1), end_date=date(2026, 1, 31)),
        base_salary=Decimal("10000"),
        allowances=rules.Allowances(house_rent=Decimal("2000")),
        overtime=rules.Overtime(hours=Decimal("5"), rate=Decimal("100")),
        bonus=rules.Bonus(performance=Decimal("300")),
        deductions=rules.Deductions(fine=Decimal("800")),
    )
    fields.update(overrides)
    return rules.Payroll(**fields)


PAYROLL_PAYLOAD = {
    "code": "PAY-2026-01-E001",
    "employee": {"employee_id": "E001", "employee_name": "Kiran", "designation": "Cook", "role": "chef"},
    "period": {"start_date": "2026-01-01", "end_date": "2026-01-31"},
    "base_salary": "10000",
    "allowances": {"house_rent": "2000"},
    "overtime": {"hours": "5", "rate": "100"},
    "bonus": {"performance": "300"},
    "deductions": {"fine": "800"},
}


# =============================================================================
# CALCULATION
# =============================================================================


class TestPayrollCalculation:

    def test_final_payment(self):
        payroll = rules.calculate_all(make_payroll())
        totals = payroll.totals
        assert totals.gross_salary == Decimal("12000")
        assert totals.overtime_amount == Decimal("500")
        assert totals.total_deductions == Decimal("800")
        assert totals.net_payable_salary == Decimal("12000")
        assert totals.final_payment == Decimal("12000")
        assert totals.round_off_amount == 0

    def test_month_label_derived(self):
        payroll = rules.calculate_all(make_payroll())
        assert payroll.period.month_year == "January 2026"

    def test_round_off_to_step(self):
        payroll = rules.calculate_all(make_payroll(base_salary=Decimal("10004")))
        assert payroll.totals.net_payable_salary == Decimal("12004")
        assert payroll.totals.final_payment == Decimal("12000")
        assert payroll.totals.round_off_amount == Decimal("-4")

    def test_leave_deduction(self):
        payroll = rules.calculate_all(make_payroll(
            base_salary=Decimal("26000"),
            allowances=rules.Allowances(),
            overtime=rules.Overtime(),
            bonus=rules.Bonus(),
            deductions=rules.Deductions(),
            attendance=rules.Attendance(
                total_working_days=Decimal("26"),
                present_days=Decimal("24"),
                leave=rules.LeaveBreakdown(unpaid=Decimal("1")),
            ),
        ))
        totals = payroll.totals
        assert totals.absent_days == Decimal("1")
        assert totals.leave_deduction == Decimal("2000")
        assert totals.attendance_percentage == Decimal("92.31")
        assert totals.final_payment == Decimal("24000")

    def test_attendance_overflow_rejected(self):
        with pytest.raises(ValidationError):
            rules.calculate_all(make_payroll(
                attendance=rules.Attendance(total_working_days=Decimal("26"), present_days=Decimal("27")),
            ))

    def test_net_floors_at_zero(self):
        payroll = rules.calculate_all(make_payroll(deductions=rules.Deductions(advance=Decimal("50000"))))
        assert payroll.totals.net_payable_salary == 0
        assert payroll.totals.final_payment == 0

    def test_recalculation_is_stable(self):
        once = rules.calculate_all(make_payroll())
        assert rules.calculate_all(once) == once

    def test_negative_component_rejected(self):
        with pytest.raises(ValidationError):
            make_payroll(bonus=rules.Bonus(festival=Decimal("-1")))


class TestPayrollWorkflow:

    def test_happy_path(self, admin, manager):
        payroll = rules.calculate_all(make_payroll())
        payroll = rules.submit_for_approval(payroll)
        payroll = rules.approve(payroll, manager, NOW, "ok")
        payroll = rules.process_payment(payroll, admin, NOW)
        payroll = rules.mark_as_paid(payroll, NOW, "TXN-1")
        assert payroll.status == rules.STATUS_PAID
        assert payroll.payment.payment_status == "paid"
        assert payroll.payment.transaction_id == "TXN-1"
        assert payroll.approval.user_id == manager.user_id

    def test_cannot_pay_pending(self):
        payroll = rules.submit_for_approval(rules.calculate_all(make_payroll()))
        with pytest.raises(InvalidStateTransition):
            rules.mark_as_paid(payroll, NOW)

    def test_cannot_reject_approved(self, manager):
        payroll = rules.approve(rules.calculate_all(make_payroll()), manager, NOW)
        with pytest.raises(InvalidStateTransition):
            rules.reject(payroll, manager, "late", NOW)

    def test_reject_returns_to_draft(self, manager):
        payroll = rules.submit_for_approval(rules.calculate_all(make_payroll()))
        payroll = rules.reject(payroll, manager, "wrong overtime", NOW)
        assert payroll.status == rules.STATUS_DRAFT
        assert payroll.rejection.comments == "wrong overtime"

    def test_reject_requires_reason(self, manager):
        payroll = rules.submit_for_approval(rules.calculate_all(make_payroll()))
        with pytest.raises(ValidationError):
            rules.reject(payroll, manager, "  ", NOW)

    def test_cannot_cancel_paid(self, admin):
        payroll = rules.approve(rules.calculate_all(make_payroll()), admin, NOW)
        payroll = rules.mark_as_paid(payroll, NOW)
        with pytest.raises(InvalidStateTransition):
            rules.cancel(payroll, admin, "duplicate", NOW)

    def test_revise_blocked_after_approval(self, admin):
        payroll = rules.approve(rules.calculate_all(make_payroll()), admin, NOW)
        with pytest.raises(InvalidStateTransition):
            rules.revise(payroll, payroll)


class TestMonthlyTotal:

    def test_only_counted_statuses(self, admin):
        approved = rules.approve(rules.calculate_all(make_payroll()), admin, NOW)
        draft = rules.calculate_all(make_payroll(code="PAY-2026-01-E002"))
        total = rules.monthly_total([approved, draft], "January 2026")
        assert total.employee_count == 1
        assert total.total_final_payment == Decimal("12000")

    def test_top_earners_order(self, admin):
        low = rules.approve(rules.calculate_all(make_payroll()), admin, NOW)
        high = rules.approve(
            rules.calculate_all(make_payroll(code="PAY-2026-01-E002", base_salary=Decimal("20000"))),
            admin, NOW,
        )
        earners = rules.top_earners([low, high], "January 2026", limit=1)
        assert [p.code for p in earners] == ["PAY-2026-01-E002"]


# =============================================================================
# API
# =============================================================================


class TestPayrollApi:

    def _create(self, client, headers):
        resp = client.post("/api/payroll", json=PAYROLL_PAYLOAD, headers=headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    def test_create_computes_totals(self, client, admin_headers):
        payroll = self._create(client, admin_headers)
        assert payroll["status"] == "draft"
        assert Decimal(payroll["totals"]["final_payment"]) == Decimal("12000")
        assert payroll["period"]["month_year"] == "January 2026"

    def test_client_cannot_write_totals(self, client, admin_headers):
        resp = client.post(
            "/api/payroll",
            json={**PAYROLL_PAYLOAD, "totals": {"final_payment": "99999"}},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_staff_cannot_create(self, client, staff_headers):
        resp = client.post("/api/payroll", json=PAYROLL_PAYLOAD, headers=staff_headers)
        assert resp.status_code == 403

    def test_full_workflow(self, client, admin_headers):
        payroll = self._create(client, admin_headers)
        pid = payroll["id"]

        assert client.post(f"/api/payroll/{pid}/submit", headers=admin_headers).status_code == 200
        resp = client.post(f"/api/payroll/{pid}/approve", json={"comments": "ok"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "approved"

        assert client.post(f"/api/payroll/{pid}/process", headers=admin_headers).status_code == 200
        resp = client.post(f"/api/payroll/{pid}/pay", json={"transaction_id": "TXN-9"}, headers=admin_headers)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "paid"
        assert data["payment"]["transaction_id"] == "TXN-9"

    def test_pay_draft_conflict(self, client, admin_headers):
        payroll = self._create(client, admin_headers)
        resp = client.post(f"/api/payroll/{payroll['id']}/pay", headers=admin_headers)
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "invalid_state_transition"

    def test_accountant_cannot_approve(self, client, admin_headers, accountant_headers):
        payroll = self._create(client, admin_headers)
        resp = client.post(f"/api/payroll/{payroll['id']}/approve", headers=accountant_headers)
        assert resp.status_code == 403

    def test_update_recalculates(self, client, admin_headers):
        payroll = self._create(client, admin_headers)
        resp = client.patch(
            f"/api/payroll/{payroll['id']}",
            json={"bonus": {"festival": "1000"}, "expected_version": payroll["version"]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        data = resp.get_json()
        assert Decimal(data["totals"]["total_bonus"]) == Decimal("1300")
        assert Decimal(data["totals"]["final_payment"]) == Decimal("13000")
        assert data["version"] == payroll["version"] + 1

    def test_monthly_total(self, client, admin_headers):
        payroll = self._create(client, admin_headers)
        client.post(f"/api/payroll/{payroll['id']}/approve", headers=admin_headers)

        resp = client.get(
            "/api/payroll/monthly-total",
            query_string={"month_year": "January 2026"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["employee_count"] == 1
        assert Decimal(data["total_final_payment"]) == Decimal("12000")

    def test_monthly_total_requires_month(self, client, admin_headers):
        resp = client.get("/api/payroll/monthly-total", headers=admin_headers)
        assert resp.status_code == 400
