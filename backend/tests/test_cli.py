"""
CLI command tests.

Verifies:
- system init-db is idempotent
- Scheduled job commands report what they did
- Date options reject malformed input
"""

from datetime import timedelta

from stallops.services import expense_service, inventory_service, investor_service
from stallops.time_utils import utcnow


def run(app, *args):
    return app.test_cli_runner().invoke(args=list(args))


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystemCommands:

    def test_init_db(self, app, db_session):
        result = run(app, "system", "init-db")
        assert result.exit_code == 0
        assert "PASS Database schema is up to date." in result.output


# =============================================================================
# JOBS
# =============================================================================


class TestJobCommands:

    def test_refresh_batches(self, app, db_session, admin):
        now = utcnow()
        inventory_service.create_batch(
            payload={
                "batch_number": "B-CLI-1",
                "item_type": "product",
                "item_name": "Veg Momos",
                "production_date": (now - timedelta(days=1)).isoformat(),
                "expiry_date": (now + timedelta(days=10)).isoformat(),
                "cost_per_unit": "12",
                "total_stock": "100",
            },
            actor=admin,
        )
        result = run(app, "inventory", "refresh-batches")
        assert result.exit_code == 0
        assert "Checked 1 batches: 0 updated, 0 expired." in result.output

    def test_alerts(self, app, db_session):
        result = run(app, "inventory", "alerts", "--days", "2")
        assert result.exit_code == 0
        assert "Low stock (0):" in result.output
        assert "Near expiry (0):" in result.output

    def test_recurring_expenses(self, app, db_session, admin):
        expense_service.create_expense(
            payload={
                "code": "EXP-RENT",
                "expense_type": "rent",
                "amount": "15000",
                "expense_date": "2026-01-01",
                "recurring": {"is_recurring": True, "frequency": "monthly"},
            },
            actor=admin,
        )

        result = run(app, "expenses", "due-recurring", "--date", "2026-01-15")
        assert "No recurring expenses due." in result.output

        result = run(app, "expenses", "due-recurring", "--date", "2026-02-01")
        assert "EXP-RENT" in result.output

        result = run(app, "expenses", "advance-recurring", "--date", "2026-02-01")
        assert result.exit_code == 0
        assert "Advanced 1 of 1 due recurring expenses." in result.output

        result = run(app, "expenses", "due-recurring", "--date", "2026-02-01")
        assert "No recurring expenses due." in result.output

    def test_bad_date(self, app, db_session):
        result = run(app, "expenses", "due-recurring", "--date", "first of may")
        assert result.exit_code != 0

    def test_investor_payouts_due(self, app, db_session, admin):
        investor_service.create_investor(
            payload={
                "code": "INV-001",
                "name": "Meera Capital",
                "contact": {"mobile_number": "9876543210"},
                "investment_amount": "100000",
                "investment_date": "2026-01-01",
                "profit_share_percentage": "10",
            },
            actor=admin,
        )
        result = run(app, "investors", "payouts-due", "--date", "2026-01-20")
        assert "No investor payouts due." in result.output

        result = run(app, "investors", "payouts-due", "--date", "2026-02-01")
        assert "INV-001" in result.output

    def test_payroll_monthly_total(self, app, db_session):
        result = run(app, "payroll", "monthly-total", "--month-year", "January 2026")
        assert result.exit_code == 0
        assert "Payroll January 2026: 0 employees" in result.output

    def test_monthly_total_requires_month(self, app, db_session):
        result = run(app, "payroll", "monthly-total")
        assert result.exit_code != 0
