from __future__ import annotations

from ..extensions import db
from ..domain import expenses as rules
from .base import DocumentMixin


class Expense(DocumentMixin, db.Model):
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_recurring_due", "is_recurring", "next_due_date"),
        {"sqlite_autoincrement": True},
    )

    record_class = rules.Expense
    entity_type = "expense"

    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    expense_type = db.Column(db.String(32), nullable=False, index=True)
    status = db.Column(db.String(32), nullable=False, default="draft", index=True)
    expense_date = db.Column(db.Date, nullable=False, index=True)
    stall_id = db.Column(db.String(64), nullable=True, index=True)
    amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    next_due_date = db.Column(db.Date, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def project(self, record) -> None:
        self.code = record.code
        self.expense_type = record.expense_type
        self.status = record.status
        self.expense_date = record.expense_date
        self.stall_id = record.stall_id
        self.amount = record.amount
        self.is_recurring = record.recurring.is_recurring
        self.next_due_date = record.recurring.next_due_date

    def extra_fields(self) -> dict:
        expense = self.to_record()
        return {
            "approval_status": expense.approval_status,
            "total_amount_with_tax": str(rules.total_amount_with_tax(expense)),
            "base_amount": str(rules.base_amount(expense)),
        }
