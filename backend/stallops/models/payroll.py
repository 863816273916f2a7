from __future__ import annotations

from ..extensions import db
from ..domain import payroll as rules
from .base import DocumentMixin


class Payroll(DocumentMixin, db.Model):
    """One employee's salary for one period."""
    __tablename__ = "payrolls"
    __table_args__ = {"sqlite_autoincrement": True}

    record_class = rules.Payroll
    entity_type = "payroll"

    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    employee_id = db.Column(db.String(64), nullable=False, index=True)
    month_year = db.Column(db.String(32), nullable=True, index=True)
    status = db.Column(db.String(32), nullable=False, default="draft", index=True)
    stall_id = db.Column(db.String(64), nullable=True, index=True)
    final_payment = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def project(self, record) -> None:
        self.code = record.code
        self.employee_id = record.employee.employee_id
        self.month_year = record.period.month_year
        self.status = record.status
        self.stall_id = record.employee.stall_id
        self.final_payment = record.totals.final_payment
