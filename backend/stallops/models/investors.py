from __future__ import annotations

from ..extensions import db
from ..domain import investors as rules
from .base import DocumentMixin


class Investor(DocumentMixin, db.Model):
    """
    Investor with an append-only payout ledger.

    total_profit_paid and next_calculation_date are projected so the payouts-due
    job can filter in SQL.
    """
    __tablename__ = "investors"
    __table_args__ = {"sqlite_autoincrement": True}

    record_class = rules.Investor
    entity_type = "investor"

    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="active", index=True)
    stall_id = db.Column(db.String(64), nullable=True, index=True)
    next_calculation_date = db.Column(db.Date, nullable=True, index=True)
    total_profit_paid = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def project(self, record) -> None:
        self.code = record.code
        self.name = record.name
        self.status = record.status
        self.stall_id = record.stall_id
        self.next_calculation_date = record.next_calculation_date
        self.total_profit_paid = record.total_profit_paid

    def extra_fields(self) -> dict:
        investor = self.to_record()
        return {
            "total_profit_due": str(rules.total_profit_due(investor)),
            "actual_roi_percentage": str(rules.actual_roi_percentage(investor)),
            "current_value": str(rules.current_value(investor)),
        }
