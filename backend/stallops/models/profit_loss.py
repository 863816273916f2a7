from __future__ import annotations

from ..extensions import db
from ..domain import profit_loss as rules
from .base import DocumentMixin


class ProfitLossReport(DocumentMixin, db.Model):
    __tablename__ = "profit_loss_reports"
    __table_args__ = {"sqlite_autoincrement": True}

    record_class = rules.ProfitLossReport
    entity_type = "profit_loss_report"

    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    status = db.Column(db.String(32), nullable=False, default="draft", index=True)
    period_type = db.Column(db.String(16), nullable=False)
    period_start = db.Column(db.Date, nullable=False, index=True)
    period_end = db.Column(db.Date, nullable=False)
    stall_id = db.Column(db.String(64), nullable=True, index=True)
    net_profit_loss = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def project(self, record) -> None:
        self.code = record.code
        self.status = record.status
        self.period_type = record.period_type
        self.period_start = record.period_start
        self.period_end = record.period_end
        self.stall_id = record.stall_id
        self.net_profit_loss = record.summary.net_profit_loss
