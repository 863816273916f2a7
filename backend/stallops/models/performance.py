from __future__ import annotations

from ..extensions import db
from ..domain import performance as rules
from .base import DocumentMixin


class StallPerformance(DocumentMixin, db.Model):
    __tablename__ = "stall_performance"
    __table_args__ = (
        db.UniqueConstraint("stall_id", "performance_date", "period", name="uq_stall_performance_period"),
        {"sqlite_autoincrement": True},
    )

    record_class = rules.StallPerformance
    entity_type = "stall_performance"

    stall_id = db.Column(db.String(64), nullable=False, index=True)
    performance_date = db.Column(db.Date, nullable=False, index=True)
    period = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="draft", index=True)
    performance_score = db.Column(db.Numeric(6, 2), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def project(self, record) -> None:
        self.stall_id = record.stall_id
        self.performance_date = record.performance_date
        self.period = record.period
        self.status = record.status
        self.performance_score = record.metrics.performance_score
