from __future__ import annotations

from ..extensions import db
from ..domain import orders as rules
from .base import DocumentMixin


class Order(DocumentMixin, db.Model):
    __tablename__ = "orders"
    __table_args__ = {"sqlite_autoincrement": True}

    record_class = rules.Order
    entity_type = "order"

    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    stall_id = db.Column(db.String(64), nullable=False, index=True)
    order_type = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="pending", index=True)
    payment_status = db.Column(db.String(32), nullable=False, default="unpaid", index=True)
    final_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def project(self, record) -> None:
        self.code = record.code
        self.stall_id = record.stall_id
        self.order_type = record.order_type
        self.status = record.status
        self.payment_status = record.payment.status
        self.final_amount = record.pricing.final_amount

    def extra_fields(self) -> dict:
        return {"preparation_minutes": rules.preparation_minutes(self.to_record())}
