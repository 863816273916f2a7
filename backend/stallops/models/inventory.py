from __future__ import annotations

from ..extensions import db
from ..domain import inventory as rules
from .base import DocumentMixin


class InventoryBatch(DocumentMixin, db.Model):
    """
    A dated lot of stock. batch_status/expiry_date are projected so the nightly
    refresh and alert jobs can pick candidates without decoding documents.
    """
    __tablename__ = "inventory_batches"
    __table_args__ = {"sqlite_autoincrement": True}

    record_class = rules.InventoryBatch
    entity_type = "inventory_batch"
    status_attr = "batch_status"

    code = db.Column(db.String(64), nullable=False, unique=True, index=True)  # batch number
    item_type = db.Column(db.String(32), nullable=False, index=True)
    item_name = db.Column(db.String(255), nullable=False, index=True)
    batch_status = db.Column(db.String(32), nullable=False, default="fresh", index=True)
    expiry_date = db.Column(db.DateTime, nullable=False, index=True)
    total_stock = db.Column(db.Numeric(14, 3), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def project(self, record) -> None:
        self.code = record.batch_number
        self.item_type = record.item_type
        self.item_name = record.item_name
        self.batch_status = record.batch_status
        self.expiry_date = record.expiry_date
        self.total_stock = record.total_stock

    def extra_fields(self) -> dict:
        batch = self.to_record()
        return {
            "total_stall_stock": str(rules.total_stall_stock(batch)),
            "is_low_stock": rules.is_low_stock(batch),
            "stock_percentage": str(rules.stock_percentage(batch)),
        }
