from __future__ import annotations

from ..extensions import db
from ..domain import delivery as rules
from .base import DocumentMixin


class DeliveryZone(DocumentMixin, db.Model):
    """
    Delivery coverage area with its own pricing and timing rules.

    Localities, peak windows and assigned delivery persons live in the document;
    pin_codes is a space-separated projection used for PIN lookups.
    """
    __tablename__ = "delivery_zones"
    __table_args__ = {"sqlite_autoincrement": True}

    record_class = rules.DeliveryZone
    entity_type = "delivery_zone"
    status_attr = "operational_status"

    code = db.Column(db.String(16), nullable=False, unique=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    operational_status = db.Column(db.String(32), nullable=False, default="active", index=True)
    stall_id = db.Column(db.String(64), nullable=True, index=True)
    pin_codes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def project(self, record) -> None:
        self.code = record.code
        self.name = record.name
        self.operational_status = record.operational_status
        self.stall_id = record.stall_id
        pins = sorted({loc.pin_code for loc in record.localities if loc.pin_code})
        self.pin_codes = " ".join(pins) if pins else None

    def extra_fields(self) -> dict:
        zone = self.to_record()
        return {
            "delivery_success_rate": str(rules.delivery_success_rate(zone)),
            "average_delivery_charge": str(rules.average_delivery_charge(zone)),
            "available_persons_count": rules.available_persons_count(zone),
        }
