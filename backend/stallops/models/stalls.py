from __future__ import annotations

from ..extensions import db
from ..domain.stalls import Stall as StallRecord
from .base import DocumentMixin


class Stall(DocumentMixin, db.Model):
    """A selling point (stall, kiosk, truck) or the production house."""
    __tablename__ = "stalls"
    __table_args__ = {"sqlite_autoincrement": True}

    record_class = StallRecord
    entity_type = "stall"

    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="open", index=True)
    city = db.Column(db.String(128), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def project(self, record) -> None:
        self.code = record.code
        self.name = record.name
        self.status = record.status
        self.city = record.city
