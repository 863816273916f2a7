from __future__ import annotations

from ..extensions import db
from ..domain.records import build_record, to_document
from ..time_utils import to_utc_z


class DocumentMixin:
    """
    Row that stores one immutable domain record as a JSON document.

    - `document` is the authoritative state (to_document() output).
    - Query columns (status, stall_id, dates, ...) are projections copied from
      the record on every save by project(); never written directly.
    - Subclasses declare `version_id` + __mapper_args__ so SQLAlchemy bumps the
      version on every UPDATE and rejects stale writes.
    """

    record_class = None
    entity_type = None
    status_attr = "status"

    id = db.Column(db.Integer, primary_key=True)
    document = db.Column(db.JSON, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_record(self):
        return build_record(self.record_class, self.document)

    def apply_record(self, record) -> None:
        self.document = to_document(record)
        self.is_active = record.is_active
        self.project(record)

    def project(self, record) -> None:
        raise NotImplementedError

    def extra_fields(self) -> dict:
        """Derived read-only values added to API responses."""
        return {}

    def to_dict(self):
        data = {
            "id": self.id,
            "version": self.version_id,
        }
        data.update(self.document or {})
        data.update(self.extra_fields())
        data["created_at"] = to_utc_z(self.created_at)
        data["updated_at"] = to_utc_z(self.updated_at)
        return data
