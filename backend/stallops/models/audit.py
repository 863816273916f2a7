from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class AuditEvent(db.Model):
    """
    Append-only audit trail of record transitions.

    Rows are inserted in the same transaction as the change they describe and
    are never updated or deleted.
    """
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    entity_type = db.Column(db.String(64), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)
    entity_code = db.Column(db.String(64), nullable=True)
    action = db.Column(db.String(64), nullable=False, index=True)

    from_status = db.Column(db.String(32), nullable=True)
    to_status = db.Column(db.String(32), nullable=True)
    version = db.Column(db.Integer, nullable=True)

    actor_user_id = db.Column(db.String(64), nullable=True, index=True)
    actor_user_name = db.Column(db.String(255), nullable=True)
    actor_user_role = db.Column(db.String(64), nullable=True)

    note = db.Column(db.Text, nullable=True)
    payload = db.Column(db.JSON, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "entity_code": self.entity_code,
            "action": self.action,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "version": self.version,
            "actor_user_id": self.actor_user_id,
            "actor_user_name": self.actor_user_name,
            "actor_user_role": self.actor_user_role,
            "note": self.note,
            "payload": self.payload,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }
