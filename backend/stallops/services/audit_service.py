# Overview: Service-layer operations for the audit trail; append-only record of transitions.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import AuditEvent
from ..domain.actors import Actor
from ..time_utils import utcnow
"""
Audit trail invariants

- Append-only: events are inserted, never updated or deleted.
- Events are written inside the same DB transaction as the change they record,
  so a rolled-back transition leaves no event behind.
- occurred_at is business time; created_at is system time (DB default).
"""


def record_event(
    *,
    row,
    action: str,
    actor: Optional[Actor] = None,
    from_status: Optional[str] = None,
    to_status: Optional[str] = None,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
    occurred_at: Optional[datetime] = None,
) -> AuditEvent:
    ev = AuditEvent(
        entity_type=row.entity_type,
        entity_id=row.id,
        entity_code=getattr(row, "code", None),
        action=action,
        from_status=from_status,
        to_status=to_status,
        version=row.version_id,
        actor_user_id=actor.user_id if actor else None,
        actor_user_name=actor.user_name if actor else None,
        actor_user_role=actor.user_role if actor else None,
        note=note,
        payload=payload,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(ev)
    db.session.flush()

    current_app.logger.info(
        "audit %s %s#%s %s (%s -> %s) by %s",
        ev.id, row.entity_type, row.id, action,
        from_status, to_status,
        actor.user_id if actor else "system",
    )
    return ev


def list_events(
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    action: str | None = None,
    actor_user_id: str | None = None,
    as_of: datetime | None = None,
    limit: int = 100,
    offset: int = 0,
):
    """Newest first. as_of filtering is inclusive: occurred_at <= as_of."""
    q = db.session.query(AuditEvent)
    if entity_type:
        q = q.filter(AuditEvent.entity_type == entity_type)
    if entity_id is not None:
        q = q.filter(AuditEvent.entity_id == entity_id)
    if action:
        q = q.filter(AuditEvent.action == action)
    if actor_user_id:
        q = q.filter(AuditEvent.actor_user_id == actor_user_id)
    if as_of is not None:
        q = q.filter(AuditEvent.occurred_at <= as_of)

    total = q.count()
    events = q.order_by(AuditEvent.id.desc()).offset(offset).limit(limit).all()
    return events, total
