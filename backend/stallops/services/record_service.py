# Overview: Service-layer unit of work shared by all document entities (create, update, transition, soft delete).

"""
Every write follows the same sequence inside one transaction:

    load row (FOR UPDATE) -> check expected_version -> domain function on the
    current record -> save new record -> append audit event -> commit

The domain function either returns the complete new record or raises; the row
is only touched after it returned, so a failed transition changes nothing.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional

from ..extensions import db
from ..domain.actors import Actor, require_actor
from ..domain.errors import InvalidStateTransition
from ..domain.records import RecordPolicy, build_record, merge_document, to_document
from .audit_service import record_event
from .concurrency import check_expected_version, run_with_retry
from .repository import RecordRepository, entity_label


def status_of(model, record) -> Optional[str]:
    return getattr(record, model.status_attr, None)


def build_from_payload(model, payload, policy: RecordPolicy, *, defaults: dict | None = None):
    """Validate a create payload against the write policy and build the record."""
    data = policy.check(payload, partial=False)
    if defaults:
        data = {**defaults, **data}
    return build_record(model.record_class, data)


def create(model, record, *, actor: Actor, note: Optional[str] = None):
    require_actor(actor)

    def _op():
        row = RecordRepository(model).create(record)
        record_event(
            row=row,
            action="created",
            actor=actor,
            to_status=status_of(model, record),
            note=note,
        )
        db.session.commit()
        return row

    return run_with_retry(_op)


def transition(
    model,
    row_id: int,
    change: Callable,
    *,
    action: str,
    actor: Optional[Actor] = None,
    expected_version=None,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
    after_save: Optional[Callable] = None,
):
    """
    Apply change(current_record) -> new_record to one row.

    after_save(row, before, after), when given, runs inside the same
    transaction so dependent rows commit or roll back together.
    """

    def _op():
        repo = RecordRepository(model)
        row = repo.load(row_id, for_update=True)
        check_expected_version(row, expected_version)
        before = row.to_record()
        after = change(before)
        repo.save(row, after)
        record_event(
            row=row,
            action=action,
            actor=actor,
            from_status=status_of(model, before),
            to_status=status_of(model, after),
            note=note,
            payload=payload,
        )
        if after_save is not None:
            try:
                after_save(row, before, after)
            except Exception:
                db.session.rollback()
                raise
        db.session.commit()
        return row

    return run_with_retry(_op)


def update(
    model,
    row_id: int,
    payload,
    *,
    policy: RecordPolicy,
    actor: Actor,
    revise: Callable,
    expected_version=None,
):
    """
    Partial update of writable fields.

    The patch is deep-merged into the stored document, rebuilt into a typed
    record, then revise(current, revised) decides whether the edit is allowed
    and recalculates derived fields.
    """
    require_actor(actor)
    patch = policy.check(payload, partial=True)

    def change(current):
        document = merge_document(to_document(current), patch)
        revised = build_record(model.record_class, document)
        return revise(current, revised)

    return transition(
        model, row_id, change,
        action="updated",
        actor=actor,
        expected_version=expected_version,
        payload={"fields": sorted(patch.keys())},
    )


def soft_delete(model, row_id: int, *, actor: Actor, expected_version=None):
    """Flip is_active off; rows are never physically removed."""
    require_actor(actor)

    def change(current):
        if not current.is_active:
            raise InvalidStateTransition(entity_label(model), "inactive", "delete")
        return replace(current, is_active=False)

    return transition(
        model, row_id, change,
        action="deleted",
        actor=actor,
        expected_version=expected_version,
    )


def get(model, row_id: int):
    return RecordRepository(model).load(row_id)


def list_rows(model, **kwargs):
    return RecordRepository(model).list(**kwargs)
