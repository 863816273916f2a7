# Overview: Service-layer operations for inventory batches; stock movements, wastage and freshness jobs.

"""
Inventory Service

- Every mutation re-derives batch_status / days_until_expiry / valuation via
  refresh() with the same `now` it recorded the movement at.
- An expired batch is switched inactive by refresh(); the nightly
  refresh-batches job persists that for batches nobody touched.
- Stock movement and wastage history is append-only.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import InventoryBatch, Stall
from ..domain import inventory as rules
from ..domain.actors import Actor
from ..domain.records import build_record, policy
from ..time_utils import utcnow
from . import record_service
from .audit_service import record_event
from .concurrency import run_with_retry
from .repository import RecordRepository


CREATE_POLICY = policy(
    writable=(
        "batch_number", "item_type", "item_name", "item_id", "unit",
        "production_date", "expiry_date", "cost_per_unit", "total_stock",
        "production_house_stock", "min_stock_level", "reorder_quantity",
        "near_expiry_alert_days",
    ),
    required=("batch_number", "item_type", "item_name", "production_date", "expiry_date", "cost_per_unit"),
)

UPDATE_POLICY = policy(
    writable=(
        "item_name", "item_id", "unit", "expiry_date", "cost_per_unit",
        "min_stock_level", "reorder_quantity", "near_expiry_alert_days",
    ),
)

MOVE_POLICY = policy(writable=("quantity", "reason", "stall_id", "stall_name"), required=("quantity",))


def _alert_days() -> int:
    return current_app.config.get("NEAR_EXPIRY_ALERT_DAYS", rules.DEFAULT_NEAR_EXPIRY_DAYS)


def create_batch(*, payload, actor: Actor, now: Optional[datetime] = None) -> InventoryBatch:
    now = now or utcnow()
    batch = record_service.build_from_payload(
        InventoryBatch, payload, CREATE_POLICY,
        defaults={"near_expiry_alert_days": _alert_days()},
    )
    if "production_house_stock" not in (payload or {}):
        batch = replace(batch, production_house_stock=batch.total_stock)
    batch = rules.refresh(batch, now)
    return record_service.create(InventoryBatch, batch, actor=actor)


def update_batch(*, batch_id: int, payload, actor: Actor, expected_version=None,
                 now: Optional[datetime] = None) -> InventoryBatch:
    now = now or utcnow()
    return record_service.update(
        InventoryBatch, batch_id, payload,
        policy=UPDATE_POLICY,
        actor=actor,
        revise=lambda current, revised: rules.refresh(revised, now),
        expected_version=expected_version,
    )


def add_stock(*, batch_id: int, payload, actor: Actor, expected_version=None,
              now: Optional[datetime] = None) -> InventoryBatch:
    data = MOVE_POLICY.check(payload, partial=False)
    now = now or utcnow()
    return record_service.transition(
        InventoryBatch, batch_id,
        lambda batch: rules.add_stock(batch, data["quantity"], actor, now),
        action="stock_added",
        actor=actor,
        expected_version=expected_version,
        payload={"quantity": str(data["quantity"])},
    )


def remove_stock(*, batch_id: int, payload, actor: Actor, expected_version=None,
                 now: Optional[datetime] = None) -> InventoryBatch:
    data = MOVE_POLICY.check(payload, partial=False)
    now = now or utcnow()
    return record_service.transition(
        InventoryBatch, batch_id,
        lambda batch: rules.remove_stock(
            batch, data["quantity"], actor, now,
            reason=data.get("reason") or "sale",
            stall_id=data.get("stall_id"),
        ),
        action="stock_removed",
        actor=actor,
        expected_version=expected_version,
        payload={"quantity": str(data["quantity"]), "stall_id": data.get("stall_id")},
    )


def _stall_name(stall_code: str) -> Optional[str]:
    stall = db.session.query(Stall).filter(Stall.code == stall_code).first()
    return stall.name if stall else None


def transfer_stock(*, batch_id: int, payload, actor: Actor, expected_version=None,
                   now: Optional[datetime] = None) -> InventoryBatch:
    """Production house -> stall. stall_name defaults to the stall registered under stall_id."""
    data = MOVE_POLICY.check(payload, partial=False)
    now = now or utcnow()
    stall_id = data.get("stall_id")
    stall_name = data.get("stall_name") or (_stall_name(stall_id) if stall_id else None) or stall_id
    return record_service.transition(
        InventoryBatch, batch_id,
        lambda batch: rules.transfer_stock(batch, stall_id, stall_name, data["quantity"], actor, now),
        action="stock_transferred",
        actor=actor,
        expected_version=expected_version,
        payload={"quantity": str(data["quantity"]), "stall_id": stall_id},
    )


def record_wastage(*, batch_id: int, payload, actor: Actor, expected_version=None,
                   now: Optional[datetime] = None) -> InventoryBatch:
    command = build_record(rules.WastageCommand, payload)
    now = now or utcnow()
    return record_service.transition(
        InventoryBatch, batch_id,
        lambda batch: rules.record_wastage(batch, command, actor, now),
        action="wastage_recorded",
        actor=actor,
        expected_version=expected_version,
        payload={"quantity": str(command.quantity), "reason": command.reason},
    )


def refresh_batches(*, now: Optional[datetime] = None) -> dict:
    """
    Re-derive freshness for every active batch and persist the ones that changed.

    Returns {"checked", "updated", "expired"} counts.
    """
    now = now or utcnow()

    def _op():
        repo = RecordRepository(InventoryBatch)
        rows, _ = repo.list(order_by=InventoryBatch.id.asc(), limit=None)
        updated = 0
        expired = 0
        for row in rows:
            before = row.to_record()
            after = rules.refresh(before, now)
            if (after.batch_status, after.days_until_expiry, after.is_active) == (
                before.batch_status, before.days_until_expiry, before.is_active
            ):
                continue
            repo.save(row, after)
            record_event(
                row=row,
                action="refreshed",
                from_status=before.batch_status,
                to_status=after.batch_status,
                occurred_at=now,
            )
            updated += 1
            if after.batch_status == rules.BATCH_EXPIRED:
                expired += 1
        db.session.commit()
        current_app.logger.info(
            "Inventory refresh: checked=%s updated=%s expired=%s", len(rows), updated, expired
        )
        return {"checked": len(rows), "updated": updated, "expired": expired}

    return run_with_retry(_op)


def low_stock() -> list[InventoryBatch]:
    rows, _ = RecordRepository(InventoryBatch).list(limit=None)
    low_codes = {b.batch_number for b in rules.low_stock(row.to_record() for row in rows)}
    found = [row for row in rows if row.code in low_codes]
    found.sort(key=lambda row: row.total_stock)
    return found


def near_expiry(*, days: Optional[int] = None, now: Optional[datetime] = None) -> list[InventoryBatch]:
    now = now or utcnow()
    rows, _ = RecordRepository(InventoryBatch).list(order_by=InventoryBatch.expiry_date.asc(), limit=None)
    codes = {b.batch_number for b in rules.near_expiry((row.to_record() for row in rows), now, days)}
    return [row for row in rows if row.code in codes]


def list_batches(*, batch_status=None, item_type=None, item_name=None,
                 include_inactive=False, limit=100, offset=0):
    return record_service.list_rows(
        InventoryBatch,
        filters={"batch_status": batch_status, "item_type": item_type, "item_name": item_name},
        include_inactive=include_inactive,
        order_by=InventoryBatch.expiry_date.asc(),
        limit=limit,
        offset=offset,
    )


def delete_batch(*, batch_id: int, actor: Actor, expected_version=None) -> InventoryBatch:
    return record_service.soft_delete(InventoryBatch, batch_id, actor=actor, expected_version=expected_version)
