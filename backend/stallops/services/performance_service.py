# Overview: Service-layer operations for stall performance reports; scoring and the review lifecycle.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..models import StallPerformance
from ..domain import performance as rules
from ..domain.actors import Actor
from ..domain.records import build_record, policy
from ..time_utils import utcnow
from . import record_service
from .repository import RecordRepository


REPORT_POLICY = policy(
    writable=("stall_id", "stall_name", "performance_date", "period", "sales", "feedback", "wastage"),
    required=("stall_id", "stall_name", "performance_date"),
)


def create_report(*, payload, actor: Actor) -> StallPerformance:
    report = record_service.build_from_payload(StallPerformance, payload, REPORT_POLICY)
    report = rules.calculate_score(report)
    return record_service.create(StallPerformance, report, actor=actor)


def update_report(*, report_id: int, payload, actor: Actor, expected_version=None) -> StallPerformance:
    def revise(current, revised):
        rules.ensure_editable(current)
        return rules.calculate_score(revised)

    return record_service.update(
        StallPerformance, report_id, payload,
        policy=REPORT_POLICY,
        actor=actor,
        revise=revise,
        expected_version=expected_version,
    )


def add_complaint(*, report_id: int, complaint: str, actor: Actor, expected_version=None) -> StallPerformance:
    return record_service.transition(
        StallPerformance, report_id,
        lambda report: rules.add_complaint(report, complaint),
        action="complaint_added",
        actor=actor,
        expected_version=expected_version,
        payload={"complaint": complaint},
    )


def add_action_item(*, report_id: int, payload, actor: Actor, expected_version=None) -> StallPerformance:
    item = build_record(rules.ActionItem, payload)
    return record_service.transition(
        StallPerformance, report_id,
        lambda report: rules.add_action_item(report, item),
        action="action_item_added",
        actor=actor,
        expected_version=expected_version,
        payload={"action": item.action, "priority": item.priority},
    )


def submit(*, report_id: int, actor: Actor, expected_version=None,
           at: Optional[datetime] = None) -> StallPerformance:
    at = at or utcnow()
    return record_service.transition(
        StallPerformance, report_id,
        lambda report: rules.submit(report, actor, at),
        action="submitted",
        actor=actor,
        expected_version=expected_version,
    )


def review(*, report_id: int, actor: Actor, comments: Optional[str] = None,
           expected_version=None, at: Optional[datetime] = None) -> StallPerformance:
    at = at or utcnow()
    return record_service.transition(
        StallPerformance, report_id,
        lambda report: rules.review(report, actor, at, comments),
        action="reviewed",
        actor=actor,
        expected_version=expected_version,
        note=comments,
    )


def approve(*, report_id: int, actor: Actor, expected_version=None,
            at: Optional[datetime] = None) -> StallPerformance:
    at = at or utcnow()
    return record_service.transition(
        StallPerformance, report_id,
        lambda report: rules.approve(report, actor, at),
        action="approved",
        actor=actor,
        expected_version=expected_version,
    )


def archive(*, report_id: int, actor: Actor, expected_version=None) -> StallPerformance:
    return record_service.transition(
        StallPerformance, report_id,
        rules.archive,
        action="archived",
        actor=actor,
        expected_version=expected_version,
    )


def list_reports(*, stall_id=None, period=None, status=None,
                 include_inactive=False, limit=100, offset=0):
    return record_service.list_rows(
        StallPerformance,
        filters={"stall_id": stall_id, "period": period, "status": status},
        include_inactive=include_inactive,
        order_by=StallPerformance.performance_date.desc(),
        limit=limit,
        offset=offset,
    )


def _rows_for(reports, rows):
    keys = [(r.stall_id, r.performance_date, r.period) for r in reports]
    by_key = {(row.stall_id, row.performance_date, row.period): row for row in rows}
    return [by_key[key] for key in keys]


def top_performing(*, period: str = "daily", limit: int = 10) -> list[StallPerformance]:
    rows, _ = RecordRepository(StallPerformance).list(filters={"period": period}, limit=None)
    reports = rules.top_performing((row.to_record() for row in rows), period, limit)
    return _rows_for(reports, rows)


def high_wastage(*, threshold=None, limit: int = 10) -> list[StallPerformance]:
    rows, _ = RecordRepository(StallPerformance).list(limit=None)
    records = (row.to_record() for row in rows)
    if threshold is None:
        reports = rules.high_wastage(records, limit=limit)
    else:
        reports = rules.high_wastage(records, threshold, limit)
    return _rows_for(reports, rows)


def delete_report(*, report_id: int, actor: Actor, expected_version=None) -> StallPerformance:
    return record_service.soft_delete(StallPerformance, report_id, actor=actor, expected_version=expected_version)
