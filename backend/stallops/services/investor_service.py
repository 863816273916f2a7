# Overview: Service-layer operations for investors; ROI projection, payout ledger and status changes.

"""
Investor Service

- The payout ledger is append-only: add_payout is the only writer, and
  total_profit_paid always equals the sum of the ledger's net amounts.
- Ledger, totals and schedule dates are not client-writable.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ..models import Investor
from ..domain import investors as rules
from ..domain.actors import Actor
from ..domain.errors import ValidationError
from ..domain.records import build_record, policy
from ..time_utils import utcnow
from . import record_service


INVESTOR_POLICY = policy(
    writable=(
        "code", "name", "contact", "investment_amount", "investment_date",
        "profit_share_percentage", "expected_roi", "roi_basis",
        "distribution_frequency", "stall_id",
    ),
    required=("code", "name", "contact", "investment_amount", "investment_date"),
)


def create_investor(*, payload, actor: Actor) -> Investor:
    investor = record_service.build_from_payload(Investor, payload, INVESTOR_POLICY)
    investor = rules.initialize_schedule(investor)
    return record_service.create(Investor, investor, actor=actor)


def update_investor(*, investor_id: int, payload, actor: Actor, expected_version=None) -> Investor:
    def revise(current, revised):
        if revised.payout_records and revised.investment_date != current.investment_date:
            raise ValidationError("investment_date cannot change once payouts exist")
        return revised

    return record_service.update(
        Investor, investor_id, payload,
        policy=INVESTOR_POLICY,
        actor=actor,
        revise=revise,
        expected_version=expected_version,
    )


def calculate_roi(*, investor_id: int, months: int = 1) -> rules.RoiProjection:
    investor = record_service.get(Investor, investor_id).to_record()
    return rules.calculate_roi(investor, months)


def add_payout(*, investor_id: int, payload, actor: Actor, expected_version=None,
               at: Optional[datetime] = None) -> Investor:
    command = build_record(rules.PayoutCommand, payload)
    at = at or utcnow()
    return record_service.transition(
        Investor, investor_id,
        lambda inv: rules.add_payout(inv, command, actor, at),
        action="payout_added",
        actor=actor,
        expected_version=expected_version,
        payload={
            "payout_date": command.payout_date.isoformat(),
            "base_profit_amount": str(command.base_profit_amount),
        },
    )


def put_on_hold(*, investor_id: int, actor: Actor, reason: str, expected_version=None) -> Investor:
    return record_service.transition(
        Investor, investor_id,
        lambda inv: rules.put_on_hold(inv, reason),
        action="put_on_hold",
        actor=actor,
        expected_version=expected_version,
        note=reason,
    )


def resume(*, investor_id: int, actor: Actor, expected_version=None) -> Investor:
    return record_service.transition(
        Investor, investor_id,
        rules.resume,
        action="resumed",
        actor=actor,
        expected_version=expected_version,
    )


def complete(*, investor_id: int, actor: Actor, expected_version=None) -> Investor:
    return record_service.transition(
        Investor, investor_id,
        rules.complete,
        action="completed",
        actor=actor,
        expected_version=expected_version,
    )


def cancel(*, investor_id: int, actor: Actor, reason: str, expected_version=None) -> Investor:
    return record_service.transition(
        Investor, investor_id,
        lambda inv: rules.cancel(inv, reason),
        action="cancelled",
        actor=actor,
        expected_version=expected_version,
        note=reason,
    )


def add_note(*, investor_id: int, actor: Actor, note: str,
             expected_version=None, at: Optional[datetime] = None) -> Investor:
    at = at or utcnow()
    return record_service.transition(
        Investor, investor_id,
        lambda inv: rules.add_note(inv, actor, note, at),
        action="note_added",
        actor=actor,
        expected_version=expected_version,
    )


def list_investors(*, status=None, stall_id=None, include_inactive=False, limit=100, offset=0):
    return record_service.list_rows(
        Investor,
        filters={"status": status, "stall_id": stall_id},
        include_inactive=include_inactive,
        order_by=Investor.name.asc(),
        limit=limit,
        offset=offset,
    )


def payouts_due(today: Optional[date] = None) -> list[Investor]:
    """Active investors whose next calculation date has arrived."""
    today = today or utcnow().date()
    rows, _ = record_service.list_rows(
        Investor,
        filters={"status": rules.STATUS_ACTIVE},
        criteria=(Investor.next_calculation_date <= today,),
        order_by=Investor.next_calculation_date.asc(),
        limit=None,
    )
    due_codes = {inv.code for inv in rules.payouts_due((row.to_record() for row in rows), today)}
    return [row for row in rows if row.code in due_codes]


def delete_investor(*, investor_id: int, actor: Actor, expected_version=None) -> Investor:
    return record_service.soft_delete(Investor, investor_id, actor=actor, expected_version=expected_version)
