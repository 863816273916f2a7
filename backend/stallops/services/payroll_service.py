# Overview: Service-layer operations for payroll; salary calculation and the approval/payment workflow.

"""
Payroll Service

- Derived totals are always recomputed by the calculator on create and on
  every revision; clients cannot write them.
- Payment state (status, paid date, transaction id) changes only through
  process/mark-paid/cancel. A client may choose the payment method.
- The round-off step comes from PAYROLL_ROUND_OFF_STEP.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from flask import current_app

from ..models import Payroll
from ..domain import payroll as rules
from ..domain.actors import Actor
from ..domain.records import policy
from ..time_utils import utcnow
from . import record_service
from .repository import RecordRepository


PAYROLL_POLICY = policy(
    writable=(
        "code", "employee", "period", "base_salary", "allowances", "attendance",
        "overtime", "deductions", "bonus", "payment",
    ),
    required=("code", "employee", "period", "base_salary"),
)


def _round_off_step() -> int:
    return current_app.config.get("PAYROLL_ROUND_OFF_STEP", rules.DEFAULT_ROUND_OFF_STEP)


def _keep_payment_state(current: rules.Payroll, revised: rules.Payroll) -> rules.Payroll:
    payment = replace(current.payment, method=revised.payment.method)
    return replace(revised, payment=payment)


def create_payroll(*, payload, actor: Actor) -> Payroll:
    payroll = record_service.build_from_payload(Payroll, payload, PAYROLL_POLICY)
    payroll = replace(payroll, payment=rules.PaymentDetails(method=payroll.payment.method))
    payroll = rules.calculate_all(payroll, _round_off_step())
    return record_service.create(Payroll, payroll, actor=actor)


def update_payroll(*, payroll_id: int, payload, actor: Actor, expected_version=None) -> Payroll:
    def revise(current, revised):
        revised = _keep_payment_state(current, revised)
        return rules.revise(current, revised, _round_off_step())

    return record_service.update(
        Payroll, payroll_id, payload,
        policy=PAYROLL_POLICY,
        actor=actor,
        revise=revise,
        expected_version=expected_version,
    )


def recalculate(*, payroll_id: int, actor: Actor, expected_version=None) -> Payroll:
    return record_service.transition(
        Payroll, payroll_id,
        lambda p: rules.revise(p, p, _round_off_step()),
        action="recalculated",
        actor=actor,
        expected_version=expected_version,
    )


def submit(*, payroll_id: int, actor: Actor, expected_version=None) -> Payroll:
    return record_service.transition(
        Payroll, payroll_id,
        rules.submit_for_approval,
        action="submitted",
        actor=actor,
        expected_version=expected_version,
    )


def approve(*, payroll_id: int, actor: Actor, comments: Optional[str] = None,
            expected_version=None, at: Optional[datetime] = None) -> Payroll:
    at = at or utcnow()
    return record_service.transition(
        Payroll, payroll_id,
        lambda p: rules.approve(p, actor, at, comments),
        action="approved",
        actor=actor,
        expected_version=expected_version,
        note=comments,
    )


def reject(*, payroll_id: int, actor: Actor, reason: str,
           expected_version=None, at: Optional[datetime] = None) -> Payroll:
    at = at or utcnow()
    return record_service.transition(
        Payroll, payroll_id,
        lambda p: rules.reject(p, actor, reason, at),
        action="rejected",
        actor=actor,
        expected_version=expected_version,
        note=reason,
    )


def process_payment(*, payroll_id: int, actor: Actor,
                    expected_version=None, at: Optional[datetime] = None) -> Payroll:
    at = at or utcnow()
    return record_service.transition(
        Payroll, payroll_id,
        lambda p: rules.process_payment(p, actor, at),
        action="processed",
        actor=actor,
        expected_version=expected_version,
    )


def mark_as_paid(*, payroll_id: int, actor: Actor, transaction_id: Optional[str] = None,
                 expected_version=None, at: Optional[datetime] = None) -> Payroll:
    at = at or utcnow()
    return record_service.transition(
        Payroll, payroll_id,
        lambda p: rules.mark_as_paid(p, at, transaction_id),
        action="paid",
        actor=actor,
        expected_version=expected_version,
        payload={"transaction_id": transaction_id},
    )


def cancel(*, payroll_id: int, actor: Actor, reason: str,
           expected_version=None, at: Optional[datetime] = None) -> Payroll:
    at = at or utcnow()
    return record_service.transition(
        Payroll, payroll_id,
        lambda p: rules.cancel(p, actor, reason, at),
        action="cancelled",
        actor=actor,
        expected_version=expected_version,
        note=reason,
    )


def add_note(*, payroll_id: int, actor: Actor, note: str,
             expected_version=None, at: Optional[datetime] = None) -> Payroll:
    at = at or utcnow()
    return record_service.transition(
        Payroll, payroll_id,
        lambda p: rules.add_note(p, actor, note, at),
        action="note_added",
        actor=actor,
        expected_version=expected_version,
    )


def list_payrolls(*, status=None, employee_id=None, month_year=None, stall_id=None,
                  include_inactive=False, limit=100, offset=0):
    return record_service.list_rows(
        Payroll,
        filters={
            "status": status,
            "employee_id": employee_id,
            "month_year": month_year,
            "stall_id": stall_id,
        },
        include_inactive=include_inactive,
        limit=limit,
        offset=offset,
    )


def monthly_total(month_year: str) -> rules.MonthlyTotal:
    payrolls = RecordRepository(Payroll).records(filters={"month_year": month_year})
    return rules.monthly_total(payrolls, month_year)


def top_earners(month_year: str, limit: int = 10) -> list[rules.Payroll]:
    payrolls = RecordRepository(Payroll).records(filters={"month_year": month_year})
    return rules.top_earners(payrolls, month_year, limit)


def delete_payroll(*, payroll_id: int, actor: Actor, expected_version=None) -> Payroll:
    return record_service.soft_delete(Payroll, payroll_id, actor=actor, expected_version=expected_version)
