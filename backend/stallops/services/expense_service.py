# Overview: Service-layer operations for expenses; approval workflow, tax figures and recurring schedules.

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from ..models import Expense
from ..domain import expenses as rules
from ..domain.actors import Actor
from ..domain.errors import ValidationError
from ..domain.records import policy
from ..time_utils import utcnow
from . import record_service
from .repository import RecordRepository


EXPENSE_POLICY = policy(
    writable=(
        "code", "expense_type", "amount", "expense_date", "category",
        "description", "tax", "payment", "recurring", "stall_id",
        "department", "tags",
    ),
    required=("code", "expense_type", "amount", "expense_date"),
)


def _keep_server_state(current: rules.Expense, revised: rules.Expense) -> rules.Expense:
    """Payment date/transaction and occurrence count are set by transitions and the scheduler only."""
    payment = replace(
        revised.payment,
        payment_date=current.payment.payment_date,
        transaction_id=current.payment.transaction_id,
    )
    recurring = replace(
        revised.recurring,
        completed_occurrences=current.recurring.completed_occurrences,
    )
    return replace(revised, payment=payment, recurring=recurring)


def create_expense(*, payload, actor: Actor) -> Expense:
    expense = record_service.build_from_payload(Expense, payload, EXPENSE_POLICY)
    blank = rules.Expense(
        code=expense.code,
        expense_type=expense.expense_type,
        amount=expense.amount,
        expense_date=expense.expense_date,
    )
    expense = rules.prepare(_keep_server_state(blank, expense))
    return record_service.create(Expense, expense, actor=actor)


def update_expense(*, expense_id: int, payload, actor: Actor, expected_version=None) -> Expense:
    def revise(current, revised):
        rules.ensure_editable(current)
        return rules.prepare(_keep_server_state(current, revised))

    return record_service.update(
        Expense, expense_id, payload,
        policy=EXPENSE_POLICY,
        actor=actor,
        revise=revise,
        expected_version=expected_version,
    )


def submit(*, expense_id: int, actor: Actor, expected_version=None) -> Expense:
    return record_service.transition(
        Expense, expense_id,
        rules.submit,
        action="submitted",
        actor=actor,
        expected_version=expected_version,
    )


def approve(*, expense_id: int, actor: Actor, comments: Optional[str] = None,
            expected_version=None, at: Optional[datetime] = None) -> Expense:
    at = at or utcnow()
    return record_service.transition(
        Expense, expense_id,
        lambda e: rules.approve(e, actor, at, comments),
        action="approved",
        actor=actor,
        expected_version=expected_version,
        note=comments,
    )


def reject(*, expense_id: int, actor: Actor, reason: str,
           expected_version=None, at: Optional[datetime] = None) -> Expense:
    at = at or utcnow()
    return record_service.transition(
        Expense, expense_id,
        lambda e: rules.reject(e, actor, reason, at),
        action="rejected",
        actor=actor,
        expected_version=expected_version,
        note=reason,
    )


def mark_as_paid(*, expense_id: int, actor: Actor, transaction_id: Optional[str] = None,
                 expected_version=None, at: Optional[datetime] = None) -> Expense:
    at = at or utcnow()
    return record_service.transition(
        Expense, expense_id,
        lambda e: rules.mark_as_paid(e, at, transaction_id),
        action="paid",
        actor=actor,
        expected_version=expected_version,
        payload={"transaction_id": transaction_id},
    )


def cancel(*, expense_id: int, actor: Actor, reason: Optional[str] = None,
           expected_version=None, at: Optional[datetime] = None) -> Expense:
    at = at or utcnow()
    return record_service.transition(
        Expense, expense_id,
        lambda e: rules.cancel(e, actor, at, reason),
        action="cancelled",
        actor=actor,
        expected_version=expected_version,
        note=reason,
    )


def add_note(*, expense_id: int, actor: Actor, note: str,
             expected_version=None, at: Optional[datetime] = None) -> Expense:
    at = at or utcnow()
    return record_service.transition(
        Expense, expense_id,
        lambda e: rules.add_note(e, actor, note, at),
        action="note_added",
        actor=actor,
        expected_version=expected_version,
    )


def _date_range(start: Optional[date], end: Optional[date]):
    criteria = []
    if start is not None:
        criteria.append(Expense.expense_date >= start)
    if end is not None:
        criteria.append(Expense.expense_date <= end)
    return criteria


def list_expenses(*, status=None, expense_type=None, stall_id=None, start=None, end=None,
                  include_inactive=False, limit=100, offset=0):
    return record_service.list_rows(
        Expense,
        filters={"status": status, "expense_type": expense_type, "stall_id": stall_id},
        criteria=_date_range(start, end),
        include_inactive=include_inactive,
        order_by=Expense.expense_date.desc(),
        limit=limit,
        offset=offset,
    )


def _require_range(start: date, end: date) -> None:
    if start is None or end is None:
        raise ValidationError("start and end dates are required")
    if end < start:
        raise ValidationError("end cannot be before start")


def total_paid(*, start: date, end: date, stall_id=None) -> rules.ExpenseTotal:
    _require_range(start, end)
    expenses = RecordRepository(Expense).records(
        filters={"stall_id": stall_id, "status": rules.STATUS_PAID},
        criteria=_date_range(start, end),
    )
    return rules.total_paid(expenses, start, end)


def breakdown_by_type(*, start: date, end: date, stall_id=None) -> list[dict]:
    _require_range(start, end)
    expenses = RecordRepository(Expense).records(
        filters={"stall_id": stall_id},
        criteria=_date_range(start, end),
    )
    return rules.breakdown_by_type(expenses, start, end)


def due_recurring(today: Optional[date] = None) -> list[Expense]:
    """Recurring expenses whose next due date has arrived and whose schedule has not ended."""
    today = today or utcnow().date()
    rows, _ = record_service.list_rows(
        Expense,
        filters={"is_recurring": True},
        criteria=(Expense.next_due_date <= today,),
        order_by=Expense.next_due_date.asc(),
        limit=None,
    )
    return [row for row in rows if rules.is_recurrence_due(row.to_record(), today)]


def advance_recurring(*, expense_id: int, actor: Optional[Actor] = None, expected_version=None) -> Expense:
    return record_service.transition(
        Expense, expense_id,
        rules.advance_recurrence,
        action="recurrence_advanced",
        actor=actor,
        expected_version=expected_version,
    )


def delete_expense(*, expense_id: int, actor: Actor, expected_version=None) -> Expense:
    return record_service.soft_delete(Expense, expense_id, actor=actor, expected_version=expected_version)
