# Overview: Expense approval state machine, tax figures and recurring schedules.

"""
Expense Approval State Machine

One authoritative `status`:

    draft --submit--> submitted
    draft|submitted --approve--> approved --mark_as_paid--> paid
    draft|submitted --reject--> rejected
    draft|submitted|approved --cancel--> cancelled

`approval_status` (pending / approved / rejected / cancelled) is derived from
`status` for clients that still read it; it is never stored separately.

Recurring expenses carry a schedule that only the scheduler job moves forward
(advance_recurrence); paying an expense does not touch the schedule.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from .actors import ActionStamp, Actor, Note, require_actor, require_text
from .errors import ValidationError
from .money import (
    ZERO,
    percentage_of,
    require_non_negative,
    require_percentage,
    round_money,
    sum_amounts,
)
from .records import require_choice
from .workflow import require_status
from ..time_utils import advance_by_frequency


ENTITY = "expense"

STATUS_DRAFT = "draft"
STATUS_SUBMITTED = "submitted"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_PAID = "paid"
STATUS_CANCELLED = "cancelled"

STATUSES = (
    STATUS_DRAFT,
    STATUS_SUBMITTED,
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_PAID,
    STATUS_CANCELLED,
)

APPROVAL_STATUS_BY_STATUS = {
    STATUS_DRAFT: "pending",
    STATUS_SUBMITTED: "pending",
    STATUS_APPROVED: "approved",
    STATUS_PAID: "approved",
    STATUS_REJECTED: "rejected",
    STATUS_CANCELLED: "cancelled",
}

EXPENSE_TYPES = (
    "raw-material",
    "salary",
    "rent",
    "utilities",
    "marketing",
    "maintenance",
    "transportation",
    "packaging",
    "license-fee",
    "insurance",
    "tax",
    "loan-payment",
    "equipment",
    "repair",
    "miscellaneous",
)
CATEGORIES = ("fixed", "variable")
PAYMENT_MODES = ("cash", "upi", "bank-transfer", "cheque", "card")
FREQUENCIES = ("daily", "weekly", "monthly", "quarterly", "yearly")
DEPARTMENTS = ("production", "sales", "delivery", "admin", "marketing", "kitchen")


@dataclass(frozen=True)
class TaxDetails:
    tax_included: bool = False
    tax_percentage: Decimal = ZERO
    tax_amount: Decimal = ZERO
    gst_number: Optional[str] = None

    def __post_init__(self):
        require_percentage(self.tax_percentage, "tax.tax_percentage")
        require_non_negative(self.tax_amount, "tax.tax_amount")


@dataclass(frozen=True)
class ExpensePayment:
    paid_to: Optional[str] = None
    mode: str = "cash"
    transaction_id: Optional[str] = None
    payment_date: Optional[datetime] = None

    def __post_init__(self):
        require_choice(self.mode, PAYMENT_MODES, "payment.mode")


@dataclass(frozen=True)
class RecurringSchedule:
    is_recurring: bool = False
    frequency: str = "monthly"
    next_due_date: Optional[date] = None
    end_date: Optional[date] = None
    total_occurrences: Optional[int] = None
    completed_occurrences: int = 0

    def __post_init__(self):
        require_choice(self.frequency, FREQUENCIES, "recurring.frequency")
        if self.total_occurrences is not None and self.total_occurrences < 0:
            raise ValidationError("recurring.total_occurrences cannot be negative")
        if self.completed_occurrences < 0:
            raise ValidationError("recurring.completed_occurrences cannot be negative")


@dataclass(frozen=True)
class Expense:
    code: str
    expense_type: str
    amount: Decimal
    expense_date: date
    category: str = "variable"
    description: Optional[str] = None
    tax: TaxDetails = field(default_factory=TaxDetails)
    payment: ExpensePayment = field(default_factory=ExpensePayment)
    recurring: RecurringSchedule = field(default_factory=RecurringSchedule)
    stall_id: Optional[str] = None
    department: Optional[str] = None
    tags: tuple[str, ...] = ()
    status: str = STATUS_DRAFT
    approval: Optional[ActionStamp] = None
    rejection_reason: Optional[str] = None
    cancellation: Optional[ActionStamp] = None
    notes: tuple[Note, ...] = ()
    is_active: bool = True

    def __post_init__(self):
        require_text(self.code, "code")
        require_choice(self.expense_type, EXPENSE_TYPES, "expense_type")
        require_choice(self.category, CATEGORIES, "category")
        require_non_negative(self.amount, "amount")
        require_choice(self.status, STATUSES, "status")
        if self.department is not None:
            require_choice(self.department, DEPARTMENTS, "department")
        if self.description is not None and len(self.description) > 500:
            raise ValidationError("description cannot exceed 500 characters")

    @property
    def approval_status(self) -> str:
        return APPROVAL_STATUS_BY_STATUS[self.status]


# ---------------------------------------------------------------------------
# Figures
# ---------------------------------------------------------------------------

def calculate_tax(expense: Expense) -> Expense:
    """Derive tax_amount from tax_percentage; an explicit amount stands when no percentage is set."""
    if expense.tax.tax_percentage > 0:
        amount = round_money(percentage_of(expense.amount, expense.tax.tax_percentage))
        return replace(expense, tax=replace(expense.tax, tax_amount=amount))
    return expense


def total_amount_with_tax(expense: Expense) -> Decimal:
    if expense.tax.tax_included:
        return expense.amount
    return expense.amount + expense.tax.tax_amount


def base_amount(expense: Expense) -> Decimal:
    if expense.tax.tax_included and expense.tax.tax_amount > 0:
        return expense.amount - expense.tax.tax_amount
    return expense.amount


def prepare(expense: Expense) -> Expense:
    """Run on create/revise: tax derivation and the first recurring due date."""
    expense = calculate_tax(expense)
    schedule = expense.recurring
    if schedule.is_recurring and schedule.next_due_date is None:
        schedule = replace(
            schedule,
            next_due_date=advance_by_frequency(expense.expense_date, schedule.frequency),
        )
        expense = replace(expense, recurring=schedule)
    return expense


def ensure_editable(expense: Expense) -> None:
    require_status(ENTITY, expense.status, "revise", (STATUS_DRAFT, STATUS_SUBMITTED))


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def submit(expense: Expense) -> Expense:
    require_status(ENTITY, expense.status, "submit", (STATUS_DRAFT,))
    return replace(expense, status=STATUS_SUBMITTED)


def approve(expense: Expense, actor: Actor, at: datetime, comments: Optional[str] = None) -> Expense:
    require_actor(actor)
    require_status(ENTITY, expense.status, "approve", (STATUS_DRAFT, STATUS_SUBMITTED))
    return replace(
        expense,
        status=STATUS_APPROVED,
        approval=ActionStamp.of(actor, at, comments),
    )


def reject(expense: Expense, actor: Actor, reason: str, at: datetime) -> Expense:
    require_actor(actor)
    reason = require_text(reason, "reason")
    require_status(ENTITY, expense.status, "reject", (STATUS_DRAFT, STATUS_SUBMITTED))
    return replace(
        expense,
        status=STATUS_REJECTED,
        approval=ActionStamp.of(actor, at),
        rejection_reason=reason,
    )


def mark_as_paid(expense: Expense, at: datetime, transaction_id: Optional[str] = None) -> Expense:
    require_status(ENTITY, expense.status, "mark as paid", (STATUS_APPROVED,))
    payment = replace(
        expense.payment,
        payment_date=at,
        transaction_id=transaction_id or expense.payment.transaction_id,
    )
    return replace(expense, status=STATUS_PAID, payment=payment)


def cancel(expense: Expense, actor: Actor, at: datetime, reason: Optional[str] = None) -> Expense:
    require_actor(actor)
    require_status(
        ENTITY, expense.status, "cancel", (STATUS_DRAFT, STATUS_SUBMITTED, STATUS_APPROVED)
    )
    return replace(
        expense,
        status=STATUS_CANCELLED,
        cancellation=ActionStamp.of(actor, at, reason),
    )


def add_note(expense: Expense, actor: Actor, note: str, at: datetime) -> Expense:
    require_actor(actor)
    note = require_text(note, "note")
    entry = Note(note=note, added_by=actor.user_name, added_at=at)
    return replace(expense, notes=expense.notes + (entry,))


# ---------------------------------------------------------------------------
# Recurring schedule (driven by the scheduler job)
# ---------------------------------------------------------------------------

def recurrence_finished(expense: Expense) -> bool:
    schedule = expense.recurring
    if schedule.total_occurrences is not None and schedule.completed_occurrences >= schedule.total_occurrences:
        return True
    if schedule.end_date is not None and schedule.next_due_date is not None:
        return schedule.next_due_date > schedule.end_date
    return False


def is_recurrence_due(expense: Expense, today: date) -> bool:
    schedule = expense.recurring
    return (
        expense.is_active
        and schedule.is_recurring
        and expense.status not in (STATUS_CANCELLED, STATUS_REJECTED)
        and schedule.next_due_date is not None
        and schedule.next_due_date <= today
        and not recurrence_finished(expense)
    )


def advance_recurrence(expense: Expense) -> Expense:
    """Count one occurrence and move next_due_date one frequency period forward."""
    schedule = expense.recurring
    if not schedule.is_recurring:
        raise ValidationError(f"Expense {expense.code} is not recurring")
    if schedule.next_due_date is None:
        raise ValidationError(f"Expense {expense.code} has no next due date")
    if recurrence_finished(expense):
        raise ValidationError(f"Recurring schedule for expense {expense.code} has ended")
    schedule = replace(
        schedule,
        next_due_date=advance_by_frequency(schedule.next_due_date, schedule.frequency),
        completed_occurrences=schedule.completed_occurrences + 1,
    )
    return replace(expense, recurring=schedule)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExpenseTotal:
    total_expense: Decimal
    total_tax: Decimal
    count: int


def total_paid(expenses: Iterable[Expense], start: date, end: date) -> ExpenseTotal:
    matched = [
        e for e in expenses
        if e.is_active and e.status == STATUS_PAID and start <= e.expense_date <= end
    ]
    return ExpenseTotal(
        total_expense=sum_amounts(e.amount for e in matched),
        total_tax=sum_amounts(e.tax.tax_amount for e in matched),
        count=len(matched),
    )


def breakdown_by_type(expenses: Iterable[Expense], start: date, end: date) -> list[dict]:
    """Approved (and paid) spend per expense type, largest first."""
    groups: dict[str, list[Decimal]] = {}
    for e in expenses:
        if not e.is_active or e.approval_status != "approved":
            continue
        if not (start <= e.expense_date <= end):
            continue
        groups.setdefault(e.expense_type, []).append(e.amount)

    rows = []
    for expense_type, amounts in groups.items():
        total = sum_amounts(amounts)
        rows.append({
            "expense_type": expense_type,
            "total_amount": total,
            "count": len(amounts),
            "average_amount": round_money(total / len(amounts)),
        })
    rows.sort(key=lambda r: r["total_amount"], reverse=True)
    return rows
