# Overview: Payroll salary computation and the payroll approval workflow.

"""
Payroll Calculator

calculate_all() re-derives every computed figure from the inputs on the record;
stored derived values are never trusted as inputs, so the function is
idempotent.

    total_allowances   = sum(allowances)
    gross_salary       = base_salary + total_allowances
    total_leave_days   = paid + unpaid + sick + casual
    absent_days        = working - present - total_leave - holidays   (>= 0 or ValidationError)
    leave_deduction    = (unpaid + absent) * base_salary / working
    overtime_amount    = overtime_hours * overtime_rate
    total_deductions   = leave_deduction + fine + advance + loan + professional_tax
                         + pf + esi + tds + other
    net_payable_salary = max(0, gross + overtime + weekend_work + total_bonus - total_deductions)
    final_payment      = net_payable_salary rounded to the nearest `round_off_step`
    round_off_amount   = final_payment - net_payable_salary

Lifecycle:

    draft --submit--> pending-approval --approve--> approved --process--> processed --pay--> paid
      \\___________________approve______________/        \\_______________pay______________/
    pending-approval --reject--> draft
    any non-terminal state --cancel--> cancelled

Salary components may only be revised while draft or pending-approval.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from .actors import ActionStamp, Actor, Note, require_actor, require_text
from .errors import InvalidStateTransition, ValidationError
from .money import (
    HUNDRED,
    ZERO,
    ratio_percentage,
    require_non_negative,
    round_money,
    round_to_step,
    sum_amounts,
)
from .records import require_choice
from .workflow import require_status
from ..time_utils import month_year_label


ENTITY = "payroll"

STATUS_DRAFT = "draft"
STATUS_PENDING_APPROVAL = "pending-approval"
STATUS_APPROVED = "approved"
STATUS_PROCESSED = "processed"
STATUS_PAID = "paid"
STATUS_CANCELLED = "cancelled"

STATUSES = (
    STATUS_DRAFT,
    STATUS_PENDING_APPROVAL,
    STATUS_APPROVED,
    STATUS_PROCESSED,
    STATUS_PAID,
    STATUS_CANCELLED,
)
TERMINAL_STATUSES = (STATUS_PAID, STATUS_CANCELLED)
EDITABLE_STATUSES = (STATUS_DRAFT, STATUS_PENDING_APPROVAL)
COUNTED_STATUSES = (STATUS_APPROVED, STATUS_PROCESSED, STATUS_PAID)

EMPLOYEE_ROLES = ("manager", "employee", "delivery-person", "chef", "helper")
DEPARTMENTS = ("production", "sales", "delivery", "admin", "kitchen")
PERIOD_TYPES = ("monthly", "weekly", "daily", "hourly")
PAYMENT_METHODS = ("cash", "bank-transfer", "upi", "cheque")
PAYMENT_STATUSES = ("pending", "processing", "paid", "failed", "cancelled")

DEFAULT_ROUND_OFF_STEP = 10


@dataclass(frozen=True)
class EmployeeInfo:
    employee_id: str
    employee_name: str
    designation: str
    role: str
    employee_code: Optional[str] = None
    department: str = "sales"
    joining_date: Optional[date] = None
    stall_id: Optional[str] = None
    stall_name: Optional[str] = None

    def __post_init__(self):
        require_text(self.employee_id, "employee.employee_id")
        require_text(self.employee_name, "employee.employee_name")
        require_text(self.designation, "employee.designation")
        require_choice(self.role, EMPLOYEE_ROLES, "employee.role")
        require_choice(self.department, DEPARTMENTS, "employee.department")


@dataclass(frozen=True)
class SalaryPeriod:
    start_date: date
    end_date: date
    period_type: str = "monthly"
    month_year: Optional[str] = None

    def __post_init__(self):
        require_choice(self.period_type, PERIOD_TYPES, "period.period_type")
        if self.end_date < self.start_date:
            raise ValidationError("period.end_date cannot be before period.start_date")


@dataclass(frozen=True)
class Allowances:
    house_rent: Decimal = ZERO
    transportation: Decimal = ZERO
    food: Decimal = ZERO
    mobile: Decimal = ZERO
    medical: Decimal = ZERO
    special: Decimal = ZERO
    other: Decimal = ZERO

    def total(self) -> Decimal:
        return sum_amounts([
            self.house_rent, self.transportation, self.food, self.mobile,
            self.medical, self.special, self.other,
        ])


@dataclass(frozen=True)
class LeaveBreakdown:
    paid: Decimal = ZERO
    unpaid: Decimal = ZERO
    sick: Decimal = ZERO
    casual: Decimal = ZERO

    def total(self) -> Decimal:
        return sum_amounts([self.paid, self.unpaid, self.sick, self.casual])


@dataclass(frozen=True)
class Attendance:
    total_working_days: Decimal = ZERO
    present_days: Decimal = ZERO
    leave: LeaveBreakdown = field(default_factory=LeaveBreakdown)
    holidays: Decimal = ZERO


@dataclass(frozen=True)
class Overtime:
    hours: Decimal = ZERO
    rate: Decimal = ZERO
    weekend_work_amount: Decimal = ZERO


@dataclass(frozen=True)
class Deductions:
    fine: Decimal = ZERO
    advance: Decimal = ZERO
    loan: Decimal = ZERO
    professional_tax: Decimal = ZERO
    pf: Decimal = ZERO
    esi: Decimal = ZERO
    tds: Decimal = ZERO
    other: Decimal = ZERO

    def total(self) -> Decimal:
        return sum_amounts([
            self.fine, self.advance, self.loan, self.professional_tax,
            self.pf, self.esi, self.tds, self.other,
        ])


@dataclass(frozen=True)
class Bonus:
    performance: Decimal = ZERO
    sales_commission: Decimal = ZERO
    attendance: Decimal = ZERO
    festival: Decimal = ZERO
    other: Decimal = ZERO

    def total(self) -> Decimal:
        return sum_amounts([
            self.performance, self.sales_commission, self.attendance,
            self.festival, self.other,
        ])


@dataclass(frozen=True)
class PayrollTotals:
    total_allowances: Decimal = ZERO
    gross_salary: Decimal = ZERO
    total_leave_days: Decimal = ZERO
    absent_days: Decimal = ZERO
    attendance_percentage: Decimal = ZERO
    leave_deduction: Decimal = ZERO
    overtime_amount: Decimal = ZERO
    total_deductions: Decimal = ZERO
    total_bonus: Decimal = ZERO
    net_payable_salary: Decimal = ZERO
    round_off_amount: Decimal = ZERO
    final_payment: Decimal = ZERO


@dataclass(frozen=True)
class PaymentDetails:
    method: str = "cash"
    payment_status: str = "pending"
    paid_date: Optional[datetime] = None
    transaction_id: Optional[str] = None

    def __post_init__(self):
        require_choice(self.method, PAYMENT_METHODS, "payment.method")
        require_choice(self.payment_status, PAYMENT_STATUSES, "payment.payment_status")


@dataclass(frozen=True)
class Payroll:
    code: str
    employee: EmployeeInfo
    period: SalaryPeriod
    base_salary: Decimal
    allowances: Allowances = field(default_factory=Allowances)
    attendance: Attendance = field(default_factory=Attendance)
    overtime: Overtime = field(default_factory=Overtime)
    deductions: Deductions = field(default_factory=Deductions)
    bonus: Bonus = field(default_factory=Bonus)
    totals: PayrollTotals = field(default_factory=PayrollTotals)
    payment: PaymentDetails = field(default_factory=PaymentDetails)
    status: str = STATUS_DRAFT
    approval: Optional[ActionStamp] = None
    rejection: Optional[ActionStamp] = None
    processed: Optional[ActionStamp] = None
    cancellation: Optional[ActionStamp] = None
    notes: tuple[Note, ...] = ()
    is_active: bool = True

    def __post_init__(self):
        require_text(self.code, "code")
        require_non_negative(self.base_salary, "base_salary")
        require_choice(self.status, STATUSES, "status")
        for group in (self.allowances, self.overtime, self.deductions, self.bonus):
            for name, value in vars(group).items():
                require_non_negative(value, name)
        attendance = self.attendance
        for name in ("total_working_days", "present_days", "holidays"):
            require_non_negative(getattr(attendance, name), f"attendance.{name}")
        for name, value in vars(attendance.leave).items():
            require_non_negative(value, f"attendance.leave.{name}")


# ---------------------------------------------------------------------------
# Calculation
# ---------------------------------------------------------------------------

def calculate_all(payroll: Payroll, round_off_step=DEFAULT_ROUND_OFF_STEP) -> Payroll:
    base = payroll.base_salary
    attendance = payroll.attendance
    working = attendance.total_working_days

    total_allowances = payroll.allowances.total()
    gross = base + total_allowances

    total_leave = attendance.leave.total()
    absent = working - attendance.present_days - total_leave - attendance.holidays
    if absent < 0:
        raise ValidationError(
            "present days, leave days and holidays exceed total working days"
        )

    if working == 0:
        attendance_pct = HUNDRED
        leave_deduction = ZERO
    else:
        attendance_pct = ratio_percentage(attendance.present_days, working)
        leave_deduction = round_money((attendance.leave.unpaid + absent) * base / working)

    overtime_amount = round_money(payroll.overtime.hours * payroll.overtime.rate)
    total_deductions = leave_deduction + payroll.deductions.total()
    total_bonus = payroll.bonus.total()

    net = (
        gross
        + overtime_amount
        + payroll.overtime.weekend_work_amount
        + total_bonus
        - total_deductions
    )
    if net < 0:
        net = ZERO

    final_payment = round_to_step(net, round_off_step)

    totals = PayrollTotals(
        total_allowances=total_allowances,
        gross_salary=gross,
        total_leave_days=total_leave,
        absent_days=absent,
        attendance_percentage=attendance_pct,
        leave_deduction=leave_deduction,
        overtime_amount=overtime_amount,
        total_deductions=total_deductions,
        total_bonus=total_bonus,
        net_payable_salary=net,
        round_off_amount=final_payment - net,
        final_payment=final_payment,
    )

    period = payroll.period
    if not period.month_year:
        period = replace(period, month_year=month_year_label(period.start_date))

    return replace(payroll, totals=totals, period=period)


def ensure_editable(payroll: Payroll) -> None:
    require_status(ENTITY, payroll.status, "revise", EDITABLE_STATUSES)


def revise(current: Payroll, revised: Payroll, round_off_step=DEFAULT_ROUND_OFF_STEP) -> Payroll:
    """Accept new salary components while the record is still open for edits."""
    ensure_editable(current)
    if revised.status != current.status:
        raise ValidationError("status can only change through payroll transitions")
    return calculate_all(revised, round_off_step)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def submit_for_approval(payroll: Payroll) -> Payroll:
    require_status(ENTITY, payroll.status, "submit", (STATUS_DRAFT,))
    return replace(payroll, status=STATUS_PENDING_APPROVAL)


def approve(payroll: Payroll, actor: Actor, at: datetime, comments: Optional[str] = None) -> Payroll:
    require_actor(actor)
    require_status(ENTITY, payroll.status, "approve", (STATUS_DRAFT, STATUS_PENDING_APPROVAL))
    return replace(
        payroll,
        status=STATUS_APPROVED,
        approval=ActionStamp.of(actor, at, comments),
    )


def reject(payroll: Payroll, actor: Actor, reason: str, at: datetime) -> Payroll:
    require_actor(actor)
    reason = require_text(reason, "reason")
    require_status(ENTITY, payroll.status, "reject", (STATUS_PENDING_APPROVAL,))
    return replace(
        payroll,
        status=STATUS_DRAFT,
        rejection=ActionStamp.of(actor, at, reason),
    )


def process_payment(payroll: Payroll, actor: Actor, at: datetime) -> Payroll:
    require_actor(actor)
    require_status(ENTITY, payroll.status, "process payment for", (STATUS_APPROVED,))
    return replace(
        payroll,
        status=STATUS_PROCESSED,
        processed=ActionStamp.of(actor, at),
        payment=replace(payroll.payment, payment_status="processing"),
    )


def mark_as_paid(payroll: Payroll, at: datetime, transaction_id: Optional[str] = None) -> Payroll:
    require_status(ENTITY, payroll.status, "mark as paid", (STATUS_APPROVED, STATUS_PROCESSED))
    payment = replace(
        payroll.payment,
        payment_status="paid",
        paid_date=at,
        transaction_id=transaction_id or payroll.payment.transaction_id,
    )
    return replace(payroll, status=STATUS_PAID, payment=payment)


def cancel(payroll: Payroll, actor: Actor, reason: str, at: datetime) -> Payroll:
    require_actor(actor)
    reason = require_text(reason, "reason")
    if payroll.status in TERMINAL_STATUSES:
        raise InvalidStateTransition(
            ENTITY,
            payroll.status,
            "cancel",
            allowed_from=[s for s in STATUSES if s not in TERMINAL_STATUSES],
        )
    return replace(
        payroll,
        status=STATUS_CANCELLED,
        cancellation=ActionStamp.of(actor, at, reason),
        payment=replace(payroll.payment, payment_status="cancelled"),
    )


def add_note(payroll: Payroll, actor: Actor, note: str, at: datetime) -> Payroll:
    require_actor(actor)
    note = require_text(note, "note")
    entry = Note(note=note, added_by=actor.user_name, added_at=at)
    return replace(payroll, notes=payroll.notes + (entry,))


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MonthlyTotal:
    month_year: str
    employee_count: int
    total_gross_salary: Decimal
    total_deductions: Decimal
    total_bonus: Decimal
    total_net_payable: Decimal
    total_final_payment: Decimal


def monthly_total(payrolls: Iterable[Payroll], month_year: str) -> MonthlyTotal:
    """Roll up approved, processed and paid payrolls for a "January 2026" period."""
    counted = [
        p for p in payrolls
        if p.is_active and p.status in COUNTED_STATUSES and p.period.month_year == month_year
    ]
    return MonthlyTotal(
        month_year=month_year,
        employee_count=len(counted),
        total_gross_salary=sum_amounts(p.totals.gross_salary for p in counted),
        total_deductions=sum_amounts(p.totals.total_deductions for p in counted),
        total_bonus=sum_amounts(p.totals.total_bonus for p in counted),
        total_net_payable=sum_amounts(p.totals.net_payable_salary for p in counted),
        total_final_payment=sum_amounts(p.totals.final_payment for p in counted),
    )


def top_earners(payrolls: Iterable[Payroll], month_year: str, limit: int = 10) -> list[Payroll]:
    counted = [
        p for p in payrolls
        if p.is_active and p.status in COUNTED_STATUSES and p.period.month_year == month_year
    ]
    counted.sort(key=lambda p: p.totals.net_payable_salary, reverse=True)
    return counted[:limit]
