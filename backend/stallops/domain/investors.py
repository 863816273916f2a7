# Overview: Investor ROI projection, payout ledger and investment status.

"""
Investor ROI / Payout Calculator

ROI projection (calculate_roi):

    gross_profit     = investment_amount * expected_roi/100 * months/basis_months
    expected_return  = gross_profit * profit_share_percentage/100

basis_months is 1 / 3 / 12 for a monthly / quarterly / yearly ROI basis, so
expected_roi is "percent per basis period".

Payout ledger (add_payout):
- entries are appended, never edited or removed
- net_amount = base_profit_amount * share_percentage/100 - tax_deducted
- total_profit_paid always equals the sum of net_amount over the ledger
- next_calculation_date moves one distribution period past the payout date
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from .actors import ActionStamp, Actor, Note, require_actor, require_text
from .errors import ValidationError
from .money import (
    HUNDRED,
    ZERO,
    percentage_of,
    ratio_percentage,
    require_non_negative,
    require_percentage,
    round_money,
    sum_amounts,
    to_decimal,
)
from .records import require_choice
from .workflow import require_status
from ..time_utils import advance_by_frequency


ENTITY = "investor"

STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUS_ON_HOLD = "on-hold"

STATUSES = (STATUS_ACTIVE, STATUS_COMPLETED, STATUS_CANCELLED, STATUS_ON_HOLD)
PAYABLE_STATUSES = (STATUS_ACTIVE, STATUS_COMPLETED)

FREQUENCIES = ("monthly", "quarterly", "yearly")
BASIS_MONTHS = {"monthly": 1, "quarterly": 3, "yearly": 12}
PAYMENT_MODES = ("upi", "bank-transfer", "cash", "cheque")

MINIMUM_INVESTMENT = Decimal("1000")
MIN_SHARE_PERCENTAGE = Decimal("0.1")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MOBILE_RE = re.compile(r"^[6-9]\d{9}$")


@dataclass(frozen=True)
class ContactInfo:
    mobile_number: str
    email: Optional[str] = None
    address: Optional[str] = None

    def __post_init__(self):
        if not MOBILE_RE.match(self.mobile_number):
            raise ValidationError("contact.mobile_number must be a 10 digit mobile number starting with 6-9")
        if self.email is not None and not EMAIL_RE.match(self.email):
            raise ValidationError("contact.email is not a valid email address")


@dataclass(frozen=True)
class PayoutRecord:
    sequence: int
    payout_date: date
    payment_mode: str
    base_profit_amount: Decimal
    share_percentage: Decimal
    tax_deducted: Decimal
    net_amount: Decimal
    paid_by: ActionStamp
    transaction_id: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    remarks: Optional[str] = None
    status: str = "completed"


@dataclass(frozen=True)
class PayoutCommand:
    payout_date: date
    base_profit_amount: Decimal
    payment_mode: str
    share_percentage: Optional[Decimal] = None
    tax_deducted: Decimal = ZERO
    transaction_id: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    remarks: Optional[str] = None

    def __post_init__(self):
        require_non_negative(self.base_profit_amount, "base_profit_amount")
        require_non_negative(self.tax_deducted, "tax_deducted")
        require_choice(self.payment_mode, PAYMENT_MODES, "payment_mode")
        if self.share_percentage is not None:
            require_percentage(self.share_percentage, "share_percentage")
        if self.period_start and self.period_end and self.period_end < self.period_start:
            raise ValidationError("period_end cannot be before period_start")


@dataclass(frozen=True)
class Investor:
    code: str
    name: str
    contact: ContactInfo
    investment_amount: Decimal
    investment_date: date
    profit_share_percentage: Decimal = Decimal("10")
    expected_roi: Decimal = Decimal("15")
    roi_basis: str = "monthly"
    distribution_frequency: str = "monthly"
    payout_records: tuple[PayoutRecord, ...] = ()
    total_profit_paid: Decimal = ZERO
    last_payout_date: Optional[date] = None
    last_calculation_date: Optional[date] = None
    next_calculation_date: Optional[date] = None
    status: str = STATUS_ACTIVE
    status_reason: Optional[str] = None
    stall_id: Optional[str] = None
    notes: tuple[Note, ...] = ()
    is_active: bool = True

    def __post_init__(self):
        require_text(self.code, "code")
        require_text(self.name, "name")
        if to_decimal(self.investment_amount, "investment_amount") < MINIMUM_INVESTMENT:
            raise ValidationError(f"investment_amount must be at least {MINIMUM_INVESTMENT}")
        require_percentage(
            self.profit_share_percentage, "profit_share_percentage", minimum=MIN_SHARE_PERCENTAGE
        )
        require_percentage(self.expected_roi, "expected_roi")
        require_choice(self.roi_basis, FREQUENCIES, "roi_basis")
        require_choice(self.distribution_frequency, FREQUENCIES, "distribution_frequency")
        require_choice(self.status, STATUSES, "status")


@dataclass(frozen=True)
class RoiProjection:
    months: int
    basis_months: int
    gross_profit: Decimal
    period_profit_share: Decimal
    expected_return: Decimal


def initialize_schedule(investor: Investor) -> Investor:
    """First calculation date is one distribution period after the investment date."""
    if investor.next_calculation_date is not None:
        return investor
    return replace(
        investor,
        last_calculation_date=investor.investment_date,
        next_calculation_date=advance_by_frequency(
            investor.investment_date, investor.distribution_frequency
        ),
    )


def calculate_roi(investor: Investor, months: int = 1) -> RoiProjection:
    if isinstance(months, bool) or not isinstance(months, int) or months <= 0:
        raise ValidationError("months must be a positive integer")
    basis = BASIS_MONTHS[investor.roi_basis]
    gross = (
        investor.investment_amount
        * investor.expected_roi / HUNDRED
        * Decimal(months) / Decimal(basis)
    )
    share = percentage_of(gross, investor.profit_share_percentage)
    return RoiProjection(
        months=months,
        basis_months=basis,
        gross_profit=round_money(gross),
        period_profit_share=round_money(share),
        expected_return=round_money(share),
    )


def add_payout(investor: Investor, command: PayoutCommand, actor: Actor, at) -> Investor:
    require_actor(actor)
    require_status(ENTITY, investor.status, "add payout to", PAYABLE_STATUSES)

    share_pct = (
        command.share_percentage
        if command.share_percentage is not None
        else investor.profit_share_percentage
    )
    net = round_money(percentage_of(command.base_profit_amount, share_pct) - command.tax_deducted)
    if net < 0:
        raise ValidationError("tax_deducted exceeds the investor's share of profit")

    record = PayoutRecord(
        sequence=len(investor.payout_records) + 1,
        payout_date=command.payout_date,
        payment_mode=command.payment_mode,
        base_profit_amount=to_decimal(command.base_profit_amount),
        share_percentage=to_decimal(share_pct),
        tax_deducted=to_decimal(command.tax_deducted),
        net_amount=net,
        paid_by=ActionStamp.of(actor, at),
        transaction_id=command.transaction_id,
        period_start=command.period_start,
        period_end=command.period_end,
        remarks=command.remarks,
    )
    return replace(
        investor,
        payout_records=investor.payout_records + (record,),
        total_profit_paid=investor.total_profit_paid + net,
        last_payout_date=command.payout_date,
        last_calculation_date=command.payout_date,
        next_calculation_date=advance_by_frequency(
            command.payout_date, investor.distribution_frequency
        ),
    )


def ledger_total(investor: Investor) -> Decimal:
    return sum_amounts(p.net_amount for p in investor.payout_records)


def total_profit_due(investor: Investor) -> Decimal:
    expected = percentage_of(investor.investment_amount, investor.expected_roi)
    return max(ZERO, round_money(expected - investor.total_profit_paid))


def actual_roi_percentage(investor: Investor) -> Decimal:
    return ratio_percentage(investor.total_profit_paid, investor.investment_amount)


def current_value(investor: Investor) -> Decimal:
    return investor.investment_amount + investor.total_profit_paid


def payouts_due(investors: Iterable[Investor], today: date) -> list[Investor]:
    return [
        inv for inv in investors
        if inv.is_active
        and inv.status == STATUS_ACTIVE
        and inv.next_calculation_date is not None
        and inv.next_calculation_date <= today
    ]


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------

def put_on_hold(investor: Investor, reason: str) -> Investor:
    reason = require_text(reason, "reason")
    require_status(ENTITY, investor.status, "put on hold", (STATUS_ACTIVE,))
    return replace(investor, status=STATUS_ON_HOLD, status_reason=reason)


def resume(investor: Investor) -> Investor:
    require_status(ENTITY, investor.status, "resume", (STATUS_ON_HOLD,))
    return replace(investor, status=STATUS_ACTIVE, status_reason=None)


def complete(investor: Investor) -> Investor:
    require_status(ENTITY, investor.status, "complete", (STATUS_ACTIVE, STATUS_ON_HOLD))
    return replace(investor, status=STATUS_COMPLETED)


def cancel(investor: Investor, reason: str) -> Investor:
    reason = require_text(reason, "reason")
    require_status(ENTITY, investor.status, "cancel", (STATUS_ACTIVE, STATUS_ON_HOLD))
    return replace(investor, status=STATUS_CANCELLED, status_reason=reason)


def add_note(investor: Investor, actor: Actor, note: str, at: datetime) -> Investor:
    """Internal notes stay on the investor whatever its status."""
    require_actor(actor)
    note = require_text(note, "note")
    entry = Note(note=note, added_by=actor.user_name, added_at=at)
    return replace(investor, notes=investor.notes + (entry,))
