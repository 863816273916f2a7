# Overview: Profit/loss roll-up for a reporting period and its owner/investor distribution.

"""
Profit/Loss Aggregator

    gross_revenue   = total_sales - total_discount_given
    net_revenue     = gross_revenue - refunds_given
    total_cost      = total_expenses + cogs
    gross_profit    = gross_revenue - total_cost
    net_profit_loss = gross_profit - operating_expenses - tax_payable
    margin %        = net_profit_loss / gross_revenue * 100   (0 when gross_revenue is 0)

Distribution: owner and investor shares are re-derived from their percentages
on every calculation; retained_earnings is whatever is left of net.

Report lifecycle: draft -> finalized -> approved -> published. Only a draft
report can be recalculated or have its investor shares changed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from .actors import ActionStamp, Actor, Note, require_actor, require_text
from .errors import NotFound, ValidationError
from .money import (
    HUNDRED,
    ZERO,
    ratio_percentage,
    require_non_negative,
    require_percentage,
    round_money,
    split_by_percentages,
    sum_amounts,
)
from .records import require_choice
from .workflow import require_status


ENTITY = "profit/loss report"

# distribution key for the owner share (investor shares are keyed by investor code)
OWNER_KEY = "owner"

STATUS_DRAFT = "draft"
STATUS_FINALIZED = "finalized"
STATUS_APPROVED = "approved"
STATUS_PUBLISHED = "published"

STATUSES = (STATUS_DRAFT, STATUS_FINALIZED, STATUS_APPROVED, STATUS_PUBLISHED)
REPORTED_STATUSES = (STATUS_APPROVED, STATUS_PUBLISHED)

PERIOD_TYPES = ("daily", "weekly", "monthly", "quarterly", "yearly", "custom")

RESULT_PROFIT = "profit"
RESULT_LOSS = "loss"
RESULT_BREAKEVEN = "breakeven"

DEFAULT_OWNER_SHARE = Decimal("70")


@dataclass(frozen=True)
class Revenue:
    total_sales: Decimal = ZERO
    cash_sales: Decimal = ZERO
    card_sales: Decimal = ZERO
    upi_sales: Decimal = ZERO
    online_sales: Decimal = ZERO
    other_income: Decimal = ZERO


@dataclass(frozen=True)
class ExpenseLine:
    expense_type: str
    amount: Decimal


@dataclass(frozen=True)
class ExpenseFigures:
    total_expenses: Decimal = ZERO
    fixed_expenses: Decimal = ZERO
    variable_expenses: Decimal = ZERO
    breakdown: tuple[ExpenseLine, ...] = ()


@dataclass(frozen=True)
class SalesDeductions:
    total_discount_given: Decimal = ZERO
    refunds_given: Decimal = ZERO


@dataclass(frozen=True)
class TaxFigures:
    tax_collected: Decimal = ZERO
    tax_payable: Decimal = ZERO


@dataclass(frozen=True)
class Summary:
    gross_revenue: Decimal = ZERO
    net_revenue: Decimal = ZERO
    total_cost: Decimal = ZERO
    gross_profit: Decimal = ZERO
    operating_expenses: Decimal = ZERO
    net_profit_loss: Decimal = ZERO
    profit_margin_percentage: Decimal = ZERO
    status: str = RESULT_BREAKEVEN
    average_order_value: Decimal = ZERO


@dataclass(frozen=True)
class OwnerShare:
    percentage: Decimal = DEFAULT_OWNER_SHARE
    amount: Decimal = ZERO


@dataclass(frozen=True)
class InvestorShare:
    investor_id: str
    investor_name: str
    share_percentage: Decimal
    investment_amount: Decimal = ZERO
    share_amount: Decimal = ZERO
    roi_percentage: Decimal = ZERO

    def __post_init__(self):
        require_text(self.investor_id, "investor_id")
        if self.investor_id == OWNER_KEY:
            raise ValidationError(f"investor_id '{OWNER_KEY}' is reserved for the owner share")
        require_text(self.investor_name, "investor_name")
        require_percentage(self.share_percentage, "share_percentage")
        require_non_negative(self.investment_amount, "investment_amount")


@dataclass(frozen=True)
class Distribution:
    owner_share: OwnerShare = field(default_factory=OwnerShare)
    investor_shares: tuple[InvestorShare, ...] = ()
    total_investor_share: Decimal = ZERO
    retained_earnings: Decimal = ZERO


@dataclass(frozen=True)
class ProfitLossReport:
    code: str
    period_start: date
    period_end: date
    period_type: str = "monthly"
    stall_id: Optional[str] = None
    revenue: Revenue = field(default_factory=Revenue)
    expenses: ExpenseFigures = field(default_factory=ExpenseFigures)
    deductions: SalesDeductions = field(default_factory=SalesDeductions)
    tax: TaxFigures = field(default_factory=TaxFigures)
    cogs: Decimal = ZERO
    operating_expenses: Decimal = ZERO
    total_orders: int = 0
    summary: Summary = field(default_factory=Summary)
    distribution: Distribution = field(default_factory=Distribution)
    status: str = STATUS_DRAFT
    approval: Optional[ActionStamp] = None
    published_at: Optional[datetime] = None
    notes: tuple[Note, ...] = ()
    is_active: bool = True

    def __post_init__(self):
        require_text(self.code, "code")
        require_choice(self.period_type, PERIOD_TYPES, "period_type")
        require_choice(self.status, STATUSES, "status")
        if self.period_end < self.period_start:
            raise ValidationError("period_end cannot be before period_start")
        for name, value in vars(self.revenue).items():
            require_non_negative(value, f"revenue.{name}")
        for name, value in vars(self.deductions).items():
            require_non_negative(value, f"deductions.{name}")
        for name, value in vars(self.tax).items():
            require_non_negative(value, f"tax.{name}")
        require_non_negative(self.expenses.total_expenses, "expenses.total_expenses")
        require_non_negative(self.cogs, "cogs")
        require_non_negative(self.operating_expenses, "operating_expenses")
        if self.total_orders < 0:
            raise ValidationError("total_orders cannot be negative")
        _check_share_total(
            self.distribution.owner_share.percentage,
            [s.share_percentage for s in self.distribution.investor_shares],
        )


def _check_share_total(owner_pct, investor_pcts) -> None:
    require_percentage(owner_pct, "owner_share.percentage")
    if owner_pct + sum_amounts(investor_pcts) > HUNDRED:
        raise ValidationError("Owner and investor share percentages cannot exceed 100 in total")


def _result(net: Decimal) -> str:
    if net > 0:
        return RESULT_PROFIT
    if net < 0:
        return RESULT_LOSS
    return RESULT_BREAKEVEN


def _derive(report: ProfitLossReport) -> ProfitLossReport:
    gross_revenue = report.revenue.total_sales - report.deductions.total_discount_given
    net_revenue = gross_revenue - report.deductions.refunds_given
    total_cost = report.expenses.total_expenses + report.cogs
    gross_profit = gross_revenue - total_cost
    net = gross_profit - report.operating_expenses - report.tax.tax_payable

    if report.total_orders > 0:
        aov = round_money(report.revenue.total_sales / report.total_orders)
    else:
        aov = ZERO

    summary = Summary(
        gross_revenue=gross_revenue,
        net_revenue=net_revenue,
        total_cost=total_cost,
        gross_profit=gross_profit,
        operating_expenses=report.operating_expenses,
        net_profit_loss=net,
        profit_margin_percentage=ratio_percentage(net, gross_revenue),
        status=_result(net),
        average_order_value=aov,
    )

    dist = report.distribution
    percentages = {OWNER_KEY: dist.owner_share.percentage}
    percentages.update({share.investor_id: share.share_percentage for share in dist.investor_shares})
    amounts = split_by_percentages(net, percentages)

    owner = replace(dist.owner_share, amount=amounts[OWNER_KEY])
    shares = []
    for share in dist.investor_shares:
        amount = amounts[share.investor_id]
        shares.append(replace(
            share,
            share_amount=amount,
            roi_percentage=ratio_percentage(amount, share.investment_amount),
        ))
    total_investor = sum_amounts(s.share_amount for s in shares)
    distribution = Distribution(
        owner_share=owner,
        investor_shares=tuple(shares),
        total_investor_share=total_investor,
        retained_earnings=net - owner.amount - total_investor,
    )
    return replace(report, summary=summary, distribution=distribution)


def calculate_all(report: ProfitLossReport) -> ProfitLossReport:
    require_status(ENTITY, report.status, "recalculate", (STATUS_DRAFT,))
    return _derive(report)


def add_investor_share(report: ProfitLossReport, share: InvestorShare) -> ProfitLossReport:
    require_status(ENTITY, report.status, "add an investor share to", (STATUS_DRAFT,))
    existing = report.distribution.investor_shares
    if any(s.investor_id == share.investor_id for s in existing):
        raise ValidationError(f"Investor {share.investor_id} already has a share in this report")
    _check_share_total(
        report.distribution.owner_share.percentage,
        [s.share_percentage for s in existing] + [share.share_percentage],
    )
    distribution = replace(report.distribution, investor_shares=existing + (share,))
    return _derive(replace(report, distribution=distribution))


def remove_investor_share(report: ProfitLossReport, investor_id: str) -> ProfitLossReport:
    require_status(ENTITY, report.status, "remove an investor share from", (STATUS_DRAFT,))
    existing = report.distribution.investor_shares
    remaining = tuple(s for s in existing if s.investor_id != investor_id)
    if len(remaining) == len(existing):
        raise NotFound(f"Investor {investor_id} has no share in report {report.code}")
    distribution = replace(report.distribution, investor_shares=remaining)
    return _derive(replace(report, distribution=distribution))


def finalize(report: ProfitLossReport) -> ProfitLossReport:
    report = calculate_all(report)
    return replace(report, status=STATUS_FINALIZED)


def approve(report: ProfitLossReport, actor: Actor, at: datetime, comments: Optional[str] = None) -> ProfitLossReport:
    require_actor(actor)
    require_status(ENTITY, report.status, "approve", (STATUS_FINALIZED,))
    return replace(report, status=STATUS_APPROVED, approval=ActionStamp.of(actor, at, comments))


def publish(report: ProfitLossReport, at: datetime) -> ProfitLossReport:
    require_status(ENTITY, report.status, "publish", (STATUS_APPROVED,))
    return replace(report, status=STATUS_PUBLISHED, published_at=at)


def add_note(report: ProfitLossReport, actor: Actor, note: str, at: datetime) -> ProfitLossReport:
    require_actor(actor)
    note = require_text(note, "note")
    entry = Note(note=note, added_by=actor.user_name, added_at=at)
    return replace(report, notes=report.notes + (entry,))


@dataclass(frozen=True)
class OverallStats:
    report_count: int
    total_revenue: Decimal
    total_expenses: Decimal
    total_profit: Decimal
    average_profit_margin: Decimal
    total_orders: int
    average_order_value: Decimal
    profit_periods: int
    loss_periods: int


def overall_stats(
    reports: Iterable[ProfitLossReport],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> OverallStats:
    """Totals over approved/published reports whose period lies inside [start, end]."""
    matched = [
        r for r in reports
        if r.is_active
        and r.status in REPORTED_STATUSES
        and (start is None or r.period_start >= start)
        and (end is None or r.period_end <= end)
    ]
    count = len(matched)
    if count == 0:
        return OverallStats(0, ZERO, ZERO, ZERO, ZERO, 0, ZERO, 0, 0)

    total_revenue = sum_amounts(r.revenue.total_sales for r in matched)
    total_orders = sum(r.total_orders for r in matched)
    return OverallStats(
        report_count=count,
        total_revenue=total_revenue,
        total_expenses=sum_amounts(r.expenses.total_expenses for r in matched),
        total_profit=sum_amounts(r.summary.net_profit_loss for r in matched),
        average_profit_margin=round_money(
            sum_amounts(r.summary.profit_margin_percentage for r in matched) / count
        ),
        total_orders=total_orders,
        average_order_value=round_money(
            sum_amounts(r.summary.average_order_value for r in matched) / count
        ),
        profit_periods=sum(1 for r in matched if r.summary.status == RESULT_PROFIT),
        loss_periods=sum(1 for r in matched if r.summary.status == RESULT_LOSS),
    )
