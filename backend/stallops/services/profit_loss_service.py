# Overview: Service-layer operations for profit/loss reports; roll-up, distribution and report lifecycle.

"""
Profit/Loss Service

- Summary and distribution amounts are derived; clients write only the raw
  period figures and the owner share percentage.
- import_expenses() pulls approved and paid expenses for the report period
  (and stall, when the report has one) into the expense figures.
- Investor shares reference investor rows; name and investment amount are
  copied from the investor at the time the share is added.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from flask import current_app

from ..models import Expense, Investor, ProfitLossReport
from ..domain import expenses as expense_rules
from ..domain import profit_loss as rules
from ..domain.actors import Actor
from ..domain.money import sum_amounts, to_decimal
from ..domain.records import policy
from ..time_utils import utcnow
from . import record_service
from .repository import RecordRepository


REPORT_POLICY = policy(
    writable=(
        "code", "period_start", "period_end", "period_type", "stall_id",
        "revenue", "expenses", "deductions", "tax", "cogs",
        "operating_expenses", "total_orders", "owner_share_percentage",
    ),
    required=("code", "period_start", "period_end"),
)

SHARE_POLICY = policy(writable=("investor_id", "share_percentage"), required=("investor_id",))


def _default_owner_share() -> Decimal:
    value = current_app.config.get("DEFAULT_OWNER_SHARE_PERCENTAGE", rules.DEFAULT_OWNER_SHARE)
    return to_decimal(value, "DEFAULT_OWNER_SHARE_PERCENTAGE")


def _with_owner_share(report: rules.ProfitLossReport, percentage) -> rules.ProfitLossReport:
    owner = replace(report.distribution.owner_share, percentage=to_decimal(percentage, "owner_share_percentage"))
    return replace(report, distribution=replace(report.distribution, owner_share=owner))


def create_report(*, payload, actor: Actor) -> ProfitLossReport:
    data = REPORT_POLICY.check(payload, partial=False)
    owner_pct = data.pop("owner_share_percentage", None)
    report = record_service.build_from_payload(ProfitLossReport, data, REPORT_POLICY)
    report = _with_owner_share(report, owner_pct if owner_pct is not None else _default_owner_share())
    report = rules.calculate_all(report)
    return record_service.create(ProfitLossReport, report, actor=actor)


def update_report(*, report_id: int, payload, actor: Actor, expected_version=None) -> ProfitLossReport:
    data = REPORT_POLICY.check(payload, partial=True)
    owner_pct = data.pop("owner_share_percentage", None)

    def revise(current, revised):
        revised = replace(revised, distribution=current.distribution)
        if owner_pct is not None:
            revised = _with_owner_share(revised, owner_pct)
        return rules.calculate_all(revised)

    return record_service.update(
        ProfitLossReport, report_id, data,
        policy=REPORT_POLICY,
        actor=actor,
        revise=revise,
        expected_version=expected_version,
    )


def recalculate(*, report_id: int, actor: Actor, expected_version=None) -> ProfitLossReport:
    return record_service.transition(
        ProfitLossReport, report_id,
        rules.calculate_all,
        action="recalculated",
        actor=actor,
        expected_version=expected_version,
    )


def _expense_figures(report: rules.ProfitLossReport) -> rules.ExpenseFigures:
    criteria = [
        Expense.expense_date >= report.period_start,
        Expense.expense_date <= report.period_end,
    ]
    expenses = [
        e for e in RecordRepository(Expense).records(filters={"stall_id": report.stall_id}, criteria=criteria)
        if e.approval_status == "approved"
    ]
    lines = [
        rules.ExpenseLine(expense_type=row["expense_type"], amount=row["total_amount"])
        for row in expense_rules.breakdown_by_type(expenses, report.period_start, report.period_end)
    ]
    return rules.ExpenseFigures(
        total_expenses=sum_amounts(e.amount for e in expenses),
        fixed_expenses=sum_amounts(e.amount for e in expenses if e.category == "fixed"),
        variable_expenses=sum_amounts(e.amount for e in expenses if e.category == "variable"),
        breakdown=tuple(lines),
    )


def import_expenses(*, report_id: int, actor: Actor, expected_version=None) -> ProfitLossReport:
    def change(report):
        return rules.calculate_all(replace(report, expenses=_expense_figures(report)))

    return record_service.transition(
        ProfitLossReport, report_id,
        change,
        action="expenses_imported",
        actor=actor,
        expected_version=expected_version,
    )


def add_investor_share(*, report_id: int, payload, actor: Actor, expected_version=None) -> ProfitLossReport:
    data = SHARE_POLICY.check(payload, partial=False)
    investor = record_service.get(Investor, data["investor_id"]).to_record()
    percentage = data.get("share_percentage")
    share = rules.InvestorShare(
        investor_id=investor.code,
        investor_name=investor.name,
        share_percentage=to_decimal(
            percentage if percentage is not None else investor.profit_share_percentage,
            "share_percentage",
        ),
        investment_amount=investor.investment_amount,
    )
    return record_service.transition(
        ProfitLossReport, report_id,
        lambda report: rules.add_investor_share(report, share),
        action="investor_share_added",
        actor=actor,
        expected_version=expected_version,
        payload={"investor_id": share.investor_id, "share_percentage": str(share.share_percentage)},
    )


def remove_investor_share(*, report_id: int, investor_code: str, actor: Actor,
                          expected_version=None) -> ProfitLossReport:
    return record_service.transition(
        ProfitLossReport, report_id,
        lambda report: rules.remove_investor_share(report, investor_code),
        action="investor_share_removed",
        actor=actor,
        expected_version=expected_version,
        payload={"investor_id": investor_code},
    )


def finalize(*, report_id: int, actor: Actor, expected_version=None) -> ProfitLossReport:
    return record_service.transition(
        ProfitLossReport, report_id,
        rules.finalize,
        action="finalized",
        actor=actor,
        expected_version=expected_version,
    )


def approve(*, report_id: int, actor: Actor, comments: Optional[str] = None,
            expected_version=None, at: Optional[datetime] = None) -> ProfitLossReport:
    at = at or utcnow()
    return record_service.transition(
        ProfitLossReport, report_id,
        lambda report: rules.approve(report, actor, at, comments),
        action="approved",
        actor=actor,
        expected_version=expected_version,
        note=comments,
    )


def publish(*, report_id: int, actor: Actor, expected_version=None,
            at: Optional[datetime] = None) -> ProfitLossReport:
    at = at or utcnow()
    return record_service.transition(
        ProfitLossReport, report_id,
        lambda report: rules.publish(report, at),
        action="published",
        actor=actor,
        expected_version=expected_version,
    )


def add_note(*, report_id: int, actor: Actor, note: str,
             expected_version=None, at: Optional[datetime] = None) -> ProfitLossReport:
    at = at or utcnow()
    return record_service.transition(
        ProfitLossReport, report_id,
        lambda report: rules.add_note(report, actor, note, at),
        action="note_added",
        actor=actor,
        expected_version=expected_version,
    )


def list_reports(*, status=None, period_type=None, stall_id=None,
                 include_inactive=False, limit=100, offset=0):
    return record_service.list_rows(
        ProfitLossReport,
        filters={"status": status, "period_type": period_type, "stall_id": stall_id},
        include_inactive=include_inactive,
        order_by=ProfitLossReport.period_start.desc(),
        limit=limit,
        offset=offset,
    )


def overall_stats(*, start: Optional[date] = None, end: Optional[date] = None,
                  stall_id=None) -> rules.OverallStats:
    reports = RecordRepository(ProfitLossReport).records(filters={"stall_id": stall_id})
    return rules.overall_stats(reports, start, end)


def delete_report(*, report_id: int, actor: Actor, expected_version=None) -> ProfitLossReport:
    return record_service.soft_delete(ProfitLossReport, report_id, actor=actor, expected_version=expected_version)
