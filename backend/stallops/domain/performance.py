# Overview: Stall performance scoring and the performance report lifecycle.

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from .actors import ActionStamp, Actor, require_actor, require_text
from .errors import ValidationError
from .money import HUNDRED, ZERO, ratio_percentage, require_non_negative, round_money
from .records import require_choice
from .workflow import require_status


ENTITY = "performance report"

STATUS_DRAFT = "draft"
STATUS_SUBMITTED = "submitted"
STATUS_REVIEWED = "reviewed"
STATUS_APPROVED = "approved"
STATUS_ARCHIVED = "archived"

STATUSES = (STATUS_DRAFT, STATUS_SUBMITTED, STATUS_REVIEWED, STATUS_APPROVED, STATUS_ARCHIVED)

PERIODS = ("daily", "weekly", "monthly", "yearly")
ACTION_PRIORITIES = ("low", "medium", "high", "urgent")
ACTION_STATUSES = ("pending", "in-progress", "completed", "cancelled")

# score weights
TARGET_WEIGHT = Decimal("0.4")
RATING_POINTS = Decimal("30")
WASTAGE_POINTS = Decimal("20")
SUCCESS_WEIGHT = Decimal("0.1")

GRADE_BANDS = (
    (Decimal("90"), "A+"),
    (Decimal("80"), "A"),
    (Decimal("70"), "B"),
    (Decimal("60"), "C"),
    (Decimal("50"), "D"),
)


@dataclass(frozen=True)
class SalesFigures:
    sales_amount: Decimal = ZERO
    sales_target: Decimal = ZERO
    total_orders: int = 0
    cancelled_orders: int = 0


@dataclass(frozen=True)
class ComplaintCount:
    complaint: str
    count: int = 1


@dataclass(frozen=True)
class Feedback:
    average_rating: Decimal = ZERO
    total_reviews: int = 0
    complaints: tuple[ComplaintCount, ...] = ()


@dataclass(frozen=True)
class WastageFigures:
    quantity: Decimal = ZERO
    value: Decimal = ZERO


@dataclass(frozen=True)
class PerformanceMetrics:
    target_achievement_percentage: Decimal = ZERO
    wastage_percentage: Decimal = ZERO
    order_success_rate: Decimal = ZERO
    profit_margin_percentage: Decimal = ZERO
    performance_score: Decimal = ZERO
    grade: str = "F"


@dataclass(frozen=True)
class ActionItem:
    action: str
    priority: str = "medium"
    status: str = "pending"
    assigned_to: Optional[str] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None

    def __post_init__(self):
        require_text(self.action, "action")
        require_choice(self.priority, ACTION_PRIORITIES, "priority")
        require_choice(self.status, ACTION_STATUSES, "status")


@dataclass(frozen=True)
class StallPerformance:
    stall_id: str
    stall_name: str
    performance_date: date
    period: str = "daily"
    sales: SalesFigures = field(default_factory=SalesFigures)
    feedback: Feedback = field(default_factory=Feedback)
    wastage: WastageFigures = field(default_factory=WastageFigures)
    metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    week_number: int = 0
    month_number: int = 0
    year_number: int = 0
    status: str = STATUS_DRAFT
    reported_by: Optional[ActionStamp] = None
    reviewed_by: Optional[ActionStamp] = None
    approved_by: Optional[ActionStamp] = None
    action_items: tuple[ActionItem, ...] = ()
    is_active: bool = True

    def __post_init__(self):
        require_text(self.stall_id, "stall_id")
        require_text(self.stall_name, "stall_name")
        require_choice(self.period, PERIODS, "period")
        require_choice(self.status, STATUSES, "status")
        require_non_negative(self.sales.sales_amount, "sales.sales_amount")
        require_non_negative(self.sales.sales_target, "sales.sales_target")
        require_non_negative(self.wastage.quantity, "wastage.quantity")
        require_non_negative(self.wastage.value, "wastage.value")
        if self.sales.total_orders < 0 or self.sales.cancelled_orders < 0:
            raise ValidationError("order counts cannot be negative")
        if self.sales.cancelled_orders > self.sales.total_orders:
            raise ValidationError("sales.cancelled_orders cannot exceed sales.total_orders")
        rating = self.feedback.average_rating
        if rating < 0 or rating > 5:
            raise ValidationError("feedback.average_rating must be between 0 and 5")


def grade_for(score) -> str:
    for floor, grade in GRADE_BANDS:
        if score >= floor:
            return grade
    return "F"


def calculate_score(report: StallPerformance) -> StallPerformance:
    """
    Weighted 0-100 score:
      40% of target achievement %
      + rating/5 * 30
      + max(0, 20 - wastage %)
      + 10% of order success rate
    """
    sales = report.sales
    achievement = ratio_percentage(sales.sales_amount, sales.sales_target)
    wastage_pct = ratio_percentage(report.wastage.value, sales.sales_amount)
    success = ratio_percentage(sales.total_orders - sales.cancelled_orders, sales.total_orders)
    margin = ratio_percentage(sales.sales_amount - report.wastage.value, sales.sales_amount)

    score = (
        achievement * TARGET_WEIGHT
        + report.feedback.average_rating / 5 * RATING_POINTS
        + max(ZERO, WASTAGE_POINTS - wastage_pct)
        + success * SUCCESS_WEIGHT
    )
    score = round_money(min(HUNDRED, max(ZERO, score)))

    metrics = PerformanceMetrics(
        target_achievement_percentage=achievement,
        wastage_percentage=wastage_pct,
        order_success_rate=success,
        profit_margin_percentage=margin,
        performance_score=score,
        grade=grade_for(score),
    )
    day = report.performance_date
    return replace(
        report,
        metrics=metrics,
        week_number=day.isocalendar()[1],
        month_number=day.month,
        year_number=day.year,
    )


def ensure_editable(report: StallPerformance) -> None:
    require_status(ENTITY, report.status, "revise metrics of", (STATUS_DRAFT,))


def add_complaint(report: StallPerformance, complaint: str) -> StallPerformance:
    complaint = require_text(complaint, "complaint")
    ensure_editable(report)
    items = list(report.feedback.complaints)
    for index, existing in enumerate(items):
        if existing.complaint.lower() == complaint.lower():
            items[index] = replace(existing, count=existing.count + 1)
            break
    else:
        items.append(ComplaintCount(complaint=complaint))
    feedback = replace(report.feedback, complaints=tuple(items))
    return replace(report, feedback=feedback)


def add_action_item(report: StallPerformance, item: ActionItem) -> StallPerformance:
    require_status(
        ENTITY, report.status, "add an action item to",
        (STATUS_DRAFT, STATUS_SUBMITTED, STATUS_REVIEWED, STATUS_APPROVED),
    )
    return replace(report, action_items=report.action_items + (item,))


def submit(report: StallPerformance, actor: Actor, at: datetime) -> StallPerformance:
    require_actor(actor)
    require_status(ENTITY, report.status, "submit", (STATUS_DRAFT,))
    report = calculate_score(report)
    return replace(report, status=STATUS_SUBMITTED, reported_by=ActionStamp.of(actor, at))


def review(report: StallPerformance, actor: Actor, at: datetime, comments: Optional[str] = None) -> StallPerformance:
    require_actor(actor)
    require_status(ENTITY, report.status, "review", (STATUS_SUBMITTED,))
    return replace(report, status=STATUS_REVIEWED, reviewed_by=ActionStamp.of(actor, at, comments))


def approve(report: StallPerformance, actor: Actor, at: datetime) -> StallPerformance:
    require_actor(actor)
    require_status(ENTITY, report.status, "approve", (STATUS_REVIEWED,))
    return replace(report, status=STATUS_APPROVED, approved_by=ActionStamp.of(actor, at))


def archive(report: StallPerformance) -> StallPerformance:
    require_status(ENTITY, report.status, "archive", (STATUS_APPROVED,))
    return replace(report, status=STATUS_ARCHIVED)


def top_performing(reports: Iterable[StallPerformance], period: str, limit: int = 10) -> list[StallPerformance]:
    found = [r for r in reports if r.is_active and r.period == period]
    found.sort(key=lambda r: r.metrics.performance_score, reverse=True)
    return found[:limit]


def high_wastage(reports: Iterable[StallPerformance], threshold=Decimal("10"), limit: int = 10) -> list[StallPerformance]:
    found = [r for r in reports if r.is_active and r.metrics.wastage_percentage > threshold]
    found.sort(key=lambda r: r.metrics.wastage_percentage, reverse=True)
    return found[:limit]
