# Overview: Delivery-zone charge, ETA and peak-hour rules plus delivery-person bookkeeping.

"""
Delivery Zone Rules

Charge algorithm (calculate_delivery_charge):
1. free_delivery_above > 0 and order_amount >= free_delivery_above -> 0
2. otherwise base_charge + per_km_charge * distance_km
3. surge_multiplier applied when surge is enabled and `at` is a peak hour
4. rounded to whole currency units, half up

Peak windows are "HH:MM" strings compared inclusively. A window whose end is
earlier than its start (e.g. 22:00-01:00) wraps past midnight and is matched
against the weekday of `at`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from .errors import NotFound, ValidationError
from .money import (
    ZERO,
    ratio_percentage,
    require_non_negative,
    round_half_up,
    round_money,
    to_decimal,
)
from .records import require_choice
from ..time_utils import WEEKDAY_NAMES, weekday_name


ZONE_CODE_RE = re.compile(r"^ZONE-[A-Z0-9]{4,8}$")
PIN_CODE_RE = re.compile(r"^\d{6}$")
HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
MOBILE_RE = re.compile(r"^[6-9]\d{9}$")

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
STATUS_TEMPORARILY_UNAVAILABLE = "temporarily-unavailable"
STATUS_UNDER_MAINTENANCE = "under-maintenance"

OPERATIONAL_STATUSES = (
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    STATUS_TEMPORARILY_UNAVAILABLE,
    STATUS_UNDER_MAINTENANCE,
)

PEAK_DAYS = WEEKDAY_NAMES + ("all",)
VEHICLE_TYPES = ("bicycle", "bike", "scooter", "car", "other")

MIN_MAX_DISTANCE_KM = Decimal("0.5")
MAX_MAX_DISTANCE_KM = Decimal("50")


@dataclass(frozen=True)
class Locality:
    name: str
    pin_code: Optional[str] = None
    area: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValidationError("locality name is required")
        if self.pin_code is not None and not PIN_CODE_RE.match(self.pin_code):
            raise ValidationError("pin_code must be 6 digits")


@dataclass(frozen=True)
class ChargeRules:
    base_charge: Decimal = ZERO
    per_km_charge: Decimal = ZERO
    free_delivery_above: Decimal = ZERO
    surge_enabled: bool = False
    surge_multiplier: Decimal = Decimal("1.5")

    def __post_init__(self):
        require_non_negative(self.base_charge, "charge.base_charge")
        require_non_negative(self.per_km_charge, "charge.per_km_charge")
        require_non_negative(self.free_delivery_above, "charge.free_delivery_above")
        if to_decimal(self.surge_multiplier) < 1:
            raise ValidationError("charge.surge_multiplier must be at least 1")


@dataclass(frozen=True)
class EstimatedTime:
    min_minutes: int = 20
    max_minutes: int = 40

    def __post_init__(self):
        if self.min_minutes < 10:
            raise ValidationError("estimated_time.min_minutes must be at least 10")
        if self.max_minutes < 15:
            raise ValidationError("estimated_time.max_minutes must be at least 15")
        if self.max_minutes < self.min_minutes:
            raise ValidationError("estimated_time.max_minutes cannot be below min_minutes")


@dataclass(frozen=True)
class PeakWindow:
    day_of_week: str
    start_time: str
    end_time: str
    extra_delay_minutes: int = 10
    delay_note: Optional[str] = None

    def __post_init__(self):
        require_choice(self.day_of_week, PEAK_DAYS, "day_of_week")
        for name in ("start_time", "end_time"):
            if not HHMM_RE.match(getattr(self, name)):
                raise ValidationError(f"{name} must be HH:MM (24-hour)")
        if self.extra_delay_minutes < 0:
            raise ValidationError("extra_delay_minutes cannot be negative")

    def matches(self, at: datetime) -> bool:
        if self.day_of_week != "all" and self.day_of_week != weekday_name(at):
            return False
        current = at.strftime("%H:%M")
        if self.start_time <= self.end_time:
            return self.start_time <= current <= self.end_time
        # wraps past midnight
        return current >= self.start_time or current <= self.end_time


@dataclass(frozen=True)
class PersonPerformance:
    total_deliveries: int = 0
    successful_deliveries: int = 0
    rated_deliveries: int = 0
    average_rating: Decimal = ZERO
    timed_deliveries: int = 0
    average_delivery_time: Decimal = ZERO


@dataclass(frozen=True)
class DeliveryPerson:
    person_id: str
    person_name: str
    contact_number: str
    vehicle_type: str = "bike"
    vehicle_number: Optional[str] = None
    is_available: bool = True
    assigned_at: Optional[datetime] = None
    performance: PersonPerformance = field(default_factory=PersonPerformance)

    def __post_init__(self):
        if not self.person_id:
            raise ValidationError("person_id is required")
        if not self.person_name:
            raise ValidationError("person_name is required")
        if not MOBILE_RE.match(self.contact_number):
            raise ValidationError("contact_number must be a 10 digit mobile number starting with 6-9")
        require_choice(self.vehicle_type, VEHICLE_TYPES, "vehicle_type")


@dataclass(frozen=True)
class ZonePerformance:
    total_orders: int = 0
    successful_deliveries: int = 0
    failed_deliveries: int = 0
    timed_deliveries: int = 0
    average_delivery_time: Decimal = ZERO
    rated_deliveries: int = 0
    average_rating: Decimal = ZERO
    monthly_revenue: Decimal = ZERO
    monthly_delivery_charges: Decimal = ZERO


@dataclass(frozen=True)
class DeliveryZone:
    code: str
    name: str
    max_distance_km: Decimal
    charge: ChargeRules = field(default_factory=ChargeRules)
    minimum_order_amount: Decimal = ZERO
    estimated_time: EstimatedTime = field(default_factory=EstimatedTime)
    localities: tuple[Locality, ...] = ()
    peak_hours: tuple[PeakWindow, ...] = ()
    delivery_persons: tuple[DeliveryPerson, ...] = ()
    performance: ZonePerformance = field(default_factory=ZonePerformance)
    operational_status: str = STATUS_ACTIVE
    stall_id: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True

    def __post_init__(self):
        if not ZONE_CODE_RE.match(self.code):
            raise ValidationError("code must look like ZONE-XXXX (4-8 uppercase letters/digits)")
        if not self.name:
            raise ValidationError("name is required")
        if len(self.name) > 100:
            raise ValidationError("name cannot exceed 100 characters")
        distance = to_decimal(self.max_distance_km, "max_distance_km")
        if distance < MIN_MAX_DISTANCE_KM or distance > MAX_MAX_DISTANCE_KM:
            raise ValidationError("max_distance_km must be between 0.5 and 50")
        require_non_negative(self.minimum_order_amount, "minimum_order_amount")
        require_choice(self.operational_status, OPERATIONAL_STATUSES, "operational_status")


@dataclass(frozen=True)
class DeliveryQuote:
    serviceable: bool
    charge: Decimal
    min_minutes: int
    max_minutes: int
    is_peak_hour: bool
    free_delivery: bool
    reasons: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Pricing / timing
# ---------------------------------------------------------------------------

def _peak_window(zone: DeliveryZone, at: datetime) -> Optional[PeakWindow]:
    for window in zone.peak_hours:
        if window.matches(at):
            return window
    return None


def is_peak_hour(zone: DeliveryZone, at: datetime) -> bool:
    return _peak_window(zone, at) is not None


def calculate_delivery_charge(zone: DeliveryZone, order_amount, distance_km, at: datetime) -> Decimal:
    amount = require_non_negative(order_amount, "order_amount")
    distance = require_non_negative(distance_km, "distance_km")
    rules = zone.charge

    if rules.free_delivery_above > 0 and amount >= rules.free_delivery_above:
        return ZERO

    charge = rules.base_charge + rules.per_km_charge * distance
    if rules.surge_enabled and is_peak_hour(zone, at):
        charge = charge * rules.surge_multiplier

    return round_half_up(charge, 0)


def estimate_delivery_time(zone: DeliveryZone, at: datetime) -> tuple[int, int]:
    """(min, max) minutes, widened by the first matching peak window's delay."""
    low = zone.estimated_time.min_minutes
    high = zone.estimated_time.max_minutes
    window = _peak_window(zone, at)
    if window is not None:
        low += window.extra_delay_minutes
        high += window.extra_delay_minutes
    return low, high


def quote_delivery(zone: DeliveryZone, order_amount, distance_km, at: datetime) -> DeliveryQuote:
    """
    Price an order for this zone and say whether the zone can take it.

    Non-serviceable orders still get a quote so callers can show why; each
    failed check adds a reason.
    """
    amount = require_non_negative(order_amount, "order_amount")
    distance = require_non_negative(distance_km, "distance_km")

    reasons = []
    if not zone.is_active or zone.operational_status != STATUS_ACTIVE:
        reasons.append(f"Zone is {zone.operational_status if zone.is_active else 'deleted'}")
    if amount < zone.minimum_order_amount:
        reasons.append(f"Minimum order amount is {zone.minimum_order_amount}")
    if distance > zone.max_distance_km:
        reasons.append(f"Distance exceeds maximum of {zone.max_distance_km} km")

    charge = calculate_delivery_charge(zone, amount, distance, at)
    low, high = estimate_delivery_time(zone, at)
    return DeliveryQuote(
        serviceable=not reasons,
        charge=charge,
        min_minutes=low,
        max_minutes=high,
        is_peak_hour=is_peak_hour(zone, at),
        free_delivery=charge == 0 and zone.charge.free_delivery_above > 0
        and amount >= zone.charge.free_delivery_above,
        reasons=tuple(reasons),
    )


# ---------------------------------------------------------------------------
# Coverage and staff
# ---------------------------------------------------------------------------

def add_locality(zone: DeliveryZone, locality: Locality) -> DeliveryZone:
    wanted = locality.name.lower()
    if any(existing.name.lower() == wanted for existing in zone.localities):
        raise ValidationError(f"Locality '{locality.name}' is already in this zone")
    return replace(zone, localities=zone.localities + (locality,))


def covers_pin_code(zone: DeliveryZone, pin_code: str) -> bool:
    return any(loc.pin_code == pin_code for loc in zone.localities)


def find_zone_by_pin_code(zones: Iterable[DeliveryZone], pin_code: str) -> Optional[DeliveryZone]:
    """First active, operational zone that lists the PIN code."""
    for zone in zones:
        if zone.is_active and zone.operational_status == STATUS_ACTIVE and covers_pin_code(zone, pin_code):
            return zone
    return None


def _person_index(zone: DeliveryZone, person_id: str) -> int:
    for index, person in enumerate(zone.delivery_persons):
        if person.person_id == person_id:
            return index
    raise NotFound(f"Delivery person {person_id} is not assigned to zone {zone.code}")


def assign_delivery_person(zone: DeliveryZone, person: DeliveryPerson, at: datetime) -> DeliveryZone:
    if any(p.person_id == person.person_id for p in zone.delivery_persons):
        raise ValidationError(f"Delivery person {person.person_id} is already assigned to zone {zone.code}")
    person = replace(person, assigned_at=at, performance=PersonPerformance())
    return replace(zone, delivery_persons=zone.delivery_persons + (person,))


def get_person(zone: DeliveryZone, person_id: str) -> DeliveryPerson:
    return zone.delivery_persons[_person_index(zone, person_id)]


def remove_delivery_person(zone: DeliveryZone, person_id: str) -> DeliveryZone:
    index = _person_index(zone, person_id)
    persons = zone.delivery_persons[:index] + zone.delivery_persons[index + 1:]
    return replace(zone, delivery_persons=persons)


def set_person_availability(zone: DeliveryZone, person_id: str, is_available: bool) -> DeliveryZone:
    index = _person_index(zone, person_id)
    persons = list(zone.delivery_persons)
    persons[index] = replace(persons[index], is_available=bool(is_available))
    return replace(zone, delivery_persons=tuple(persons))


def available_persons_count(zone: DeliveryZone) -> int:
    return sum(1 for p in zone.delivery_persons if p.is_available)


def set_operational_status(zone: DeliveryZone, status: str) -> DeliveryZone:
    require_choice(status, OPERATIONAL_STATUSES, "operational_status")
    return replace(zone, operational_status=status)


# ---------------------------------------------------------------------------
# Performance counters
# ---------------------------------------------------------------------------

def _running_average(current: Decimal, count: int, value: Decimal) -> Decimal:
    """Average after adding `value` as observation number `count`."""
    return round_money((current * (count - 1) + value) / count)


def record_delivery_outcome(
    zone: DeliveryZone,
    *,
    success: bool,
    delivery_minutes=None,
    rating=None,
    person_id: Optional[str] = None,
    order_amount=ZERO,
    delivery_charge=ZERO,
) -> DeliveryZone:
    minutes = to_decimal(delivery_minutes, "delivery_minutes") if delivery_minutes is not None else None
    if minutes is not None and minutes <= 0:
        raise ValidationError("delivery_minutes must be positive")
    score = to_decimal(rating, "rating") if rating is not None else None
    if score is not None and (score < 0 or score > 5):
        raise ValidationError("rating must be between 0 and 5")
    amount = require_non_negative(order_amount, "order_amount")
    charge = require_non_negative(delivery_charge, "delivery_charge")

    perf = zone.performance
    perf = replace(
        perf,
        total_orders=perf.total_orders + 1,
        successful_deliveries=perf.successful_deliveries + (1 if success else 0),
        failed_deliveries=perf.failed_deliveries + (0 if success else 1),
        monthly_revenue=perf.monthly_revenue + (amount if success else ZERO),
        monthly_delivery_charges=perf.monthly_delivery_charges + (charge if success else ZERO),
    )
    if minutes is not None:
        count = perf.timed_deliveries + 1
        perf = replace(
            perf,
            timed_deliveries=count,
            average_delivery_time=_running_average(perf.average_delivery_time, count, minutes),
        )
    if score is not None:
        count = perf.rated_deliveries + 1
        perf = replace(
            perf,
            rated_deliveries=count,
            average_rating=_running_average(perf.average_rating, count, score),
        )

    persons = zone.delivery_persons
    if person_id is not None:
        index = _person_index(zone, person_id)
        person = persons[index]
        pp = person.performance
        pp = replace(
            pp,
            total_deliveries=pp.total_deliveries + 1,
            successful_deliveries=pp.successful_deliveries + (1 if success else 0),
        )
        if minutes is not None:
            count = pp.timed_deliveries + 1
            pp = replace(
                pp,
                timed_deliveries=count,
                average_delivery_time=_running_average(pp.average_delivery_time, count, minutes),
            )
        if score is not None:
            count = pp.rated_deliveries + 1
            pp = replace(
                pp,
                rated_deliveries=count,
                average_rating=_running_average(pp.average_rating, count, score),
            )
        persons = persons[:index] + (replace(person, performance=pp),) + persons[index + 1:]

    return replace(zone, performance=perf, delivery_persons=persons)


def delivery_success_rate(zone: DeliveryZone) -> Decimal:
    return ratio_percentage(zone.performance.successful_deliveries, zone.performance.total_orders)


def average_delivery_charge(zone: DeliveryZone) -> Decimal:
    perf = zone.performance
    if perf.total_orders == 0:
        return ZERO
    return round_money(perf.monthly_delivery_charges / perf.total_orders)
