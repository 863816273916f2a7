# Overview: Inventory batch freshness, valuation, stock movements and wastage.

"""
Inventory Batch-Status Deriver

refresh(batch, now) runs after every mutation:
- days_until_expiry = ceil((expiry_date - now) / 1 day)
- batch_status: expired (< 0, batch also goes inactive), near-expiry
  (<= near_expiry_alert_days) or fresh
- total_batch_value = total_stock * cost_per_unit
- total_wastage_cost = sum of wastage cost_impact

Stock movements append to the batch's transaction history; wastage records
are append-only.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from .actors import Actor, require_actor, require_text
from .errors import InsufficientStock, InvalidStateTransition, NotFound, ValidationError
from .money import ZERO, require_non_negative, require_positive, round_money, sum_amounts
from .records import require_choice


ENTITY = "inventory batch"

BATCH_FRESH = "fresh"
BATCH_NEAR_EXPIRY = "near-expiry"
BATCH_EXPIRED = "expired"
BATCH_STATUSES = (BATCH_FRESH, BATCH_NEAR_EXPIRY, BATCH_EXPIRED)

ITEM_TYPES = ("product", "raw-material")
UNITS = ("kg", "gm", "pcs", "litre", "ml", "plate", "bowl")
WASTAGE_REASONS = ("expired", "damaged", "spillage", "over-production", "quality-issue", "other")

TX_STOCK_IN = "stock-in"
TX_STOCK_OUT = "stock-out"
TX_TRANSFER = "transfer"
TX_WASTAGE = "wastage"

PRODUCTION_HOUSE = "production-house"

DEFAULT_NEAR_EXPIRY_DAYS = 7

ONE_DAY_SECONDS = 86400


@dataclass(frozen=True)
class StallStock:
    stall_id: str
    stall_name: str
    quantity: Decimal = ZERO
    last_refill_at: Optional[datetime] = None


@dataclass(frozen=True)
class WastageRecord:
    quantity: Decimal
    reason: str
    cost_impact: Decimal
    recorded_by: str
    recorded_by_name: str
    recorded_by_role: str
    recorded_at: datetime
    reason_details: Optional[str] = None
    stall_id: Optional[str] = None


@dataclass(frozen=True)
class StockTransaction:
    transaction_type: str
    quantity: Decimal
    at: datetime
    performed_by: Optional[str] = None
    from_location: Optional[str] = None
    to_location: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class WastageCommand:
    quantity: Decimal
    reason: str
    reason_details: Optional[str] = None
    cost_impact: Optional[Decimal] = None
    stall_id: Optional[str] = None

    def __post_init__(self):
        require_positive(self.quantity, "quantity")
        require_choice(self.reason, WASTAGE_REASONS, "reason")
        if self.cost_impact is not None:
            require_non_negative(self.cost_impact, "cost_impact")
        if self.reason_details is not None and len(self.reason_details) > 200:
            raise ValidationError("reason_details cannot exceed 200 characters")


@dataclass(frozen=True)
class InventoryBatch:
    batch_number: str
    item_type: str
    item_name: str
    production_date: datetime
    expiry_date: datetime
    cost_per_unit: Decimal
    unit: str = "pcs"
    item_id: Optional[str] = None
    total_stock: Decimal = ZERO
    production_house_stock: Decimal = ZERO
    stall_stock: tuple[StallStock, ...] = ()
    min_stock_level: Decimal = Decimal("10")
    reorder_quantity: Decimal = Decimal("50")
    near_expiry_alert_days: int = DEFAULT_NEAR_EXPIRY_DAYS
    batch_status: str = BATCH_FRESH
    days_until_expiry: Optional[int] = None
    total_batch_value: Decimal = ZERO
    wastage_quantity: Decimal = ZERO
    wastage_records: tuple[WastageRecord, ...] = ()
    total_wastage_cost: Decimal = ZERO
    transactions: tuple[StockTransaction, ...] = ()
    last_stock_update: Optional[datetime] = None
    is_active: bool = True

    def __post_init__(self):
        require_text(self.batch_number, "batch_number")
        require_text(self.item_name, "item_name")
        require_choice(self.item_type, ITEM_TYPES, "item_type")
        require_choice(self.unit, UNITS, "unit")
        require_choice(self.batch_status, BATCH_STATUSES, "batch_status")
        require_non_negative(self.cost_per_unit, "cost_per_unit")
        require_non_negative(self.total_stock, "total_stock")
        require_non_negative(self.production_house_stock, "production_house_stock")
        require_non_negative(self.min_stock_level, "min_stock_level")
        require_non_negative(self.reorder_quantity, "reorder_quantity")
        if self.near_expiry_alert_days < 0:
            raise ValidationError("near_expiry_alert_days cannot be negative")
        if self.expiry_date < self.production_date:
            raise ValidationError("expiry_date cannot be before production_date")
        if self.production_house_stock > self.total_stock:
            raise ValidationError("production_house_stock cannot exceed total_stock")


def days_until(expiry: datetime, now: datetime) -> int:
    return math.ceil((expiry - now) / timedelta(seconds=ONE_DAY_SECONDS))


def refresh(batch: InventoryBatch, now: datetime) -> InventoryBatch:
    days = days_until(batch.expiry_date, now)
    is_active = batch.is_active
    if days < 0:
        status = BATCH_EXPIRED
        is_active = False
    elif days <= batch.near_expiry_alert_days:
        status = BATCH_NEAR_EXPIRY
    else:
        status = BATCH_FRESH

    return replace(
        batch,
        days_until_expiry=days,
        batch_status=status,
        is_active=is_active,
        total_batch_value=round_money(batch.total_stock * batch.cost_per_unit),
        total_wastage_cost=sum_amounts(w.cost_impact for w in batch.wastage_records),
    )


def _log(batch: InventoryBatch, tx: StockTransaction, now: datetime, **changes) -> InventoryBatch:
    updated = replace(
        batch,
        transactions=batch.transactions + (tx,),
        last_stock_update=now,
        **changes,
    )
    return refresh(updated, now)


def add_stock(batch: InventoryBatch, quantity, actor: Actor, now: datetime,
              location: str = PRODUCTION_HOUSE) -> InventoryBatch:
    require_actor(actor)
    qty = require_positive(quantity, "quantity")
    changes = {"total_stock": batch.total_stock + qty}
    if location == PRODUCTION_HOUSE:
        changes["production_house_stock"] = batch.production_house_stock + qty
    else:
        changes["stall_stock"] = _stall_add(batch, location, None, qty, now)
    tx = StockTransaction(
        transaction_type=TX_STOCK_IN,
        quantity=qty,
        at=now,
        performed_by=actor.user_name,
        to_location=location,
    )
    return _log(batch, tx, now, **changes)


def _stall_add(batch: InventoryBatch, stall_id: str, stall_name: Optional[str], qty: Decimal,
               now: datetime) -> tuple[StallStock, ...]:
    stalls = list(batch.stall_stock)
    for index, stall in enumerate(stalls):
        if stall.stall_id == stall_id:
            stalls[index] = replace(stall, quantity=stall.quantity + qty, last_refill_at=now)
            return tuple(stalls)
    stalls.append(StallStock(stall_id=stall_id, stall_name=stall_name or stall_id,
                             quantity=qty, last_refill_at=now))
    return tuple(stalls)


def _take(batch: InventoryBatch, qty: Decimal, stall_id: Optional[str]) -> dict:
    """
    Decrement one location and the total by what that location holds, at most
    `qty`; asking for more than is there empties the location.
    """
    if stall_id is None:
        taken = min(qty, batch.production_house_stock)
        return {
            "production_house_stock": batch.production_house_stock - taken,
            "total_stock": max(ZERO, batch.total_stock - taken),
        }

    stalls = list(batch.stall_stock)
    for index, stall in enumerate(stalls):
        if stall.stall_id == stall_id:
            taken = min(qty, stall.quantity)
            stalls[index] = replace(stall, quantity=stall.quantity - taken)
            return {
                "stall_stock": tuple(stalls),
                "total_stock": max(ZERO, batch.total_stock - taken),
            }
    raise NotFound(f"Stall {stall_id} holds no stock from batch {batch.batch_number}")


def remove_stock(batch: InventoryBatch, quantity, actor: Actor, now: datetime,
                 reason: str = "sale", stall_id: Optional[str] = None) -> InventoryBatch:
    require_actor(actor)
    qty = require_positive(quantity, "quantity")
    tx = StockTransaction(
        transaction_type=TX_STOCK_OUT,
        quantity=qty,
        at=now,
        performed_by=actor.user_name,
        from_location=stall_id or PRODUCTION_HOUSE,
        reason=reason,
    )
    return _log(batch, tx, now, **_take(batch, qty, stall_id))


def transfer_stock(batch: InventoryBatch, stall_id: str, stall_name: str, quantity,
                   actor: Actor, now: datetime) -> InventoryBatch:
    """Move stock from the production house to a stall."""
    require_actor(actor)
    require_text(stall_id, "stall_id")
    qty = require_positive(quantity, "quantity")

    current = refresh(batch, now)
    if current.batch_status == BATCH_EXPIRED:
        raise InvalidStateTransition(
            ENTITY, BATCH_EXPIRED, "transfer stock from",
            allowed_from=(BATCH_FRESH, BATCH_NEAR_EXPIRY),
        )
    if batch.production_house_stock < qty:
        raise InsufficientStock(batch.production_house_stock, qty)

    tx = StockTransaction(
        transaction_type=TX_TRANSFER,
        quantity=qty,
        at=now,
        performed_by=actor.user_name,
        from_location=PRODUCTION_HOUSE,
        to_location=stall_name or stall_id,
    )
    return _log(
        batch,
        tx,
        now,
        production_house_stock=batch.production_house_stock - qty,
        stall_stock=_stall_add(batch, stall_id, stall_name, qty, now),
    )


def record_wastage(batch: InventoryBatch, command: WastageCommand, actor: Actor,
                   now: datetime) -> InventoryBatch:
    require_actor(actor)
    qty = command.quantity
    cost = command.cost_impact
    if cost is None:
        cost = round_money(qty * batch.cost_per_unit)

    record = WastageRecord(
        quantity=qty,
        reason=command.reason,
        cost_impact=cost,
        recorded_by=actor.user_id,
        recorded_by_name=actor.user_name,
        recorded_by_role=actor.user_role,
        recorded_at=now,
        reason_details=command.reason_details,
        stall_id=command.stall_id,
    )
    tx = StockTransaction(
        transaction_type=TX_WASTAGE,
        quantity=qty,
        at=now,
        performed_by=actor.user_name,
        from_location=command.stall_id or PRODUCTION_HOUSE,
        reason=command.reason,
    )
    return _log(
        batch,
        tx,
        now,
        wastage_quantity=batch.wastage_quantity + qty,
        wastage_records=batch.wastage_records + (record,),
        **_take(batch, qty, command.stall_id),
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def total_stall_stock(batch: InventoryBatch) -> Decimal:
    return sum_amounts(s.quantity for s in batch.stall_stock)


def is_low_stock(batch: InventoryBatch) -> bool:
    return batch.total_stock <= batch.min_stock_level


def stock_percentage(batch: InventoryBatch) -> Decimal:
    if batch.min_stock_level == 0:
        return Decimal("100")
    return round_money(batch.total_stock / batch.min_stock_level * 100)


def low_stock(batches: Iterable[InventoryBatch]) -> list[InventoryBatch]:
    found = [b for b in batches if b.is_active and is_low_stock(b)]
    found.sort(key=lambda b: b.total_stock)
    return found


def near_expiry(batches: Iterable[InventoryBatch], now: datetime, days: Optional[int] = None) -> list[InventoryBatch]:
    """Active, unexpired batches expiring within `days` (or their own alert window)."""
    found = []
    for batch in batches:
        if not batch.is_active:
            continue
        remaining = days_until(batch.expiry_date, now)
        window = batch.near_expiry_alert_days if days is None else days
        if 0 <= remaining <= window:
            found.append(batch)
    found.sort(key=lambda b: b.expiry_date)
    return found
