# Overview: Service-layer operations for stalls; create, revise, open/close and soft delete.

from __future__ import annotations

from dataclasses import replace

from ..models import Stall
from ..domain.actors import Actor
from ..domain.records import policy, require_choice
from ..domain.stalls import STALL_STATUSES
from . import record_service


STALL_POLICY = policy(
    writable=(
        "code", "name", "stall_type", "location", "city", "pin_code",
        "manager_name", "contact_number",
    ),
    required=("code", "name"),
)


def create_stall(*, payload, actor: Actor) -> Stall:
    stall = record_service.build_from_payload(Stall, payload, STALL_POLICY)
    return record_service.create(Stall, stall, actor=actor)


def update_stall(*, stall_id: int, payload, actor: Actor, expected_version=None) -> Stall:
    return record_service.update(
        Stall, stall_id, payload,
        policy=STALL_POLICY,
        actor=actor,
        revise=lambda current, revised: revised,
        expected_version=expected_version,
    )


def set_status(*, stall_id: int, status: str, actor: Actor, expected_version=None) -> Stall:
    require_choice(status, STALL_STATUSES, "status")
    return record_service.transition(
        Stall, stall_id,
        lambda stall: replace(stall, status=status),
        action="status_changed",
        actor=actor,
        expected_version=expected_version,
    )


def list_stalls(*, status=None, city=None, include_inactive=False, limit=100, offset=0):
    return record_service.list_rows(
        Stall,
        filters={"status": status, "city": city},
        include_inactive=include_inactive,
        order_by=Stall.name.asc(),
        limit=limit,
        offset=offset,
    )


def delete_stall(*, stall_id: int, actor: Actor, expected_version=None) -> Stall:
    return record_service.soft_delete(Stall, stall_id, actor=actor, expected_version=expected_version)
