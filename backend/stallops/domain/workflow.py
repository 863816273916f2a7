# Overview: Status guard shared by the approval state machines.

from __future__ import annotations

from typing import Iterable

from .errors import InvalidStateTransition


def require_status(entity: str, current: str, action: str, allowed: Iterable[str]) -> None:
    """
    Guard a named transition.

    Raises InvalidStateTransition (listing the states the action is valid from)
    when `current` is not one of `allowed`. The record is never touched here;
    callers build the new record only after the guard passes.
    """
    allowed = tuple(allowed)
    if current not in allowed:
        raise InvalidStateTransition(entity, current, action, allowed_from=allowed)
