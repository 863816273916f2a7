from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .errors import ValidationError


@dataclass(frozen=True)
class Actor:
    """The authenticated user behind an operation (supplied by upstream auth)."""

    user_id: str
    user_name: str
    user_role: str

    def __post_init__(self):
        if not self.user_id or not str(self.user_id).strip():
            raise ValidationError("actor user_id is required")
        if not self.user_name or not str(self.user_name).strip():
            raise ValidationError("actor user_name is required")
        if not self.user_role or not str(self.user_role).strip():
            raise ValidationError("actor user_role is required")


@dataclass(frozen=True)
class ActionStamp:
    """Who did something, when, and what they said about it."""

    user_id: str
    user_name: str
    user_role: str
    at: datetime
    comments: Optional[str] = None

    @classmethod
    def of(cls, actor: Actor, at: datetime, comments: Optional[str] = None) -> "ActionStamp":
        return cls(
            user_id=actor.user_id,
            user_name=actor.user_name,
            user_role=actor.user_role,
            at=at,
            comments=comments,
        )


@dataclass(frozen=True)
class Note:
    note: str
    added_by: str
    added_at: datetime


def require_actor(actor) -> Actor:
    if not isinstance(actor, Actor):
        raise ValidationError("actor is required")
    return actor


def require_text(value, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()
