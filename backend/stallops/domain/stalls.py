# Overview: Stall master record (the tenant every other record hangs off).

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .actors import require_text
from .records import require_choice


STALL_STATUSES = ("open", "closed", "temporarily-closed")
STALL_TYPES = ("stall", "kiosk", "food-truck", "production-house")


@dataclass(frozen=True)
class Stall:
    code: str
    name: str
    stall_type: str = "stall"
    location: Optional[str] = None
    city: Optional[str] = None
    pin_code: Optional[str] = None
    manager_name: Optional[str] = None
    contact_number: Optional[str] = None
    status: str = "open"
    is_active: bool = True

    def __post_init__(self):
        require_text(self.code, "code")
        require_text(self.name, "name")
        require_choice(self.stall_type, STALL_TYPES, "stall_type")
        require_choice(self.status, STALL_STATUSES, "status")
