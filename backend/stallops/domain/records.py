# Overview: Conversion between JSON documents and typed immutable records.

"""
Record <-> document conversion.

Request payloads and stored documents are plain JSON dicts. The domain works on
frozen dataclasses. build_record() is the single boundary between the two:

- unknown keys are rejected (no silent merging of arbitrary request bodies)
- required fields (dataclass fields without a default) must be present
- every value is coerced to the declared type (Decimal, int, bool, str,
  datetime, date, nested records, tuples of records) or a ValidationError
  names the offending field
- the record's own __post_init__ then checks ranges and enums

to_document() is the inverse and produces JSON-safe values only
(Decimal -> str, datetime/date -> ISO-8601, tuple -> list).

RecordPolicy mirrors the column allowlist idea used for ORM payloads: it says
which top-level keys a client may write on create/update, so derived fields and
statuses can only change through the domain transitions.
"""

from __future__ import annotations

import dataclasses
import re
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass, fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from functools import lru_cache
from typing import Any, Iterable

from .errors import ValidationError
from .money import to_decimal
from ..time_utils import parse_iso_date, parse_iso_datetime


_MISSING = dataclasses.MISSING

INTEGER_RE = re.compile(r"-?\d+")


@lru_cache(maxsize=None)
def _hints(cls) -> dict[str, Any]:
    return typing.get_type_hints(cls)


def _label(path: str, name) -> str:
    if isinstance(name, int):
        return f"{path}[{name}]"
    return f"{path}.{name}" if path else str(name)


def _coerce(tp, value, label: str):
    origin = typing.get_origin(tp)

    # Optional[X] / X | None
    if origin is typing.Union or (hasattr(types, "UnionType") and origin is types.UnionType):
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if value is None:
            return None
        if len(args) == 1:
            return _coerce(args[0], value, label)
        raise TypeError(f"Unsupported union for {label}")

    if value is None:
        raise ValidationError(f"{label} cannot be null")

    if origin is tuple:
        args = typing.get_args(tp)
        if not isinstance(value, (list, tuple)):
            raise ValidationError(f"{label} must be a list")
        item_type = args[0] if args else Any
        return tuple(_coerce(item_type, item, _label(label, i)) for i, item in enumerate(value))

    if origin is dict or tp is dict:
        if not isinstance(value, Mapping):
            raise ValidationError(f"{label} must be an object")
        return dict(value)

    if tp is Any:
        return value

    if is_dataclass(tp):
        if isinstance(value, tp):
            return value
        return build_record(tp, value, path=label)

    if tp is Decimal:
        return to_decimal(value, label)

    if tp is bool:
        if not isinstance(value, bool):
            raise ValidationError(f"{label} must be true or false")
        return value

    if tp is int:
        if isinstance(value, bool):
            raise ValidationError(f"{label} must be an integer")
        if isinstance(value, int):
            return value
        if isinstance(value, str) and INTEGER_RE.fullmatch(value.strip()):
            return int(value.strip())
        raise ValidationError(f"{label} must be an integer")

    if tp is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{label} must be a number")
        return float(value)

    if tp is str:
        if not isinstance(value, str):
            raise ValidationError(f"{label} must be a string")
        return value.strip()

    if tp is datetime:
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                parsed = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{label} must be an ISO-8601 datetime")
            if parsed is None:
                raise ValidationError(f"{label} must be an ISO-8601 datetime")
            return parsed
        raise ValidationError(f"{label} must be an ISO-8601 datetime")

    if tp is date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                parsed = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{label} must be an ISO-8601 date")
            if parsed is None:
                raise ValidationError(f"{label} must be an ISO-8601 date")
            return parsed
        raise ValidationError(f"{label} must be an ISO-8601 date")

    return value


def build_record(cls, data, *, path: str = ""):
    """Build a typed record of class cls from a JSON-like mapping."""
    if isinstance(data, cls):
        return data
    if not isinstance(data, Mapping):
        raise ValidationError(f"{path or cls.__name__} must be an object")

    hints = _hints(cls)
    known = {f.name: f for f in fields(cls) if f.init}

    for key in data.keys():
        if key not in known:
            raise ValidationError(f"Unknown field: {_label(path, key)}")

    kwargs = {}
    missing = []
    for name, f in known.items():
        if name in data:
            kwargs[name] = _coerce(hints[name], data[name], _label(path, name))
        elif f.default is _MISSING and f.default_factory is _MISSING:
            missing.append(_label(path, name))

    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    return cls(**kwargs)


def to_document(value):
    """Render a record (or any nested value) as JSON-safe data."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_document(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [to_document(item) for item in value]
    if isinstance(value, Mapping):
        return {k: to_document(v) for k, v in value.items()}
    return value


def merge_document(base: Mapping, patch: Mapping) -> dict:
    """
    Deep-merge a partial update into a stored document.

    Nested objects merge key by key; lists and scalars replace.
    """
    merged = dict(base)
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_document(current, value)
        else:
            merged[key] = value
    return merged


@dataclass(frozen=True)
class RecordPolicy:
    """
    Central policy layer for client payloads:
    - writable_fields: top-level keys clients are allowed to set (security boundary)
    - required_on_create: keys that must be present on POST
    """
    writable_fields: frozenset
    required_on_create: frozenset = frozenset()

    def check(self, payload, *, partial: bool) -> dict:
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValidationError("Invalid JSON payload")

        for key in payload.keys():
            if key not in self.writable_fields:
                raise ValidationError(f"Field not allowed: {key}")

        if not partial:
            missing = sorted(k for k in self.required_on_create if k not in payload)
            if missing:
                raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        return dict(payload)


def policy(writable: Iterable[str], required: Iterable[str] = ()) -> RecordPolicy:
    return RecordPolicy(writable_fields=frozenset(writable), required_on_create=frozenset(required))


def require_choice(value, choices, field: str):
    if value not in choices:
        raise ValidationError(
            f"Invalid {field} '{value}'. Must be one of: {', '.join(choices)}"
        )
    return value
