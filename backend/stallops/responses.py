# Overview: Shared request parsing and JSON response helpers for API routes.

from __future__ import annotations

from flask import request, jsonify

from .domain.errors import DomainError, ValidationError
from .domain.records import to_document
from .time_utils import parse_iso_date


MAX_PAGE_SIZE = 500


def error_response(e: DomainError):
    """Map a domain failure to {"error", "code"} with its HTTP status."""
    return jsonify({"error": str(e), "code": e.code}), e.http_status


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


def split_expected_version(data: dict):
    """
    Pull expected_version out of a request body (or the If-Match header).

    Returns (expected_version, remaining_body).
    """
    data = dict(data)
    expected = data.pop("expected_version", None)
    if expected is None:
        header = request.headers.get("If-Match")
        if header:
            expected = header.strip().strip('"')
    return expected, data


def paging_args(default_limit: int = 100):
    limit = request.args.get("limit", default_limit, type=int)
    offset = request.args.get("offset", 0, type=int)

    # Clamp limit
    if limit < 1:
        limit = 1
    if limit > MAX_PAGE_SIZE:
        limit = MAX_PAGE_SIZE
    if offset < 0:
        offset = 0
    return limit, offset


def flag_arg(name: str, default: str = "false") -> bool:
    return request.args.get(name, default).lower() == "true"


def date_arg(name: str):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


def page(rows, total: int, limit: int, offset: int):
    return jsonify({
        "items": [row.to_dict() for row in rows],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


def record_json(record, status: int = 200):
    """JSON response for a bare domain record or value (Decimal -> str, dates -> ISO)."""
    return jsonify(to_document(record)), status
