# Overview: Flask API routes for the audit trail; read-only listing of recorded transitions.

from flask import Blueprint, request, jsonify

from ..decorators import require_actor, require_role, APPROVER_ROLES, FINANCE_ROLES
from ..responses import paging_args
from ..services.audit_service import list_events
from ..time_utils import parse_iso_datetime

"""
Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- as_of filtering is inclusive: occurred_at <= as_of.
"""

audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("")
@require_actor
@require_role(*sorted(set(APPROVER_ROLES + FINANCE_ROLES)))
def list_audit_events_route():
    """
    List audit events, newest first.

    Query parameters:
    - entity_type: stall | delivery_zone | payroll | investor | expense | profit_loss_report |
      inventory_batch | stall_performance | order
    - entity_id
    - action: created | updated | approved | paid | ...
    - actor_user_id
    - as_of: ISO-8601 datetime, inclusive
    - limit / offset
    """
    limit, offset = paging_args()

    as_of_raw = request.args.get("as_of")
    try:
        as_of_dt = parse_iso_datetime(as_of_raw)
    except ValueError:
        return jsonify({"error": "as_of must be an ISO-8601 datetime"}), 400

    events, total = list_events(
        entity_type=request.args.get("entity_type"),
        entity_id=request.args.get("entity_id", type=int),
        action=request.args.get("action"),
        actor_user_id=request.args.get("actor_user_id"),
        as_of=as_of_dt,
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [ev.to_dict() for ev in events],
        "count": total,
        "limit": limit,
        "offset": offset,
    })
