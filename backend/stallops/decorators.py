# Overview: Request decorators for API routes; actor identity and role checks.

from functools import wraps
from flask import request, jsonify, g

from .domain.actors import Actor
from .domain.errors import PermissionDenied, ValidationError
from .responses import error_response


ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_NAME_HEADER = "X-Actor-Name"
ACTOR_ROLE_HEADER = "X-Actor-Role"

# Roles allowed to sign off financial records (approve/reject/pay/publish)
APPROVER_ROLES = ("owner", "admin", "manager")
FINANCE_ROLES = ("owner", "admin", "accountant")


def require_actor(f):
    """
    Require an actor identity and expose it as g.actor.

    Identity is asserted by the upstream auth gateway in the X-Actor-Id,
    X-Actor-Name and X-Actor-Role headers. Returns 401 if any is missing.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            actor = Actor(
                user_id=(request.headers.get(ACTOR_ID_HEADER) or "").strip(),
                user_name=(request.headers.get(ACTOR_NAME_HEADER) or "").strip(),
                user_role=(request.headers.get(ACTOR_ROLE_HEADER) or "").strip().lower(),
            )
        except ValidationError as e:
            return jsonify({"error": "Authentication required", "message": str(e)}), 401

        g.actor = actor
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """Require g.actor to hold one of the given roles (use after @require_actor)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "actor"):
                return jsonify({"error": "Authentication required"}), 401
            if g.actor.user_role not in roles:
                return error_response(PermissionDenied(f"Requires one of roles: {', '.join(roles)}"))
            return f(*args, **kwargs)

        return decorated_function
    return decorator
