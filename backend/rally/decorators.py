# Overview: Request decorators that establish the caller identity and gate routes by role.

from functools import wraps
from flask import request, jsonify, g, current_app

from .extensions import db
from .models import User

# Set by the upstream identity provider after it authenticates the request
CALLER_HEADER = "X-User-Id"


def _is_authenticated() -> bool:
    return hasattr(g, "current_user")


def require_auth(f):
    """
    Resolve the caller identity for the request.

    Authentication itself happens upstream; this trusts CALLER_HEADER and
    sets:
    - g.current_user: the active User the header names

    Returns 401 if the header is missing, malformed, or names an unknown or
    deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(CALLER_HEADER, "").strip()
        if not raw:
            return jsonify({"error": "Authentication required"}), 401

        try:
            user_id = int(raw)
        except ValueError:
            return jsonify({"error": "Invalid caller identity"}), 401

        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            current_app.logger.warning("Rejected caller identity %s on %s", user_id, request.path)
            return jsonify({"error": "Invalid caller identity"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the caller to hold one of the given roles.

    Role gating is the only authorization done here; services still enforce
    object-level rules (status guards, stock, seller ownership).
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                    "message": f"Requires any of: {', '.join(roles)}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
