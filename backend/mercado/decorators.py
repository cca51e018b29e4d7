# Overview: Request decorators for API routes (bearer token and role checks).

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


def _bearer_token() -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not token:
        return None
    return token.strip()


def require_auth(f):
    """
    Resolve the bearer token to the calling user.

    On success the view can read:
    - g.current_user: User the token was issued for
    - g.principal: Principal(user_id, role), used for attribution and scoping
    - g.session_context: SessionContext holding both
    """
    @wraps(f)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if context is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.principal = context.principal
        g.session_context = context
        return f(*args, **kwargs)

    return wrapper


def require_role(*roles: str):
    """Only let callers holding one of roles through. Stack under require_auth."""
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            principal = getattr(g, "principal", None)
            if principal is None:
                return jsonify({"error": "Authentication required"}), 401

            if principal.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return wrapper
    return decorator
