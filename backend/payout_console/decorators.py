# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'session_context')


def require_auth(f):
    """
    Require a live session token.

    Sets on Flask g:
    - g.current_user: the authenticated User
    - g.session_context: the full SessionContext

    Returns 401 if the Authorization header is missing, the token is
    unknown, expired or idle, or the user was deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require one of the given roles. Must follow @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            role = g.session_context.role
            if role not in roles:
                current_app.logger.warning(
                    "Role %s denied %s %s (user %s)",
                    role, request.method, request.path, g.current_user.id,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": sorted(roles),
                    "role": role,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
