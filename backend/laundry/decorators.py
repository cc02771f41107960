# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import NotFoundError
from .services import user_service


def require_user(f):
    """
    Resolve the acting operator from the X-User-Id header.

    Sets g.current_user to an active User. Authentication itself happens
    upstream (gateway / front-end session); this only establishes who is
    acting so writes can be attributed.

    Returns 401 if the header is missing, not an integer, or names an
    unknown or inactive user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get("X-User-Id")
        if not raw:
            return jsonify({"error": "Authentication required"}), 401

        try:
            user_id = int(raw)
        except ValueError:
            return jsonify({"error": "Invalid X-User-Id header"}), 401

        try:
            g.current_user = user_service.get_active_user(user_id)
        except NotFoundError:
            return jsonify({"error": "Unknown or inactive user"}), 401

        return f(*args, **kwargs)

    return decorated_function
