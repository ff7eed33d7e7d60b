from functools import wraps

from flask import g, jsonify, request

ACTOR_HEADER = "X-Admin-Id"


def admin_required(fn):
    """Reject calls without an admin identity; expose it as ``g.actor``."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        actor = (request.headers.get(ACTOR_HEADER) or "").strip()
        if not actor:
            return jsonify({
                "success": False,
                "error": "unauthorized",
                "message": "Admin identity required",
            }), 401
        g.actor = actor
        return fn(*args, **kwargs)

    return wrapper
