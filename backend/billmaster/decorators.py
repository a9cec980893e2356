# Overview: Acting-user and permission decorators for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

from .errors import ValidationError
from .policy import AccessPolicy, Actor, DEFAULT_POLICY


def current_policy() -> AccessPolicy:
    """Policy configured on the app (ACCESS_POLICY), or the default role map."""
    return current_app.config.get("ACCESS_POLICY") or DEFAULT_POLICY


def _has_actor() -> bool:
    return hasattr(g, "current_actor")


def require_actor(f):
    """
    Resolve the acting user from the identity proxy headers.

    Sets g.current_actor (an Actor) from:
    - X-User-Email: the signed-in user's email
    - X-User-Role:  admin or user

    Returns 401 when either header is missing or the role is unknown.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        email = (request.headers.get("X-User-Email") or "").strip()
        role = (request.headers.get("X-User-Role") or "").strip().lower()

        if not email or not role:
            return jsonify({"error": "Authentication required"}), 401

        try:
            g.current_actor = Actor(email=email, role=role)
        except ValidationError as e:
            return jsonify({"error": str(e)}), 401

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a specific permission from the configured policy."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_actor was called first
            if not _has_actor():
                return jsonify({"error": "Authentication required"}), 401

            actor = g.current_actor
            if not current_policy().can(actor, permission_code):
                current_app.logger.warning(
                    "Permission %s denied for %s (%s) on %s",
                    permission_code, actor.email, actor.role, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": f"Role '{actor.role}' lacks {permission_code}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
