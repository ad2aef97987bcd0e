from __future__ import annotations
from functools import wraps
from flask import request, g, current_app

from services.errors import UnauthorizedError


def bearer_token() -> str | None:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth[len("Bearer "):].strip() or None


def jwt_required():
    """Resolve the bearer access token to a live user and attach it to g.current_user."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = bearer_token()
            if token is None:
                raise UnauthorizedError("No token")
            g.current_user = current_app.extensions["auth_service"].verify_access(token)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
