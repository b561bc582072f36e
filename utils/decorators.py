from __future__ import annotations
from functools import wraps
from flask import abort

from utils.auth_filter import current_auth_context


def login_required():
    """
    Dispatch to the view only when AuthenticationFilter established a principal.
    The principal is passed to the view as the `principal` keyword argument.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            context = current_auth_context()
            if not context.is_authenticated:
                abort(401, description="Missing or invalid Authorization header")
            return fn(*args, principal=context.principal, **kwargs)

        return wrapper

    return decorator
