"""Cookie helpers shared by the login flow and logout."""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def add_cookie(response, name: str, value: str, max_age: int, *, httponly: bool = False,
               secure: bool = False, samesite: str | None = "Lax"):
    response.set_cookie(
        name,
        value,
        max_age=max_age,
        path="/",
        httponly=httponly,
        secure=secure,
        samesite=samesite,
    )
    logger.debug("cookie set name=%s max_age=%s", name, max_age)


def delete_cookie(response, name: str, *, secure: bool = False, samesite: str | None = "Lax"):
    """Blank the value and expire it now; the browser drops the cookie."""
    response.set_cookie(name, "", max_age=0, expires=0, path="/", secure=secure, samesite=samesite)
    logger.debug("cookie deleted name=%s", name)
