"""
Per-request authentication.

AuthenticationFilter runs as the first before_request hook: it turns a
`Authorization: Bearer <token>` header into an AuthContext on flask.g.
It never rejects a request; RoutePolicy, registered right after it,
decides which paths need an authenticated principal.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from flask import g, request, abort

from utils.exceptions import InvalidToken
from utils.principal import ANONYMOUS, AuthContext, AuthenticatedPrincipal
from utils.security import TokenCodec

logger = logging.getLogger(__name__)

HEADER_AUTHORIZATION = "Authorization"
TOKEN_PREFIX = "Bearer "
CONTEXT_ATTR = "auth_context"


def get_access_token(authorization_header: Optional[str]) -> Optional[str]:
    if authorization_header and authorization_header.startswith(TOKEN_PREFIX):
        token = authorization_header[len(TOKEN_PREFIX):].strip()
        return token or None
    return None


def current_auth_context() -> AuthContext:
    return getattr(g, CONTEXT_ATTR, ANONYMOUS)


class AuthenticationFilter:
    def __init__(self, token_codec: TokenCodec):
        self.token_codec = token_codec

    def authenticate(self, authorization_header: Optional[str]) -> AuthContext:
        token = get_access_token(authorization_header)
        if token is None or not self.token_codec.validate(token):
            return ANONYMOUS
        try:
            claims = self.token_codec.decode_claims(token)
        except InvalidToken:
            # Expired between the two parses
            return ANONYMOUS
        if not isinstance(claims.user_id, int) or isinstance(claims.user_id, bool):
            logger.info("token rejected reason=missing_id_claim")
            return ANONYMOUS
        return AuthContext(principal=AuthenticatedPrincipal.from_claims(claims))

    def __call__(self):
        context = self.authenticate(request.headers.get(HEADER_AUTHORIZATION))
        setattr(g, CONTEXT_ATTR, context)
        if context.is_authenticated:
            logger.debug("auth.accepted method=%s path=%s principal_id=%s",
                         request.method, request.path, context.principal.id)
        # Returning None lets the request continue either way


class RoutePolicy:
    """Reject unauthenticated requests under the protected prefixes."""

    def __init__(self, protected_prefixes: Iterable[str], public_paths: Iterable[str]):
        self.protected_prefixes = tuple(protected_prefixes)
        self.public_paths = frozenset(public_paths)

    def requires_authentication(self, path: str) -> bool:
        if path in self.public_paths:
            return False
        return path.startswith(self.protected_prefixes)

    def __call__(self):
        if request.method == "OPTIONS":
            return None
        if self.requires_authentication(request.path) and not current_auth_context().is_authenticated:
            logger.warning("auth.rejected method=%s path=%s reason=unauthenticated",
                           request.method, request.path)
            abort(401, description="Authentication required")
        return None
