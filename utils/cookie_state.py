"""
CookieStateRepository: keeps the pending external-login request in a cookie.

The payload is the AuthorizationRequestSchema dump (versioned JSON), signed
and timestamped with itsdangerous, so the client can hold it but not alter
it, and it stops loading once the cookie lifetime has passed. There is no
server-side copy.
"""
from __future__ import annotations

import logging
from typing import Optional

from itsdangerous import BadData, URLSafeTimedSerializer
from marshmallow import ValidationError

from models.schemas.oauth2 import AuthorizationRequestSchema
from utils.cookies import add_cookie, delete_cookie
from utils.exceptions import FlowStateAbsent
from utils.oauth2_types import AuthorizationRequest

logger = logging.getLogger(__name__)

OAUTH2_AUTHORIZATION_REQUEST_COOKIE_NAME = "oauth2_auth_request"
COOKIE_EXPIRE_SECONDS = 18000
SERIALIZER_SALT = "oauth2-auth-request"


class CookieStateRepository:
    def __init__(self, secret_key: str, cookie_name: str = OAUTH2_AUTHORIZATION_REQUEST_COOKIE_NAME,
                 max_age: int = COOKIE_EXPIRE_SECONDS, secure: bool = False):
        if not secret_key:
            raise ValueError("SECRET_KEY is required to sign the login flow cookie")
        self.cookie_name = cookie_name
        self.max_age = max_age
        self.secure = secure
        self._serializer = URLSafeTimedSerializer(secret_key, salt=SERIALIZER_SALT)
        self._schema = AuthorizationRequestSchema()

    def serialize(self, state: AuthorizationRequest) -> str:
        return self._serializer.dumps(self._schema.dump(state))

    def deserialize(self, value: str) -> AuthorizationRequest:
        try:
            data = self._serializer.loads(value, max_age=self.max_age)
        except BadData as exc:
            raise FlowStateAbsent(f"Login flow cookie rejected: {exc.__class__.__name__}") from exc
        if not isinstance(data, dict):
            raise FlowStateAbsent("Login flow cookie has an unexpected layout")
        try:
            return self._schema.load(data)
        except ValidationError as exc:
            raise FlowStateAbsent("Login flow cookie has an unexpected layout") from exc

    def save(self, state: Optional[AuthorizationRequest], request, response) -> None:
        if state is None:
            self.remove(request, response)
            return
        add_cookie(response, self.cookie_name, self.serialize(state), self.max_age,
                   httponly=True, secure=self.secure)

    def load(self, request) -> Optional[AuthorizationRequest]:
        value = request.cookies.get(self.cookie_name)
        if not value:
            logger.info("login flow cookie absent path=%s", request.path)
            return None
        try:
            return self.deserialize(value)
        except FlowStateAbsent as exc:
            logger.warning("login flow cookie unusable path=%s reason=%s", request.path, exc.message)
            return None

    def remove(self, request, response) -> Optional[AuthorizationRequest]:
        state = self.load(request)
        self.clear(response)
        return state

    def clear(self, response) -> None:
        delete_cookie(response, self.cookie_name, secure=self.secure)
