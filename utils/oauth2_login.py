"""
OAuth2LoginCompletionHandler: what happens after the provider vouched for a user.

Stages, in order:
    EXTERNAL_AUTHENTICATED -> USER_RESOLVED -> REFRESH_ISSUED -> REFRESH_PERSISTED
    -> COOKIE_SET -> ACCESS_ISSUED -> FLOW_CLEARED -> REDIRECTED

Nothing is issued before the local user is resolved. A failure at any stage
propagates to the caller; the user restarts the login.
"""
from __future__ import annotations

import enum
import logging
from datetime import timedelta
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from flask import Response

from models.refresh_token_store import RefreshTokenStore
from models.user_directory import UserDirectory
from utils.cookie_state import CookieStateRepository
from utils.cookies import add_cookie, delete_cookie
from utils.exceptions import OAuth2LoginError
from utils.security import TokenCodec

logger = logging.getLogger(__name__)

REFRESH_TOKEN_COOKIE_NAME = "refresh_token"
REFRESH_TOKEN_DURATION = timedelta(days=14)
ACCESS_TOKEN_DURATION = timedelta(days=1)
REDIRECT_PATH = "/articles"


class LoginStage(enum.Enum):
    EXTERNAL_AUTHENTICATED = "external_authenticated"
    USER_RESOLVED = "user_resolved"
    REFRESH_ISSUED = "refresh_issued"
    REFRESH_PERSISTED = "refresh_persisted"
    COOKIE_SET = "cookie_set"
    ACCESS_ISSUED = "access_issued"
    FLOW_CLEARED = "flow_cleared"
    REDIRECTED = "redirected"


def build_target_url(success_path: str, access_token: str) -> str:
    separator = "&" if "?" in success_path else "?"
    return f"{success_path}{separator}{urlencode({'token': access_token})}"


class OAuth2LoginCompletionHandler:
    def __init__(self, token_codec: TokenCodec, refresh_tokens: RefreshTokenStore,
                 users: UserDirectory, cookie_state: CookieStateRepository, *,
                 refresh_ttl: timedelta = REFRESH_TOKEN_DURATION,
                 access_ttl: timedelta = ACCESS_TOKEN_DURATION,
                 success_path: str = REDIRECT_PATH,
                 refresh_cookie_name: str = REFRESH_TOKEN_COOKIE_NAME,
                 secure_cookies: bool = False):
        self.token_codec = token_codec
        self.refresh_tokens = refresh_tokens
        self.users = users
        self.cookie_state = cookie_state
        self.refresh_ttl = refresh_ttl
        self.access_ttl = access_ttl
        self.success_path = success_path
        self.refresh_cookie_name = refresh_cookie_name
        self.secure_cookies = secure_cookies

    def on_authentication_success(self, attributes: Mapping[str, Any]) -> Response:
        self._enter(LoginStage.EXTERNAL_AUTHENTICATED)
        email: Optional[str] = attributes.get("email")
        name: Optional[str] = attributes.get("name")
        if not email:
            raise OAuth2LoginError("External identity has no email", code="missing_email")

        user = self.users.upsert(email, name)
        self._enter(LoginStage.USER_RESOLVED, user.id)

        refresh_token = self.token_codec.issue_for_user(user, self.refresh_ttl)
        self._enter(LoginStage.REFRESH_ISSUED, user.id)

        self.refresh_tokens.upsert(user.id, refresh_token)
        self._enter(LoginStage.REFRESH_PERSISTED, user.id)

        response = Response(status=302)
        delete_cookie(response, self.refresh_cookie_name, secure=self.secure_cookies)
        add_cookie(response, self.refresh_cookie_name, refresh_token,
                   int(self.refresh_ttl.total_seconds()), secure=self.secure_cookies)
        self._enter(LoginStage.COOKIE_SET, user.id)

        access_token = self.token_codec.issue_for_user(user, self.access_ttl)
        self._enter(LoginStage.ACCESS_ISSUED, user.id)

        self.cookie_state.clear(response)
        self._enter(LoginStage.FLOW_CLEARED, user.id)

        response.headers["Location"] = build_target_url(self.success_path, access_token)
        self._enter(LoginStage.REDIRECTED, user.id)
        return response

    @staticmethod
    def _enter(stage: LoginStage, user_id: Optional[int] = None):
        logger.info("login.stage stage=%s user_id=%s", stage.value, user_id)
