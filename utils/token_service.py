"""AccessTokenRefreshService: trade a stored refresh token for a new access token."""
from __future__ import annotations

import hmac
import logging
from datetime import timedelta

from models.refresh_token_store import RefreshTokenStore
from models.user_directory import UserDirectory
from utils.exceptions import InvalidRefreshToken, MalformedToken
from utils.security import TokenCodec

logger = logging.getLogger(__name__)

ACCESS_TOKEN_DURATION = timedelta(days=1)


class AccessTokenRefreshService:
    def __init__(self, token_codec: TokenCodec, refresh_tokens: RefreshTokenStore,
                 users: UserDirectory, access_ttl: timedelta = ACCESS_TOKEN_DURATION):
        self.token_codec = token_codec
        self.refresh_tokens = refresh_tokens
        self.users = users
        self.access_ttl = access_ttl

    def create_new_access_token(self, presented_refresh_token: str) -> str:
        # Same checks as validate(): signature, issuer and expiry
        try:
            user_id = self.token_codec.get_user_id(presented_refresh_token)
        except MalformedToken as exc:
            raise InvalidRefreshToken(exc.message) from exc

        stored = self.refresh_tokens.find_by_user_id(user_id)
        if stored is None:
            logger.info("refresh rejected user_id=%s reason=no_stored_token", user_id)
            raise InvalidRefreshToken()
        if not hmac.compare_digest(stored.refresh_token.encode(), presented_refresh_token.encode()):
            logger.info("refresh rejected user_id=%s reason=token_mismatch", user_id)
            raise InvalidRefreshToken()

        user = self.users.get_by_id(user_id)
        logger.info("access token refreshed user_id=%s", user_id)
        return self.token_codec.issue_for_user(user, self.access_ttl)
