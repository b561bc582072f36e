"""
RefreshTokenStore: one persisted refresh token per user.

upsert() relies on the unique constraint on refresh_tokens.user_id: when two
writers race to insert the first row for a user, the loser gets an
IntegrityError, rolls back and retries, finding the winner's row to
overwrite.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from models import storage
from models.refresh_token import RefreshToken
from utils.exceptions import DuplicateRefreshRace

logger = logging.getLogger(__name__)

MAX_UPSERT_ATTEMPTS = 3


class RefreshTokenStore:
    def __init__(self, max_attempts: int = MAX_UPSERT_ATTEMPTS):
        self.max_attempts = max_attempts

    def find_by_user_id(self, user_id: int) -> Optional[RefreshToken]:
        session = storage.get_session()
        return session.query(RefreshToken).filter(RefreshToken.user_id == user_id).first()

    def find_by_token_value(self, value: str) -> Optional[RefreshToken]:
        session = storage.get_session()
        return session.query(RefreshToken).filter(RefreshToken.refresh_token == value).first()

    def upsert(self, user_id: int, token_value: str) -> RefreshToken:
        for attempt in range(1, self.max_attempts + 1):
            row = self.find_by_user_id(user_id)
            if row is not None:
                row.update(token_value)
            else:
                row = RefreshToken(user_id=user_id, refresh_token=token_value)
            storage.new(row)
            try:
                storage.save()
            except IntegrityError:
                # storage.save() already rolled back
                logger.info("refresh token upsert conflict user_id=%s attempt=%d", user_id, attempt)
                continue
            return row
        raise DuplicateRefreshRace(f"Refresh token upsert for user {user_id} kept conflicting")

    def delete_by_user_id(self, user_id: int) -> bool:
        row = self.find_by_user_id(user_id)
        if row is None:
            return False
        storage.delete(row)
        storage.save()
        return True
