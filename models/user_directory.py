"""
UserDirectory: the user lookups the auth subsystem needs.

upsert() is keyed on the unique email column, so concurrent first logins for
the same address end with a single row.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from models import storage
from models.user import User
from utils.exceptions import UnknownUser
from utils.security import hash_password

logger = logging.getLogger(__name__)

MAX_UPSERT_ATTEMPTS = 3


def normalize_email(email):
    return email.strip().lower() if isinstance(email, str) else email


class UserDirectory:
    def __init__(self, max_attempts: int = MAX_UPSERT_ATTEMPTS):
        self.max_attempts = max_attempts

    def find_by_email(self, email: str) -> Optional[User]:
        session = storage.get_session()
        return session.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_id(self, user_id: int) -> Optional[User]:
        return storage.get(User, user_id)

    def get_by_id(self, user_id: int) -> User:
        user = self.find_by_id(user_id)
        if user is None:
            raise UnknownUser(f"User {user_id} not found")
        return user

    def upsert(self, email: str, name: Optional[str]) -> User:
        """Create the user on first external login, else refresh its display name."""
        email = normalize_email(email)
        for attempt in range(1, self.max_attempts + 1):
            user = self.find_by_email(email)
            if user is not None:
                user.update(name)
            else:
                user = User(email=email, nickname=name)
            storage.new(user)
            try:
                storage.save()
            except IntegrityError:
                logger.info("user upsert conflict attempt=%d", attempt)
                continue
            return user
        raise UnknownUser("User could not be resolved")

    def create(self, email: str, password: str, nickname: Optional[str] = None) -> User:
        """Password signup. Raises IntegrityError when the email is taken."""
        user = User(email=normalize_email(email), password_hash=hash_password(password), nickname=nickname)
        storage.new(user)
        storage.save()
        return user
