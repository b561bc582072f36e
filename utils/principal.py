from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from utils.security import Claims

ROLE_USER = "ROLE_USER"


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """Identity handed to protected handlers, built from token claims only."""

    id: int
    email: str
    roles: Tuple[str, ...] = (ROLE_USER,)

    @classmethod
    def from_claims(cls, claims: Claims) -> "AuthenticatedPrincipal":
        return cls(id=claims.user_id, email=claims.subject)

    def to_dict(self) -> dict:
        return {"id": self.id, "email": self.email, "roles": list(self.roles)}


@dataclass(frozen=True)
class AuthContext:
    """Per-request authentication decision. principal is None when unauthenticated."""

    principal: Optional[AuthenticatedPrincipal] = None

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None


ANONYMOUS = AuthContext()
