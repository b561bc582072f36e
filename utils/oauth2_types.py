from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class AuthorizationRequest:
    """Pending external-login request, carried only in the flow-state cookie."""

    registration_id: str
    authorization_uri: str
    client_id: str
    redirect_uri: str
    scopes: Tuple[str, ...]
    state: str
    nonce: Optional[str] = None


@dataclass(frozen=True)
class ClientRegistration:
    registration_id: str
    client_id: str
    client_secret: str
    authorization_uri: str
    token_uri: str
    user_info_uri: str
    scopes: Tuple[str, ...] = ()
    email_attribute: str = "email"
    name_attribute: str = "name"

    @classmethod
    def from_mapping(cls, registration_id: str, data: dict) -> "ClientRegistration":
        return cls(
            registration_id=registration_id,
            client_id=data["client_id"],
            client_secret=data["client_secret"],
            authorization_uri=data["authorization_uri"],
            token_uri=data["token_uri"],
            user_info_uri=data["user_info_uri"],
            scopes=tuple(data.get("scopes") or ()),
            email_attribute=data.get("email_attribute", "email"),
            name_attribute=data.get("name_attribute", "name"),
        )
