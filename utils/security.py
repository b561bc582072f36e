"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Signer: the process-wide HS256 key, derived once from configuration
- TokenCodec: JWT issuance/validation via PyJWT
"""
from __future__ import annotations

import base64
import binascii
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

from utils.exceptions import ExpiredToken, InvalidToken, MalformedToken, SignatureMismatch

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
MIN_KEY_BYTES = 32
REGISTERED_CLAIMS = frozenset({"iss", "sub", "iat", "exp"})
USER_ID_CLAIM = "id"

ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """ Verify a plaintext password using argon2
    """
    if not password_hash:
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Signer:
    """Issuer name plus the HMAC key every token is signed and checked with.

    The secret is standard base64 (RFC 4648 section 4, padded). The decoded
    key must be at least 32 bytes, the HS256 minimum.
    """

    issuer: str
    key: bytes = field(repr=False)

    @staticmethod
    def derive_key(secret: str) -> bytes:
        if not secret:
            raise ValueError("JWT_SECRET_KEY is not configured")
        try:
            key = base64.b64decode(secret, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("JWT_SECRET_KEY must be standard base64") from exc
        if len(key) < MIN_KEY_BYTES:
            raise ValueError(f"JWT_SECRET_KEY must decode to at least {MIN_KEY_BYTES} bytes")
        return key

    @classmethod
    def from_secret(cls, issuer: str, secret: str) -> "Signer":
        signer = cls(issuer=issuer, key=cls.derive_key(secret))
        logger.info("signing key derived issuer=%s algorithm=%s", issuer, ALGORITHM)
        return signer

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "Signer":
        return cls.from_secret(config["JWT_ISSUER"], config["JWT_SECRET_KEY"])


@dataclass(frozen=True)
class Claims:
    issuer: str
    subject: str
    issued_at: datetime
    expires_at: datetime
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def user_id(self) -> Any:
        return self.extra.get(USER_ID_CLAIM)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Claims":
        return cls(
            issuer=payload["iss"],
            subject=payload["sub"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            extra={k: v for k, v in payload.items() if k not in REGISTERED_CLAIMS},
        )


class TokenCodec:
    """Issues and checks compact HS256 tokens with one immutable Signer.

    Safe to share between threads: it holds no state besides the signer.
    """

    def __init__(self, signer: Signer):
        self.signer = signer

    def generate(self, subject: str, extra_claims: Optional[Mapping[str, Any]], ttl: timedelta) -> str:
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        extra = dict(extra_claims or {})
        clash = REGISTERED_CLAIMS.intersection(extra)
        if clash:
            raise ValueError(f"extra claims may not override {sorted(clash)}")
        # Whole seconds on the wire; the lifetime rounds up so exp > iat
        issued_at = int(_now().timestamp())
        lifetime = max(1, math.ceil(ttl.total_seconds()))
        payload = {
            **extra,
            "iss": self.signer.issuer,
            "sub": str(subject),
            "iat": issued_at,
            "exp": issued_at + lifetime,
        }
        return jwt.encode(payload, self.signer.key, algorithm=ALGORITHM, headers={"typ": "JWT"})

    def issue_for_user(self, user, ttl: timedelta) -> str:
        return self.generate(user.email, {USER_ID_CLAIM: user.id}, ttl)

    def validate(self, token: Optional[str]) -> bool:
        _, error = self._parse(token)
        if error is not None:
            logger.info("token rejected reason=%s", error.__class__.__name__)
            return False
        return True

    def decode_claims(self, token: Optional[str]) -> Claims:
        payload, error = self._parse(token)
        if error is not None:
            raise error
        return Claims.from_payload(payload)

    def get_user_id(self, token: Optional[str]) -> int:
        user_id = self.decode_claims(token).user_id
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise MalformedToken("Token has no numeric id claim")
        return user_id

    def _parse(self, token: Optional[str]) -> Tuple[Optional[Dict[str, Any]], Optional[InvalidToken]]:
        """Full parse, signature, issuer and expiry check as a (payload, error) pair."""
        if not token or not isinstance(token, str):
            return None, MalformedToken("Token is empty")
        try:
            payload = jwt.decode(
                token,
                self.signer.key,
                algorithms=[ALGORITHM],
                issuer=self.signer.issuer,
                options={"require": ["iss", "sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            return None, ExpiredToken()
        except jwt.InvalidSignatureError:
            return None, SignatureMismatch()
        except jwt.InvalidTokenError as exc:
            return None, MalformedToken(f"Malformed token: {exc}")
        if payload["exp"] <= payload["iat"]:
            return None, MalformedToken("Token expiry precedes issue time")
        return payload, None
