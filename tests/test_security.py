import base64
import time
from datetime import timedelta

import jwt
import pytest

from utils.exceptions import ExpiredToken, MalformedToken, SignatureMismatch
from utils.security import Signer, TokenCodec, hash_password, verify_password

OTHER_SECRET = "YS1jb21wbGV0ZWx5LWRpZmZlcmVudC1zaWduaW5nLWtleS0wMTIzNDU2Nzg5YWJjZA=="


def test_generate_then_decode_reproduces_subject_and_claims(codec):
    token = codec.generate("a@example.com", {"id": 1, "nickname": "al"}, timedelta(days=14))

    claims = codec.decode_claims(token)

    assert codec.validate(token) is True
    assert claims.subject == "a@example.com"
    assert claims.issuer == codec.signer.issuer
    assert claims.extra == {"id": 1, "nickname": "al"}
    assert claims.user_id == 1
    assert claims.expires_at - claims.issued_at == timedelta(days=14)


def test_get_user_id_reads_id_claim(codec):
    token = codec.generate("a@example.com", {"id": 42}, timedelta(minutes=5))

    assert codec.get_user_id(token) == 42


def test_get_user_id_without_id_claim_is_malformed(codec):
    token = codec.generate("a@example.com", None, timedelta(minutes=5))

    with pytest.raises(MalformedToken):
        codec.get_user_id(token)


def test_expired_token_rewritten_with_same_key_is_rejected(codec):
    token = codec.generate("a@example.com", {"id": 1}, timedelta(days=14))
    claims = codec.decode_claims(token)
    assert claims.user_id == 1
    assert claims.subject == "a@example.com"

    payload = jwt.decode(token, codec.signer.key, algorithms=["HS256"], options={"verify_iss": False})
    payload["exp"] = int(time.time() - 1)
    expired = jwt.encode(payload, codec.signer.key, algorithm="HS256")

    assert codec.validate(expired) is False
    with pytest.raises(ExpiredToken):
        codec.decode_claims(expired)


def test_token_signed_with_other_key_is_rejected(codec):
    other = TokenCodec(Signer.from_secret(codec.signer.issuer, OTHER_SECRET))
    token = other.generate("a@example.com", {"id": 1}, timedelta(days=1))

    assert codec.validate(token) is False
    with pytest.raises(SignatureMismatch):
        codec.decode_claims(token)


def test_token_from_other_issuer_is_rejected(codec):
    other = TokenCodec(Signer(issuer="someone-else", key=codec.signer.key))
    token = other.generate("a@example.com", {"id": 1}, timedelta(days=1))

    assert codec.validate(token) is False
    with pytest.raises(MalformedToken):
        codec.decode_claims(token)


@pytest.mark.parametrize("token", [None, "", "not-a-token", "a.b.c"])
def test_garbage_never_raises_from_validate(codec, token):
    assert codec.validate(token) is False
    with pytest.raises(MalformedToken):
        codec.decode_claims(token)


def test_alg_none_token_is_rejected(codec):
    token = jwt.encode(
        {"iss": codec.signer.issuer, "sub": "a@example.com", "iat": int(time.time()),
         "exp": int(time.time()) + 60, "id": 1},
        key=None,
        algorithm="none",
    )

    assert codec.validate(token) is False


@pytest.mark.parametrize("ttl", [timedelta(0), timedelta(seconds=-5)])
def test_generate_requires_positive_ttl(codec, ttl):
    with pytest.raises(ValueError):
        codec.generate("a@example.com", {"id": 1}, ttl)


@pytest.mark.parametrize("ttl", [timedelta(microseconds=1), timedelta(milliseconds=400)])
def test_sub_second_ttl_still_yields_valid_token(codec, ttl):
    # Start right after a second boundary so the check runs inside the lifetime
    time.sleep(1 - time.time() % 1 + 0.01)

    token = codec.generate("a@example.com", {"id": 1}, ttl)

    assert codec.validate(token) is True
    claims = codec.decode_claims(token)
    assert claims.expires_at - claims.issued_at == timedelta(seconds=1)


def test_fractional_ttl_rounds_up_to_whole_seconds(codec):
    token = codec.generate("a@example.com", {"id": 1}, timedelta(seconds=90, milliseconds=1))

    claims = codec.decode_claims(token)

    assert claims.expires_at - claims.issued_at == timedelta(seconds=91)


def test_extra_claims_cannot_override_registered_claims(codec):
    with pytest.raises(ValueError):
        codec.generate("a@example.com", {"sub": "b@example.com"}, timedelta(days=1))


def test_signer_rejects_non_base64_secret():
    with pytest.raises(ValueError):
        Signer.from_secret("issuer", "this is not base64!")


def test_signer_rejects_short_key():
    with pytest.raises(ValueError):
        Signer.from_secret("issuer", base64.b64encode(b"short").decode())


def test_signer_repr_hides_key(codec):
    assert "key" not in repr(codec.signer)


def test_password_hash_roundtrip():
    hashed = hash_password("correct horse")

    assert verify_password("correct horse", hashed) is True
    assert verify_password("wrong horse", hashed) is False
    assert verify_password("correct horse", None) is False
