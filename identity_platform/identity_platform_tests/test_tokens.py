"""Tests for password hashing and the JWT token codec."""
import time

import jwt
import pytest

from identity_platform.identity_platform.auth_service.auth import (
    TokenCodec,
    TokenError,
    hash_password,
    hash_token,
    verify_password,
)
from identity_platform.identity_platform.auth_service.schemas import Claims


def make_claims(exp_offset=3600, **overrides):
    now = int(time.time())
    data = {
        "sub": "3f2b8c9e-0000-4000-8000-000000000001",
        "email": "user@example.com",
        "username": "user",
        "role": "user",
        "iat": now,
        "exp": now + exp_offset,
        "jti": "abc123",
    }
    data.update(overrides)
    return Claims(**data)


@pytest.fixture
def codec():
    return TokenCodec("test_secret")


def test_encode_decode(codec):
    claims = make_claims()

    token = codec.encode(claims)

    assert token.count(".") == 2
    assert codec.decode(token) == claims


def test_decode_expired_token(codec):
    token = codec.encode(make_claims(exp_offset=-3600, iat=int(time.time()) - 7200))

    with pytest.raises(TokenError):
        codec.decode(token)


def test_decode_wrong_secret(codec):
    token = TokenCodec("another_secret").encode(make_claims())

    with pytest.raises(TokenError):
        codec.decode(token)


def test_decode_garbage(codec):
    with pytest.raises(TokenError):
        codec.decode("not.a.token")


def test_decode_missing_claims(codec):
    now = int(time.time())
    token = jwt.encode({"sub": "someone", "iat": now, "exp": now + 60}, "test_secret", algorithm="HS256")

    with pytest.raises(TokenError):
        codec.decode(token)


def test_decode_rejects_unsigned_token(codec):
    token = jwt.encode(make_claims().model_dump(), None, algorithm="none")

    with pytest.raises(TokenError):
        codec.decode(token)


def test_empty_secret_rejected():
    with pytest.raises(ValueError):
        TokenCodec("")


def test_password_hash_roundtrip():
    hashed = hash_password("Secret123!")

    assert hashed != "Secret123!"
    assert verify_password("Secret123!", hashed)
    assert not verify_password("Secret124!", hashed)


def test_verify_password_with_corrupt_hash():
    assert verify_password("Secret123!", "not-a-hash") is False


def test_hash_token_is_sha256_hex():
    digest = hash_token("header.payload.signature")

    assert len(digest) == 64
    assert digest == hash_token("header.payload.signature")
    assert digest != hash_token("header.payload.signaturf")
