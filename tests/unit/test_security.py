"""Unit tests for token, password and signed-code helpers."""

import time

import pytest

from src.dentacare.core.config import Settings
from src.dentacare.core.exceptions import UnauthorizedError
from src.dentacare.core.security import (
    _decode_jwt,
    _encode_jwt,
    create_access_token,
    hash_password,
    sign_payload,
    unsign_payload,
    verify_password,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(SECRET_KEY="unit-test-secret-key-that-is-long-enough", ACCESS_TOKEN_EXPIRE_MINUTES=5)


def test_access_token_round_trip(settings):
    token, expires_in = create_access_token(user_id=7, role="dentist", clinic_id=3, settings=settings)
    payload = _decode_jwt(token, settings=settings)

    assert expires_in == 300
    assert payload["sub"] == "7"
    assert payload["role"] == "dentist"
    assert payload["clinic_id"] == 3


def test_expired_token_rejected(settings):
    token = _encode_jwt({"sub": "1", "exp": int(time.time()) - 10}, secret=settings.SECRET_KEY)
    with pytest.raises(UnauthorizedError) as exc_info:
        _decode_jwt(token, settings=settings)
    assert exc_info.value.error_code == "TOKEN_EXPIRED"


def test_tampered_token_rejected(settings):
    token, _ = create_access_token(user_id=1, role="staff", clinic_id=1, settings=settings)
    other = Settings(SECRET_KEY="a-completely-different-secret-key-value")
    with pytest.raises(UnauthorizedError) as exc_info:
        _decode_jwt(token, settings=other)
    assert exc_info.value.error_code == "INVALID_TOKEN"


def test_malformed_token_rejected(settings):
    with pytest.raises(UnauthorizedError):
        _decode_jwt("not-a-jwt", settings=settings)


def test_only_hs256_supported():
    with pytest.raises(ValueError):
        _encode_jwt({"sub": "1"}, secret="x" * 32, algorithm="RS256")


def test_password_hash_and_verify():
    stored = hash_password("s3cret-pass", iterations=1_000)
    assert stored.startswith("pbkdf2_sha256$1000$")
    assert verify_password("s3cret-pass", stored)
    assert not verify_password("wrong-pass", stored)


def test_verify_password_handles_missing_or_foreign_hashes():
    assert not verify_password("anything", None)
    assert not verify_password("anything", "")
    assert not verify_password("anything", "bcrypt$12$salt$hash")
    assert not verify_password("anything", "garbage")


def test_signed_payload_round_trip():
    code = sign_payload({"type": "daily", "clinic_id": 4}, secret="k" * 32)
    assert unsign_payload(code, secret="k" * 32) == {"type": "daily", "clinic_id": 4}


def test_signed_payload_rejects_tampering():
    code = sign_payload({"type": "daily", "clinic_id": 4}, secret="k" * 32)
    body, signature = code.rsplit(".", 1)
    forged = sign_payload({"type": "daily", "clinic_id": 5}, secret="k" * 32).rsplit(".", 1)[0]

    assert unsign_payload(f"{forged}.{signature}", secret="k" * 32) is None
    assert unsign_payload(code, secret="j" * 32) is None
    assert unsign_payload("no-dot-here", secret="k" * 32) is None
    assert unsign_payload(f"{body}.ünïcode", secret="k" * 32) is None
