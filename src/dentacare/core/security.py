"""Security helpers for token-based authentication.

Provides the HS256 JWT encoder/decoder used by the auth endpoints and RBAC
dependencies, and PBKDF2 password hashing for clinic staff and patient
accounts. Everything here is standard-library only.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from .config import Settings
from .exceptions import UnauthorizedError

PASSWORD_SCHEME = "pbkdf2_sha256"


def _base64url_encode(data: bytes) -> str:
    """Encode bytes using base64 URL-safe encoding without padding."""

    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _base64url_decode(data: str) -> bytes:
    """Decode a base64url-encoded string, handling missing padding."""

    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(signing_input: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return _base64url_encode(digest)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def _encode_jwt(payload: dict, *, secret: str, algorithm: str = "HS256") -> str:
    """Minimal HS256 JWT encoder using only the standard library."""

    if algorithm != "HS256":
        raise ValueError("Only HS256 algorithm is supported in this implementation")

    header = {"alg": algorithm, "typ": "JWT"}

    header_json = json.dumps(header, separators=(",", ":"), sort_keys=True).encode("utf-8")
    payload_json = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")

    encoded_header = _base64url_encode(header_json)
    encoded_payload = _base64url_encode(payload_json)

    signing_input = f"{encoded_header}.{encoded_payload}".encode("ascii")
    return f"{encoded_header}.{encoded_payload}.{_sign(signing_input, secret)}"


def _decode_jwt(token: str, *, settings: Settings) -> dict[str, Any]:
    """Decode and validate an HS256 JWT.

    - Verifies signature with SECRET_KEY
    - Checks the exp claim against current UTC time
    """

    try:
        header_b64, payload_b64, signature_b64 = token.split(".")
    except ValueError as exc:
        raise UnauthorizedError(
            message="Invalid token format",
            error_code="INVALID_TOKEN",
        ) from exc

    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    expected_sig_b64 = _sign(signing_input, settings.SECRET_KEY)

    # Constant-time comparison
    if not hmac.compare_digest(signature_b64, expected_sig_b64):
        raise UnauthorizedError(
            message="Invalid token signature",
            error_code="INVALID_TOKEN",
        )

    try:
        payload = json.loads(_base64url_decode(payload_b64))
    except (ValueError, UnicodeDecodeError) as exc:
        raise UnauthorizedError(
            message="Invalid token payload",
            error_code="INVALID_TOKEN",
        ) from exc

    exp = payload.get("exp")
    if not isinstance(exp, int):
        raise UnauthorizedError(
            message="Invalid token expiration",
            error_code="INVALID_TOKEN",
        )

    now_ts = int(datetime.now(UTC).timestamp())
    if now_ts >= exp:
        raise UnauthorizedError(
            message="Token has expired",
            error_code="TOKEN_EXPIRED",
        )

    return payload


def create_access_token(
    *,
    user_id: int,
    role: str,
    clinic_id: int | None,
    settings: Settings,
) -> tuple[str, int]:
    """Create a signed access token for a clinic user.

    Returns:
        Tuple of (token, expires_in_seconds)
    """
    now = datetime.now(UTC)
    expire_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(user_id),
        "role": role,
        "clinic_id": clinic_id,
        "iat": int(now.timestamp()),
        "exp": int((now + expire_delta).timestamp()),
    }
    token = _encode_jwt(to_encode, secret=settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, int(expire_delta.total_seconds())


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def hash_password(password: str, *, iterations: int = 260_000) -> str:
    """Hash a password as ``pbkdf2_sha256$<iterations>$<salt>$<hash>``."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("ascii"), iterations)
    return f"{PASSWORD_SCHEME}${iterations}${salt}${_base64url_encode(digest)}"


def verify_password(password: str, stored: str | None) -> bool:
    """Check a password against a stored PBKDF2 hash."""
    if not stored:
        return False
    try:
        scheme, iterations, salt, expected = stored.split("$", 3)
        rounds = int(iterations)
    except ValueError:
        return False
    if scheme != PASSWORD_SCHEME:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("ascii"), rounds)
    return hmac.compare_digest(_base64url_encode(digest), expected)


# ---------------------------------------------------------------------------
# Signed opaque codes (QR check-in)
# ---------------------------------------------------------------------------

def sign_payload(payload: dict[str, Any], *, secret: str) -> str:
    """Serialize and sign a small payload as ``<body>.<signature>``."""
    body = _base64url_encode(
        json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    )
    return f"{body}.{_sign(body.encode('ascii'), secret)}"


def unsign_payload(code: str, *, secret: str) -> dict[str, Any] | None:
    """Return the payload of a signed code, or None if it was tampered with."""
    try:
        body, signature = code.rsplit(".", 1)
    except ValueError:
        return None
    if not (body.isascii() and signature.isascii()):
        return None
    if not hmac.compare_digest(signature, _sign(body.encode("ascii"), secret)):
        return None
    try:
        payload = json.loads(_base64url_decode(body))
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None
