"""
Credential helpers for Shelfmark.

- Password hashing (werkzeug.security)
- Access token issuance and verification (JWT via python-jose)
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from werkzeug.security import check_password_hash, generate_password_hash


ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7


class InvalidTokenError(Exception):
    """Token signature, expiry or claims are not acceptable."""


def get_password_hash(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    return check_password_hash(password_hash, password)


def create_access_token(
    data: dict,
    secret_key: str,
    algorithm: str = ALGORITHM,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign a JWT carrying ``data`` plus an ``exp`` claim.

    Args:
        data: Claims (userId, email, role)
        secret_key: HMAC secret
        algorithm: JWT algorithm
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES
    """
    to_encode = dict(data)
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_access_token(
    token: str,
    secret_key: str,
    algorithm: str = ALGORITHM,
) -> dict:
    """
    Verify signature and expiry and return the claims.

    Raises:
        InvalidTokenError: Bad signature, expired, or no userId claim
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    if payload.get("userId") is None:
        raise InvalidTokenError("Token has no userId claim")
    return payload
