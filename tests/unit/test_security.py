"""
Unit tests for password hashing and access tokens.
"""

from datetime import timedelta

import pytest
from jose import jwt

from shelfmark.security import (
    ALGORITHM,
    InvalidTokenError,
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)


SECRET = "unit-test-secret"


class TestPasswords:
    """Tests for password hashing."""

    def test_hash_verifies(self):
        password_hash = get_password_hash("correct horse")

        assert password_hash != "correct horse"
        assert verify_password("correct horse", password_hash)

    def test_wrong_password_fails(self):
        password_hash = get_password_hash("correct horse")

        assert not verify_password("battery staple", password_hash)

    def test_empty_values_fail(self):
        assert not verify_password("", get_password_hash("x"))
        assert not verify_password("x", "")


class TestAccessTokens:
    """Tests for token issuance and verification."""

    def test_round_trip_keeps_claims(self):
        token = create_access_token(
            {"userId": 7, "email": "a@example.org", "role": "librarian"}, SECRET
        )
        payload = decode_access_token(token, SECRET)

        assert payload["userId"] == 7
        assert payload["email"] == "a@example.org"
        assert payload["role"] == "librarian"
        assert "exp" in payload

    def test_wrong_secret_is_rejected(self):
        token = create_access_token({"userId": 7}, SECRET)

        with pytest.raises(InvalidTokenError):
            decode_access_token(token, "another-secret")

    def test_expired_token_is_rejected(self):
        token = create_access_token({"userId": 7}, SECRET, expires_delta=timedelta(seconds=-10))

        with pytest.raises(InvalidTokenError):
            decode_access_token(token, SECRET)

    def test_token_without_user_is_rejected(self):
        token = jwt.encode({"email": "a@example.org"}, SECRET, algorithm=ALGORITHM)

        with pytest.raises(InvalidTokenError):
            decode_access_token(token, SECRET)

    def test_garbage_is_rejected(self):
        with pytest.raises(InvalidTokenError):
            decode_access_token("not-a-token", SECRET)
