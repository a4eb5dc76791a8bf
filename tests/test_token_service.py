"""Token service: signing, verification and jti hashing."""

from datetime import timedelta
from types import SimpleNamespace

import pytest
from jose import jwt

from app.core.config import ACCESS_TOKEN_SECRET, REFRESH_TOKEN_SECRET, ALGORITHM
from app.core.security import (
    generate_access_token, generate_refresh_token, verify_access_token,
    verify_refresh_token, hash_token_id, token_id_matches, TokenError,
    verify_password, get_password_hash,
)
from app.models.user import UserRole


@pytest.fixture
def user():
    return SimpleNamespace(id=7, email="kevin@example.com", role=UserRole.employee)


@pytest.mark.unit
class TestAccessToken:
    def test_carries_identity_claims(self, user):
        payload = verify_access_token(generate_access_token(user))
        assert payload["id"] == 7
        assert payload["email"] == "kevin@example.com"
        assert payload["role"] == "employee"

    def test_expires_after_fifteen_minutes(self, user):
        payload = jwt.decode(generate_access_token(user), ACCESS_TOKEN_SECRET, algorithms=[ALGORITHM])
        assert payload["exp"] - payload["iat"] == 15 * 60

    def test_expired_token_is_rejected(self, user):
        token = generate_access_token(user, expires_delta=timedelta(seconds=-1))
        with pytest.raises(TokenError):
            verify_access_token(token)

    def test_tampered_token_is_rejected(self, user):
        token = generate_access_token(user)
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])
        with pytest.raises(TokenError):
            verify_access_token(tampered)

    def test_malformed_token_is_rejected(self):
        with pytest.raises(TokenError):
            verify_access_token("not-a-jwt")

    def test_refresh_token_is_not_accepted_as_access_token(self, user):
        refresh_token, _ = generate_refresh_token(user, "family-1")
        with pytest.raises(TokenError):
            verify_access_token(refresh_token)


@pytest.mark.unit
class TestRefreshToken:
    def test_carries_family_and_fresh_jti(self, user):
        token_a, jti_a = generate_refresh_token(user, "family-1")
        token_b, jti_b = generate_refresh_token(user, "family-1")

        payload = verify_refresh_token(token_a)
        assert payload["id"] == 7
        assert payload["family"] == "family-1"
        assert payload["jti"] == jti_a
        assert jti_a != jti_b
        assert token_a != token_b

    def test_expires_after_seven_days(self, user):
        token, _ = generate_refresh_token(user, "family-1")
        payload = jwt.decode(token, REFRESH_TOKEN_SECRET, algorithms=[ALGORITHM])
        assert payload["exp"] - payload["iat"] == 7 * 24 * 60 * 60

    def test_signed_with_its_own_secret(self, user):
        token, _ = generate_refresh_token(user, "family-1")
        with pytest.raises(Exception):
            jwt.decode(token, ACCESS_TOKEN_SECRET, algorithms=[ALGORITHM])

    def test_access_token_is_not_accepted_as_refresh_token(self, user):
        with pytest.raises(TokenError):
            verify_refresh_token(generate_access_token(user))

    def test_expired_refresh_token_is_rejected(self, user):
        token, _ = generate_refresh_token(user, "family-1", expires_delta=timedelta(seconds=-1))
        with pytest.raises(TokenError):
            verify_refresh_token(token)


@pytest.mark.unit
class TestTokenIdHash:
    def test_hash_is_one_way_digest(self):
        digest = hash_token_id("abc123")
        assert digest != "abc123"
        assert len(digest) == 64

    def test_matches_only_the_hashed_jti(self):
        stored = hash_token_id("abc123")
        assert token_id_matches("abc123", stored) is True
        assert token_id_matches("abc124", stored) is False

    def test_no_stored_hash_never_matches(self):
        assert token_id_matches("abc123", None) is False


@pytest.mark.unit
def test_password_hash_roundtrip():
    hashed = get_password_hash("Password123!")
    assert hashed != "Password123!"
    assert verify_password("Password123!", hashed) is True
    assert verify_password("wrong", hashed) is False
    assert verify_password("Password123!", None) is False
