"""
Tests for password hashing and access tokens.

Tests:
- bcrypt hashing and verification
- Access token creation, expiry and tampering
- Temporary passwords and strength rules
"""

from datetime import timedelta

import jwt
import pytest

from core.config import settings
from core.security import (
    create_access_token,
    generate_temporary_password,
    hash_password,
    password_strength_errors,
    verify_jwt_token,
    verify_password,
)


class TestPasswordHashing:
    """Test bcrypt password hashing."""

    def test_hash_and_verify(self):
        """A hash verifies against its own password only."""
        hashed = hash_password("Secret123", rounds=4)
        assert hashed != "Secret123"
        assert verify_password("Secret123", hashed)
        assert not verify_password("secret123", hashed)

    def test_hashes_are_salted(self):
        """The same password hashes differently each time."""
        assert hash_password("Secret123", rounds=4) != hash_password("Secret123", rounds=4)

    @pytest.mark.parametrize("stored", ["", "not-a-bcrypt-hash"])
    def test_malformed_hash_rejected(self, stored):
        """Empty or corrupt stored hashes never verify."""
        assert verify_password("Secret123", stored) is False


class TestAccessTokens:
    """Test JWT creation and validation."""

    def test_round_trip_payload(self):
        token = create_access_token(42, "student")
        payload = verify_jwt_token(token)

        assert payload["sub"] == "42"
        assert payload["role"] == "student"
        assert payload["type"] == "access"
        assert payload["jti"]

    def test_expired_token(self):
        """Tokens past their lifetime raise ExpiredSignatureError."""
        token = create_access_token(1, "admin", expires_delta=timedelta(seconds=-5))
        with pytest.raises(jwt.ExpiredSignatureError):
            verify_jwt_token(token)

    def test_wrong_secret(self):
        token = create_access_token(1, "admin", secret_key="another-secret-key-with-32-characters")
        with pytest.raises(jwt.InvalidTokenError):
            verify_jwt_token(token)

    def test_wrong_token_type(self):
        """Tokens that are not access tokens are refused."""
        token = jwt.encode(
            {"sub": "1", "type": "refresh", "exp": 9999999999},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_jwt_token(token)

    def test_garbage_token(self):
        with pytest.raises(jwt.InvalidTokenError):
            verify_jwt_token("not.a.token")


class TestPasswordRules:
    """Test temporary password generation and strength checks."""

    def test_temporary_password_is_strong(self):
        for _ in range(20):
            password = generate_temporary_password()
            assert len(password) == 12
            assert password_strength_errors(password) == []

    @pytest.mark.parametrize("password,expected_errors", [
        ("Passw0rd", 0),
        ("short1A", 1),
        ("alllowercase1", 1),
        ("ALLUPPERCASE1", 1),
        ("NoDigitsHere", 1),
        ("abc", 3),
    ])
    def test_strength_rules(self, password, expected_errors):
        assert len(password_strength_errors(password)) == expected_errors
