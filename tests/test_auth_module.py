"""
Tests for the authentication module.

Tests password hashing, token issue/verification and lifetime parsing.
"""

from datetime import timedelta

import pytest
from jose import jwt
from pydantic import ValidationError

from tutor_backend.auth import (
    create_access_token,
    decode_access_token,
    get_token_user_id,
    hash_password,
    parse_expires_in,
    verify_password,
)
from tutor_backend.config import Settings, settings
from tutor_backend.constants import JWT_ALGORITHM
from tutor_backend.exceptions import ConfigurationError, InvalidTokenError


# =============================================================================
# Password Hashing Tests
# =============================================================================

def test_hash_and_verify_password():
    """Test a hash verifies only its own password."""
    hashed = hash_password("password123")

    assert hashed != "password123"
    assert hashed.startswith("$2")
    assert verify_password("password123", hashed)
    assert not verify_password("password124", hashed)


def test_hashes_are_salted():
    """Test two hashes of one password differ."""
    assert hash_password("same-password") != hash_password("same-password")


def test_verify_against_malformed_hash():
    """Test a corrupt stored hash never verifies."""
    assert not verify_password("password123", "not-a-bcrypt-hash")
    assert not verify_password("password123", "")


# =============================================================================
# Lifetime Parsing Tests
# =============================================================================

@pytest.mark.parametrize("value,expected", [
    ("7d", timedelta(days=7)),
    ("12h", timedelta(hours=12)),
    ("30m", timedelta(minutes=30)),
    ("45s", timedelta(seconds=45)),
    ("2w", timedelta(weeks=2)),
    ("3600", timedelta(seconds=3600)),
    (" 1D ", timedelta(days=1)),
    ("7 days", timedelta(days=7)),
    ("2 hours", timedelta(hours=2)),
    ("1.5h", timedelta(hours=1.5)),
    ("10 mins", timedelta(minutes=10)),
    ("1 year", timedelta(days=365.25)),
    ("500ms", timedelta(milliseconds=500)),
    (90, timedelta(seconds=90)),
])
def test_parse_expires_in(value, expected):
    assert parse_expires_in(value) == expected


@pytest.mark.parametrize("value", ["", "soon", "7 fortnights", "1..5h", "-1d", "0", "0.0h"])
def test_parse_expires_in_rejects_bad_values(value):
    with pytest.raises(ConfigurationError):
        parse_expires_in(value)


def test_settings_accept_long_unit_names():
    """Test a lifetime written in words loads and drives token expiry."""
    loaded = Settings(JWT_SECRET="secret", JWT_EXPIRES_IN=" 7 days ")

    assert loaded.jwt_expires_in == "7 days"
    assert parse_expires_in(loaded.jwt_expires_in) == timedelta(days=7)


@pytest.mark.parametrize("value", ["soon", "0", "7 fortnights"])
def test_settings_reject_bad_lifetime(value):
    """Test an unusable JWT_EXPIRES_IN fails when settings load."""
    with pytest.raises(ValidationError) as exc:
        Settings(JWT_SECRET="secret", JWT_EXPIRES_IN=value)
    assert "JWT_EXPIRES_IN" in str(exc.value)


# =============================================================================
# Token Tests
# =============================================================================

def test_token_carries_user_id():
    """Test the user id is readable under both claim names."""
    token = create_access_token("user-42")

    payload = decode_access_token(token)
    assert payload["sub"] == "user-42"
    assert payload["userId"] == "user-42"
    assert payload["exp"] - payload["iat"] == int(parse_expires_in(settings.jwt_expires_in).total_seconds())
    assert get_token_user_id(token) == "user-42"


def test_token_signed_with_other_secret_is_rejected():
    token = jwt.encode({"sub": "user-42"}, "some-other-secret", algorithm=JWT_ALGORITHM)

    with pytest.raises(InvalidTokenError):
        decode_access_token(token)


def test_expired_token_is_rejected():
    token = create_access_token("user-42", expires_delta=timedelta(seconds=-1))

    with pytest.raises(InvalidTokenError) as exc:
        decode_access_token(token)
    assert exc.value.message == "Token has expired"


def test_token_with_only_legacy_claim():
    """Test tokens that carry just userId are still accepted."""
    token = jwt.encode({"userId": "legacy-7"}, settings.jwt_secret, algorithm=JWT_ALGORITHM)

    assert get_token_user_id(token) == "legacy-7"


def test_token_without_user_claim():
    token = jwt.encode({"role": "guest"}, settings.jwt_secret, algorithm=JWT_ALGORITHM)

    with pytest.raises(InvalidTokenError):
        get_token_user_id(token)
