"""
Tests for authentication router endpoints.

Tests registration, login, the current-user endpoint and the bearer-token
check shared by every protected route.
"""

from datetime import timedelta

import pytest

from tutor_backend.auth import create_access_token, decode_access_token
from tutor_backend.config import settings
from tutor_backend.db_models import DBUser

from tests.conftest import register_user


# =============================================================================
# REGISTRATION TESTS
# =============================================================================

def test_register_new_user(client):
    """Test user registration returns the user and a token."""
    response = client.post(
        "/auth/register",
        json={"email": "New.User@Example.com", "password": "password123", "name": "New User"}
    )

    assert response.status_code == 201
    data = response.json()
    assert data["user"]["email"] == "new.user@example.com"
    assert data["user"]["name"] == "New User"
    assert data["user"]["level"] == 1
    assert data["user"]["xp"] == 0
    assert data["user"]["completed_exercises"] == 0
    assert "password_hash" not in data["user"]
    assert data["token"]


def test_register_with_progress_fields(client):
    """Test optional progress fields are stored on registration."""
    response = client.post(
        "/auth/register",
        json={
            "email": "pro@example.com",
            "password": "password123",
            "name": "Pro",
            "level": 3,
            "xp": 250,
            "completed_exercises": 7,
            "avatar_url": "https://cdn.example.com/pro.png",
        }
    )

    assert response.status_code == 201
    user = response.json()["user"]
    assert (user["level"], user["xp"], user["completed_exercises"]) == (3, 250, 7)
    assert user["avatar_url"] == "https://cdn.example.com/pro.png"


def test_register_with_lifetime_in_words(client, monkeypatch):
    """Test a JWT_EXPIRES_IN written as words issues tokens with that lifetime."""
    monkeypatch.setattr(settings, "jwt_expires_in", "7 days")

    response = client.post(
        "/auth/register",
        json={"email": "words@example.com", "password": "password123", "name": "Words"}
    )

    assert response.status_code == 201
    claims = decode_access_token(response.json()["token"])
    assert claims["exp"] - claims["iat"] == int(timedelta(days=7).total_seconds())


def test_register_duplicate_email(client, db_session):
    """Test registering a duplicate email fails and creates no second row."""
    register_user(client, email="dup@example.com")

    response = client.post(
        "/auth/register",
        json={"email": "DUP@example.com", "password": "password123", "name": "Again"}
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Bad Request"
    assert body["message"] == "User already exists with this email"
    assert db_session.query(DBUser).filter_by(email="dup@example.com").count() == 1


@pytest.mark.parametrize("payload", [
    {"email": "not-an-email", "password": "password123", "name": "Valid"},
    {"email": "short@example.com", "password": "12345", "name": "Valid"},
    {"email": "name@example.com", "password": "password123", "name": "A"},
    {"email": "missing@example.com", "password": "password123"},
])
def test_register_invalid_body(client, payload):
    """Test schema violations are reported as 400 with details."""
    response = client.post("/auth/register", json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Bad Request"
    assert body["details"]


# =============================================================================
# LOGIN TESTS
# =============================================================================

def test_login_success(client, registered_user):
    """Test login returns a token for the registered user id."""
    response = client.post(
        "/auth/login",
        json={"email": "ana@example.com", "password": "password123"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == registered_user["user"]["id"]
    payload = decode_access_token(data["token"])
    assert payload["sub"] == registered_user["user"]["id"]
    assert payload["userId"] == registered_user["user"]["id"]


def test_login_is_case_insensitive_on_email(client, registered_user):
    """Test email comparison ignores case."""
    response = client.post(
        "/auth/login",
        json={"email": "ANA@Example.com", "password": "password123"}
    )
    assert response.status_code == 200


def test_login_wrong_password(client, registered_user):
    """Test login with the wrong password fails."""
    response = client.post(
        "/auth/login",
        json={"email": "ana@example.com", "password": "wrongpassword"}
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_login_unknown_email(client):
    """Test unknown email gets the same answer as a wrong password."""
    response = client.post(
        "/auth/login",
        json={"email": "nobody@example.com", "password": "password123"}
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


# =============================================================================
# CURRENT USER / TOKEN TESTS
# =============================================================================

def test_me_returns_current_user(client, registered_user, auth_headers):
    """Test /auth/me resolves the token's user."""
    response = client.get("/auth/me", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["user"]["id"] == registered_user["user"]["id"]


def test_me_without_token(client):
    """Test a missing header is rejected."""
    response = client.get("/auth/me")

    assert response.status_code == 401
    assert response.json()["message"] == "Missing or invalid authorization header"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_me_with_non_bearer_header(client, registered_user):
    """Test a non-bearer scheme is rejected."""
    response = client.get("/auth/me", headers={"Authorization": f"Token {registered_user['token']}"})

    assert response.status_code == 401
    assert response.json()["message"] == "Missing or invalid authorization header"


def test_me_with_invalid_token(client):
    """Test a garbage token is rejected."""
    response = client.get("/auth/me", headers={"Authorization": "Bearer not.a.token"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


def test_me_with_expired_token(client, registered_user):
    """Test an expired token is rejected."""
    token = create_access_token(registered_user["user"]["id"], expires_delta=timedelta(seconds=-10))

    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


def test_me_for_deleted_user(client):
    """Test a valid token for a user that no longer exists."""
    token = create_access_token("00000000-0000-0000-0000-000000000000")

    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == "User not found"


@pytest.mark.parametrize("method,path", [
    ("GET", "/auth/me"),
    ("GET", "/users"),
    ("GET", "/users/some-id"),
    ("PUT", "/users/profile"),
    ("PUT", "/users/password"),
    ("DELETE", "/users/account"),
    ("GET", "/chat"),
    ("POST", "/chat"),
    ("DELETE", "/chat"),
    ("GET", "/code-analysis"),
    ("POST", "/code-analysis"),
    ("GET", "/code-analysis/stats/summary"),
    ("POST", "/upload/profile-photo"),
    ("GET", "/upload/debug/files"),
])
def test_protected_endpoints_require_token(client, method, path):
    """Test every protected endpoint rejects requests without a token."""
    response = client.request(method, path)
    assert response.status_code == 401
