"""
Shared test fixtures for all test modules.

Provides:
- Test environment setup (TESTING=true, JWT secret, in-memory database)
- Fresh tables and an empty upload store for every test
- client / auth_headers fixtures for router tests
- Pillow-generated image bytes for upload tests
"""

import os
from io import BytesIO
from typing import Dict

import pytest

# =============================================================================
# Test Environment Configuration
# =============================================================================

# Must be set before tutor_backend is imported
os.environ['TESTING'] = 'true'
os.environ['JWT_SECRET'] = os.environ.get('JWT_SECRET', 'test-secret-key-for-testing')
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['UPLOAD_STORAGE'] = 'memory'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['BACKEND_URL'] = 'http://testserver'

from fastapi.testclient import TestClient
from PIL import Image

from tutor_backend import dependencies
from tutor_backend.database import engine, SessionLocal
from tutor_backend.db_models import Base
from tutor_backend.main import app

# =============================================================================
# Database / State Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def reset_state():
    """Recreate all tables and empty the upload store around every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    for stored in dependencies.upload_store.list_files():
        dependencies.upload_store.delete(stored.filename)

    yield

    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Session bound to the test database, for repository-level tests."""
    session = SessionLocal()
    yield session
    session.close()

# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


def register_user(client, email: str = "ana@example.com", password: str = "password123", name: str = "Ana Lima") -> Dict:
    """Register a user and return the {user, token} response body."""
    response = client.post(
        "/auth/register",
        json={"email": email, "password": password, "name": name}
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def registered_user(client) -> Dict:
    """A registered user: {"user": {...}, "token": "..."}."""
    return register_user(client)


@pytest.fixture
def auth_headers(registered_user) -> Dict[str, str]:
    """Bearer headers for the registered user."""
    return {"Authorization": f"Bearer {registered_user['token']}"}


@pytest.fixture
def other_user(client) -> Dict:
    """A second user, for cross-user access tests."""
    return register_user(client, email="bruno@example.com", name="Bruno Costa")


@pytest.fixture
def other_headers(other_user) -> Dict[str, str]:
    return {"Authorization": f"Bearer {other_user['token']}"}

# =============================================================================
# Image Fixtures
# =============================================================================

def make_image_bytes(fmt: str = "PNG", size=(8, 8)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")
