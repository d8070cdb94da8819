"""
Tests for avatar upload router endpoints.

Tests uploading, serving, expiry and the debug listing.
"""

import pytest

from tutor_backend.config import settings
from tutor_backend.dependencies import get_upload_store
from tutor_backend.main import app
from tutor_backend.upload_store import DiskUploadStore, MemoryUploadStore

from tests.conftest import make_image_bytes


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _upload(client, headers, content, filename="avatar.png", mime="image/png"):
    return client.post(
        "/upload/profile-photo",
        files={"file": (filename, content, mime)},
        headers=headers,
    )


# =============================================================================
# UPLOAD TESTS
# =============================================================================

def test_upload_profile_photo(client, registered_user, auth_headers, png_bytes):
    """Test a PNG upload sets the avatar URL."""
    response = _upload(client, auth_headers, png_bytes)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    user_id = registered_user["user"]["id"]
    assert body["avatar_url"].startswith(f"{settings.backend_url}/upload/uploads/{user_id}-")
    assert body["avatar_url"].endswith(".png")

    me = client.get("/auth/me", headers=auth_headers).json()["user"]
    assert me["avatar_url"] == body["avatar_url"]


@pytest.mark.parametrize("fmt,mime,ext", [
    ("JPEG", "image/jpeg", "jpg"),
    ("GIF", "image/gif", "gif"),
])
def test_upload_other_formats(client, auth_headers, fmt, mime, ext):
    """Test JPEG and GIF are accepted."""
    response = _upload(client, auth_headers, make_image_bytes(fmt), filename=f"photo.{ext}", mime=mime)

    assert response.status_code == 200
    assert response.json()["avatar_url"].endswith(f".{ext}")


def test_upload_without_file(client, auth_headers):
    """Test a request with no file."""
    response = client.post("/upload/profile-photo", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "No file uploaded"


def test_upload_rejects_non_image_mime(client, auth_headers):
    """Test non-image MIME types are refused."""
    response = _upload(client, auth_headers, b"%PDF-1.4", filename="cv.pdf", mime="application/pdf")

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid file type. Only JPEG, PNG and GIF are allowed."


def test_upload_rejects_oversized_payload(client, auth_headers):
    """Test payloads over the size limit are refused."""
    content = b"\x89PNG" + b"\x00" * settings.upload_max_bytes

    response = _upload(client, auth_headers, content)

    assert response.status_code == 400
    assert response.json()["message"] == "File too large. Maximum size is 2MB."


def test_upload_rejects_bytes_that_are_not_an_image(client, auth_headers):
    """Test an image MIME type with non-image content."""
    response = _upload(client, auth_headers, b"definitely not a png")

    assert response.status_code == 400
    assert response.json()["message"] == "Uploaded file is not a valid image"


@pytest.mark.parametrize("fmt", ["BMP", "TIFF", "ICO"])
def test_upload_rejects_other_image_formats(client, auth_headers, fmt):
    """Test images of unsupported formats are refused whatever MIME type is declared."""
    response = _upload(client, auth_headers, make_image_bytes(fmt))

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid file type. Only JPEG, PNG and GIF are allowed."
    assert client.get("/upload/debug/files", headers=auth_headers).json()["totalFiles"] == 0


def test_upload_stores_detected_type(client, auth_headers):
    """Test JPEG bytes declared as PNG are stored and served as JPEG."""
    content = make_image_bytes("JPEG")
    avatar_url = _upload(client, auth_headers, content, filename="avatar.png").json()["avatar_url"]

    assert avatar_url.endswith(".jpg")
    response = client.get(avatar_url[len(settings.backend_url):])
    assert response.headers["content-type"] == "image/jpeg"
    assert response.content == content


# =============================================================================
# SERVING TESTS
# =============================================================================

def test_serve_uploaded_file(client, auth_headers, png_bytes):
    """Test an uploaded file is served publicly with caching headers."""
    avatar_url = _upload(client, auth_headers, png_bytes).json()["avatar_url"]
    path = avatar_url[len(settings.backend_url):]

    response = client.get(path)

    assert response.status_code == 200
    assert response.content == png_bytes
    assert response.headers["content-type"] == "image/png"
    assert response.headers["content-length"] == str(len(png_bytes))
    assert response.headers["cache-control"] == "public, max-age=1800"


def test_serve_missing_file(client):
    """Test an unknown filename."""
    response = client.get("/upload/uploads/nope-123.png")

    assert response.status_code == 404


def test_serve_rejects_traversal_names(client):
    """Test names that try to leave the store."""
    response = client.get("/upload/uploads/..%2F..%2Fetc%2Fpasswd")

    assert response.status_code == 404


def test_uploaded_file_expires(client, auth_headers, png_bytes):
    """Test a memory upload is gone once its lifetime has elapsed."""
    clock = FakeClock()
    store = MemoryUploadStore(ttl_seconds=3600, cache_max_age=1800, clock=clock)
    app.dependency_overrides[get_upload_store] = lambda: store

    avatar_url = _upload(client, auth_headers, png_bytes).json()["avatar_url"]
    path = avatar_url[len(settings.backend_url):]

    clock.now += 3599
    assert client.get(path).status_code == 200

    clock.now += 1
    assert client.get(path).status_code == 404
    assert store.list_files() == []


def test_disk_store_serves_with_long_cache(client, auth_headers, png_bytes, tmp_path):
    """Test disk-backed uploads are cached for a year."""
    store = DiskUploadStore(str(tmp_path), cache_max_age=31536000)
    app.dependency_overrides[get_upload_store] = lambda: store

    avatar_url = _upload(client, auth_headers, png_bytes).json()["avatar_url"]
    response = client.get(avatar_url[len(settings.backend_url):])

    assert response.status_code == 200
    assert response.headers["cache-control"] == "public, max-age=31536000"
    assert response.headers["content-type"] == "image/png"
    assert len(list(tmp_path.iterdir())) == 1


# =============================================================================
# DEBUG LISTING TESTS
# =============================================================================

def test_debug_files_lists_uploads(client, auth_headers, png_bytes):
    """Test the debug listing reports stored files."""
    avatar_url = _upload(client, auth_headers, png_bytes).json()["avatar_url"]

    response = client.get("/upload/debug/files", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["totalFiles"] == 1
    entry = body["files"][0]
    assert avatar_url.endswith(entry["filename"])
    assert entry["size"] == len(png_bytes)
    assert entry["mimeType"] == "image/png"
    assert entry["uploadedAt"] > 0


def test_debug_files_hidden_in_production(client, auth_headers, monkeypatch):
    """Test the debug listing is unavailable in production."""
    monkeypatch.setattr(settings, "environment", "production")

    response = client.get("/upload/debug/files", headers=auth_headers)

    assert response.status_code == 404
