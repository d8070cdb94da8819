"""
Tests for input sanitization module.

Tests that upload names cannot escape the store and that stored text is
stripped of control characters.
"""

import pytest

from tutor_backend.sanitization import (
    image_extension,
    is_safe_stored_filename,
    sanitize_text_content,
)


# =============================================================================
# Stored Filename Tests
# =============================================================================

class TestStoredFilenames:
    """Test names accepted by the upload serving endpoint."""

    def test_generated_names_are_safe(self):
        """Test names produced by the upload endpoint pass."""
        assert is_safe_stored_filename("9b2c7f1e-0d3a-4c55-9a61-1f0f2a7d9e10-1700000000000.png")
        assert is_safe_stored_filename("avatar_1.jpeg")

    @pytest.mark.parametrize("filename", [
        "../../config.json",
        "~/secret.key",
        "/etc/shadow",
        "dir/../file.txt",
        "file\\..\\windows\\system32",
        "image.png\x00.txt",
        ".hidden",
        "",
        "a" * 300,
    ])
    def test_dangerous_names_are_rejected(self, filename):
        """Test traversal, null bytes, hidden files and oversize names."""
        assert not is_safe_stored_filename(filename)


# =============================================================================
# Extension Tests
# =============================================================================

class TestImageExtension:
    """Test extension selection for stored uploads."""

    def test_uses_client_extension(self):
        assert image_extension("Photo.JPEG", "image/jpeg") == "jpeg"

    def test_falls_back_to_mime_type(self):
        assert image_extension("photo", "image/png") == "png"
        assert image_extension(None, "image/gif") == "gif"

    def test_ignores_unsafe_extension(self):
        """Test an extension with path characters is replaced."""
        assert image_extension("photo.p/ng", "image/png") == "png"
        assert image_extension("photo.png\x00", "image/png") == "png"

    def test_strips_directories(self):
        assert image_extension("C:\\Users\\ana\\me.gif", "image/gif") == "gif"

    def test_extension_must_match_detected_type(self):
        """Test a client extension naming another format is replaced."""
        assert image_extension("photo.png", "image/jpeg") == "jpg"
        assert image_extension("photo.bmp", "image/png") == "png"


# =============================================================================
# Text Content Tests
# =============================================================================

class TestTextContent:
    """Test chat and code text sanitization."""

    def test_removes_control_characters(self):
        assert sanitize_text_content("hi\x00 there\x07") == "hi there"

    def test_keeps_layout_whitespace(self):
        code = "def f():\n\treturn 1\r\n"
        assert sanitize_text_content(code) == code
