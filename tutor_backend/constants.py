"""
Application Constants for the Code Tutor backend.

Centralizes limits, defaults, and magic numbers.
"""

# =============================================================================
# Authentication Configuration
# =============================================================================

JWT_ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 72  # bcrypt only looks at the first 72 bytes
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 255

REGISTER_RATE_LIMIT = "5/minute"
LOGIN_RATE_LIMIT = "10/minute"
TESTING_RATE_LIMIT = "1000/minute"

# =============================================================================
# Pagination Defaults
# =============================================================================

CHAT_DEFAULT_LIMIT = 50
CODE_ANALYSIS_DEFAULT_LIMIT = 20
MAX_PAGE_LIMIT = 100
RECENT_ANALYSES_LIMIT = 5

# =============================================================================
# Content Limits
# =============================================================================

MAX_CHAT_MESSAGE_LENGTH = 20000
MAX_CODE_LENGTH = 200000
MAX_LANGUAGE_LENGTH = 50
MIN_SCORE = 0
MAX_SCORE = 100

# =============================================================================
# Uploads
# =============================================================================

ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/gif"]

# Extension used when the client filename has none
DEFAULT_IMAGE_EXTENSION = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
}

# Pillow format names accepted for avatars and the MIME type each is served as
IMAGE_FORMAT_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
}

# Content type served for files read back from disk
EXTENSION_CONTENT_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
}

MEMORY_UPLOAD_CACHE_SECONDS = 1800
DISK_UPLOAD_CACHE_SECONDS = 31536000

# =============================================================================
# Service
# =============================================================================

API_VERSION = "1.0.0"
