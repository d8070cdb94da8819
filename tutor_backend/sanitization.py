"""
Input Sanitization Module

Provides functions to sanitize and validate user inputs to prevent:
- Path traversal through upload filenames
- Null bytes and control characters in stored text
"""

import os
import re
from typing import Optional

from .constants import DEFAULT_IMAGE_EXTENSION, EXTENSION_CONTENT_TYPES

MAX_FILENAME_LENGTH = 255

# Generated upload names: letters, digits, dot, dash, underscore
STORED_FILENAME_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')
EXTENSION_PATTERN = re.compile(r'^[a-z0-9]{1,10}$')

# Dangerous path sequences
DANGEROUS_PATH_PATTERNS = [
    '..',
    '~',
    '/',
    '\\',
    '\x00',  # Null byte
]

_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f]')


# =============================================================================
# Filename Sanitization
# =============================================================================

def is_safe_stored_filename(filename: str) -> bool:
    """
    Check that a requested upload name cannot address anything outside
    the upload store.

    Examples:
        >>> is_safe_stored_filename("3f2a-1700000000000.png")
        True
        >>> is_safe_stored_filename("../../../etc/passwd")
        False
    """
    if not filename or len(filename) > MAX_FILENAME_LENGTH:
        return False
    for pattern in DANGEROUS_PATH_PATTERNS:
        if pattern in filename:
            return False
    return bool(STORED_FILENAME_PATTERN.match(filename))


def image_extension(filename: Optional[str], mime_type: str) -> str:
    """
    Pick the extension for a stored upload.

    Uses the client's extension when it names the same image type as
    mime_type, falling back to the one implied by the MIME type.
    """
    fallback = DEFAULT_IMAGE_EXTENSION.get(mime_type, "jpg")
    if not filename:
        return fallback
    _, ext = os.path.splitext(os.path.basename(filename.replace('\\', '/')))
    ext = ext.lstrip('.').lower()
    if not EXTENSION_PATTERN.match(ext):
        return fallback
    if EXTENSION_CONTENT_TYPES.get(f".{ext}") != mime_type:
        return fallback
    return ext


# =============================================================================
# Text Content Sanitization
# =============================================================================

def sanitize_text_content(content: str) -> str:
    """
    Remove null bytes and non-printing control characters.

    Newlines and tabs are preserved so code snippets keep their layout.
    """
    return _CONTROL_CHARS.sub('', content)
