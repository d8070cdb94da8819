"""
Authentication Module for the Code Tutor backend.

Provides:
- Password hashing (bcrypt with unique salts, fixed cost factor)
- JWT token creation and verification
- Token lifetimes taken from JWT_EXPIRES_IN
"""

from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from .config import parse_expires_in, settings
from .constants import JWT_ALGORITHM
from .exceptions import InvalidTokenError

# Password hashing configuration (bcrypt)
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


# =============================================================================
# Password Hashing
# =============================================================================

def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with automatic per-user salt generation.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hash string
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The bcrypt hash to check against

    Returns:
        True if password matches, False otherwise
    """
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Malformed or unknown hash format
        return False

# =============================================================================
# JWT Token Management
# =============================================================================

def create_access_token(user_id: str, expires_delta: timedelta = None) -> str:
    """
    Create a signed JWT access token for a user.

    The user id is carried both as the standard "sub" claim and as
    "userId", the claim name existing clients read.

    Args:
        user_id: Id of the authenticated user
        expires_delta: Token lifetime (defaults to JWT_EXPIRES_IN)

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    lifetime = expires_delta if expires_delta is not None else parse_expires_in(settings.jwt_expires_in)
    to_encode = {
        "sub": str(user_id),
        "userId": str(user_id),
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token claims

    Raises:
        InvalidTokenError: If token is invalid or expired
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise InvalidTokenError("Token has expired")
    except JWTError:
        raise InvalidTokenError()


def get_token_user_id(token: str) -> str:
    """Verify a token and return the user id it was issued for."""
    payload = decode_access_token(token)
    user_id = payload.get("sub") or payload.get("userId")
    if not user_id:
        raise InvalidTokenError()
    return str(user_id)
