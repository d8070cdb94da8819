"""
Shared Dependencies for the Code Tutor backend.

Provides:
- Authentication dependency (get_current_user), the single bearer-token
  check used by every protected route
- Repository dependency
- Upload store instance
- Rate limiter
"""

import logging

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from .auth import get_token_user_id
from .config import settings
from .database import get_db
from .db_models import DBUser
from .exceptions import AuthenticationError, InvalidTokenError
from .repository import DatabaseRepository
from .upload_store import UploadStore, create_upload_store

# Logger
logger = logging.getLogger(__name__)

# =============================================================================
# OAuth2 Scheme
# =============================================================================

# auto_error is off so a missing header produces the API's own 401 body
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

# =============================================================================
# Rate Limiting
# =============================================================================

# Shared limiter; routes pick relaxed limits when TESTING is set
limiter = Limiter(key_func=get_remote_address)

# =============================================================================
# Shared State
# =============================================================================

# Avatar store shared by all requests in this process
upload_store: UploadStore = create_upload_store(settings)


def get_upload_store() -> UploadStore:
    """Get the process-wide upload store."""
    return upload_store

# =============================================================================
# Repository Dependency
# =============================================================================

def get_repository(db: Session = Depends(get_db)) -> DatabaseRepository:
    """
    Get repository instance for dependency injection.

    Usage:
        @router.get("/chat")
        async def list_messages(
            repo: DatabaseRepository = Depends(get_repository),
            user: DBUser = Depends(get_current_user)
        ):
            ...
    """
    return DatabaseRepository(db)

# =============================================================================
# Authentication Dependency
# =============================================================================

async def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    repo: DatabaseRepository = Depends(get_repository),
) -> DBUser:
    """
    Resolve the caller from an `Authorization: Bearer <token>` header.

    Raises:
        AuthenticationError (401): Header missing or not a bearer token
        InvalidTokenError (401): Signature invalid or token expired
        AuthenticationError (401): Token names a user that no longer exists
    """
    if not token:
        raise AuthenticationError("Missing or invalid authorization header")

    try:
        user_id = get_token_user_id(token)
    except InvalidTokenError as e:
        logger.debug(f"Rejected token on {request.url.path}: {e.message}")
        raise InvalidTokenError()

    user = await repo.get_user(user_id)
    if not user:
        raise AuthenticationError("User not found")

    request.state.user_id = user.id
    return user
