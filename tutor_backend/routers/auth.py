"""
Authentication Router for the Code Tutor backend.

Endpoints:
- POST /auth/register - Register new user
- POST /auth/login - Login and get JWT token
- GET /auth/me - Current user
"""

import logging
from fastapi import APIRouter, Depends, Request, status

from ..auth import create_access_token, hash_password, verify_password
from ..config import settings
from ..constants import LOGIN_RATE_LIMIT, REGISTER_RATE_LIMIT, TESTING_RATE_LIMIT
from ..db_models import DBUser
from ..dependencies import get_current_user, get_repository, limiter
from ..exceptions import InvalidCredentialsError
from ..models import AuthResponse, User, UserCreate, UserEnvelope, UserLogin
from ..repository import DatabaseRepository

# Initialize logger
logger = logging.getLogger(__name__)

# Test mode uses relaxed limits
REGISTER_LIMIT = TESTING_RATE_LIMIT if settings.testing else REGISTER_RATE_LIMIT
LOGIN_LIMIT = TESTING_RATE_LIMIT if settings.testing else LOGIN_RATE_LIMIT

# Create router
router = APIRouter(
    prefix="/auth",
    tags=["authentication"],
    responses={401: {"description": "Unauthorized"}},
)

# =============================================================================
# Registration Endpoint
# =============================================================================

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
async def register(
    request: Request,
    user_create: UserCreate,
    repo: DatabaseRepository = Depends(get_repository)
) -> AuthResponse:
    """
    Register new user and log them in.

    Rate limited to 5 attempts per minute per client address.

    Returns:
        The created user and a bearer token

    Raises:
        DuplicateEmailError (400): If the email is already registered
    """
    db_user = await repo.create_user(
        email=user_create.email,
        password_hash=hash_password(user_create.password),
        name=user_create.name,
        avatar_url=user_create.avatar_url,
        level=user_create.level,
        xp=user_create.xp,
        completed_exercises=user_create.completed_exercises,
    )
    logger.info(f"Registered user {db_user.id}")

    return AuthResponse(
        user=User.model_validate(db_user),
        token=create_access_token(db_user.id),
    )

# =============================================================================
# Login Endpoint
# =============================================================================

@router.post("/login", response_model=AuthResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,
    user_login: UserLogin,
    repo: DatabaseRepository = Depends(get_repository)
) -> AuthResponse:
    """
    Login and get JWT token.

    Unknown email and wrong password produce the same response so the
    endpoint does not reveal which emails are registered.

    Raises:
        InvalidCredentialsError (401): If credentials are invalid
    """
    db_user = await repo.get_user_by_email(user_login.email)

    if not db_user or not verify_password(user_login.password, db_user.password_hash):
        logger.warning("Failed login attempt")
        raise InvalidCredentialsError()

    return AuthResponse(
        user=User.model_validate(db_user),
        token=create_access_token(db_user.id),
    )

# =============================================================================
# Current User Endpoint
# =============================================================================

@router.get("/me", response_model=UserEnvelope)
async def me(current_user: DBUser = Depends(get_current_user)) -> UserEnvelope:
    """Return the authenticated user."""
    return UserEnvelope(user=User.model_validate(current_user))
