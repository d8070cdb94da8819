"""
Users Router for the Code Tutor backend.

Endpoints:
- GET /users - List users
- PUT /users/profile - Update own contact profile
- PUT /users/password - Change own password
- DELETE /users/account - Delete own account (password confirmed)
- GET /users/{user_id} - Get a user
- PUT /users/{user_id} - Partial update of own progress fields
- DELETE /users/{user_id} - Delete own account
- GET /users/{user_id}/stats - Activity statistics

The fixed paths are registered before the /{user_id} routes so that
"profile", "password" and "account" are never taken for ids.
"""

import logging
from fastapi import APIRouter, Depends

from ..auth import hash_password, verify_password
from ..db_models import DBUser
from ..dependencies import get_current_user, get_repository
from ..exceptions import InvalidRequestError, PermissionDeniedError, ResourceNotFoundError
from ..models import (
    AccountDelete,
    MessageResponse,
    PasswordChange,
    ProfileUpdate,
    ProfileUpdateResponse,
    SuccessResponse,
    User,
    UserEnvelope,
    UserList,
    UserStats,
    UserStatsEnvelope,
    UserUpdate,
)
from ..repository import DatabaseRepository

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses={401: {"description": "Unauthorized"}},
)


def _require_self(user_id: str, current_user: DBUser, action: str) -> None:
    if user_id != current_user.id:
        logger.warning(f"User {current_user.id} tried to {action} user {user_id}")
        raise PermissionDeniedError(f"You can only {action} your own account")


# =============================================================================
# Collection
# =============================================================================

@router.get("", response_model=UserList)
async def list_users(
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> UserList:
    """List all users, newest first."""
    users = await repo.list_users()
    return UserList(users=[User.model_validate(u) for u in users])


# =============================================================================
# Self-Service Endpoints
# =============================================================================

@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    profile: ProfileUpdate,
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> ProfileUpdateResponse:
    """
    Update the caller's name, email and address details.

    Raises:
        DuplicateEmailError (400): If the email belongs to another user
    """
    db_user = await repo.update_profile(current_user.id, profile.model_dump())
    if not db_user:
        raise ResourceNotFoundError("User")

    logger.info(f"Updated profile for user {current_user.id}")
    return ProfileUpdateResponse(
        user=User.model_validate(db_user),
        message="Profile updated successfully",
    )


@router.put("/password", response_model=SuccessResponse)
async def change_password(
    change: PasswordChange,
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> SuccessResponse:
    """
    Change the caller's password after checking the current one.

    Raises:
        InvalidRequestError (400): If the current password is wrong
    """
    if not verify_password(change.current_password, current_user.password_hash):
        raise InvalidRequestError("Current password is incorrect")

    await repo.set_password_hash(current_user.id, hash_password(change.new_password))
    logger.info(f"Password changed for user {current_user.id}")
    return SuccessResponse(message="Password changed successfully")


@router.delete("/account", response_model=SuccessResponse)
async def delete_account(
    confirmation: AccountDelete,
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> SuccessResponse:
    """
    Delete the caller's account and all of their data.

    Raises:
        InvalidRequestError (400): If the password is wrong
    """
    if not verify_password(confirmation.password, current_user.password_hash):
        raise InvalidRequestError("Password is incorrect")

    await repo.delete_user(current_user.id)
    return SuccessResponse(message="Account deleted successfully")


# =============================================================================
# Id-Addressed Endpoints
# =============================================================================

@router.get("/{user_id}", response_model=UserEnvelope)
async def get_user(
    user_id: str,
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> UserEnvelope:
    """Get a user by id."""
    db_user = await repo.get_user(user_id)
    if not db_user:
        raise ResourceNotFoundError("User")
    return UserEnvelope(user=User.model_validate(db_user))


@router.put("/{user_id}", response_model=UserEnvelope)
async def update_user(
    user_id: str,
    update: UserUpdate,
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> UserEnvelope:
    """
    Update the supplied progress fields of the caller's own record.

    Raises:
        PermissionDeniedError (403): If user_id is not the caller
        InvalidRequestError (400): If no fields were supplied
    """
    _require_self(user_id, current_user, "update")

    # avatar_url is the only progress field that may be cleared
    fields = {
        k: v for k, v in update.model_dump(exclude_unset=True).items()
        if v is not None or k == "avatar_url"
    }
    db_user = await repo.update_user(user_id, fields)
    if not db_user:
        raise ResourceNotFoundError("User")
    return UserEnvelope(user=User.model_validate(db_user))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> MessageResponse:
    """
    Delete the caller's own record.

    Raises:
        PermissionDeniedError (403): If user_id is not the caller
    """
    _require_self(user_id, current_user, "delete")

    if not await repo.delete_user(user_id):
        raise ResourceNotFoundError("User")
    return MessageResponse(message="User deleted successfully")


@router.get("/{user_id}/stats", response_model=UserStatsEnvelope)
async def get_user_stats(
    user_id: str,
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> UserStatsEnvelope:
    """Message and analysis totals for a user."""
    stats = await repo.get_user_stats(user_id)
    if stats is None:
        raise ResourceNotFoundError("User")
    return UserStatsEnvelope(stats=UserStats(**stats))
