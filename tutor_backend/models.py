"""Request and response schemas for the Code Tutor API."""

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, field_validator

from .constants import (
    MIN_PASSWORD_LENGTH,
    MAX_PASSWORD_LENGTH,
    MIN_NAME_LENGTH,
    MAX_NAME_LENGTH,
    MAX_CHAT_MESSAGE_LENGTH,
    MAX_CODE_LENGTH,
    MAX_LANGUAGE_LENGTH,
    MIN_SCORE,
    MAX_SCORE,
)


def _normalize_email(v):
    return v.strip().lower() if isinstance(v, str) else v


# Emails are compared case-insensitively, so they are stored lower-cased
NormalizedEmail = Annotated[EmailStr, BeforeValidator(_normalize_email)]


# =============================================================================
# User Models
# =============================================================================

class User(BaseModel):
    """Public representation of a user. Never carries the password hash."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    avatar_url: Optional[str] = None
    level: int
    xp: int
    completed_exercises: int
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserCreate(BaseModel):
    """Schema for registering a new user."""
    email: NormalizedEmail
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH)
    name: str = Field(..., min_length=MIN_NAME_LENGTH, max_length=MAX_NAME_LENGTH)
    avatar_url: Optional[str] = Field(default=None, max_length=2048)
    level: int = Field(default=1, ge=1)
    xp: int = Field(default=0, ge=0)
    completed_exercises: int = Field(default=0, ge=0)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        v = v.strip()
        if len(v) < MIN_NAME_LENGTH:
            raise ValueError(f"Name must be at least {MIN_NAME_LENGTH} characters")
        return v


class UserLogin(BaseModel):
    """Schema for user login."""
    email: NormalizedEmail
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    """Partial update of progress fields; only supplied fields are written."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    avatar_url: Optional[str] = Field(default=None, max_length=2048)
    level: Optional[int] = Field(default=None, ge=1)
    xp: Optional[int] = Field(default=None, ge=0)
    completed_exercises: Optional[int] = Field(default=None, ge=0)


class ProfileUpdate(BaseModel):
    """Self-service profile update."""
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    email: NormalizedEmail
    address: Optional[str] = Field(default=None, max_length=255)
    neighborhood: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)


class PasswordChange(BaseModel):
    """Password change. Accepts the camelCase names the frontend sends."""
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., alias="currentPassword", min_length=1)
    new_password: str = Field(
        ..., alias="newPassword", min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH
    )


class AccountDelete(BaseModel):
    """Confirmation required to delete one's own account."""
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """User plus bearer token, returned by register and login."""
    user: User
    token: str


class UserEnvelope(BaseModel):
    user: User


class UserList(BaseModel):
    users: List[User]


class ProfileUpdateResponse(BaseModel):
    success: bool = True
    user: User
    message: str


class UserStats(BaseModel):
    """Activity summary for one user."""
    total_chat_messages: int
    total_code_analyses: int
    average_code_score: float
    languages_used: List[str]
    join_date: datetime


class UserStatsEnvelope(BaseModel):
    stats: UserStats


# =============================================================================
# Chat Models
# =============================================================================

class ChatMessageCreate(BaseModel):
    """Schema for appending a message to the chat log."""
    content: str = Field(..., min_length=1, max_length=MAX_CHAT_MESSAGE_LENGTH)
    is_user: bool


class ChatMessage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    content: str
    is_user: bool
    created_at: datetime


# =============================================================================
# Code Analysis Models
# =============================================================================

class CodeAnalysisCreate(BaseModel):
    """Schema for storing a code analysis result."""
    code: str = Field(..., min_length=1, max_length=MAX_CODE_LENGTH)
    language: str = Field(..., min_length=1, max_length=MAX_LANGUAGE_LENGTH)
    score: int = Field(..., ge=MIN_SCORE, le=MAX_SCORE)
    feedback: List[str]
    suggestions: List[str]

    @field_validator("language")
    @classmethod
    def language_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Language cannot be empty")
        return v


class CodeAnalysis(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    code: str
    language: str
    score: int
    feedback: List[str]
    suggestions: List[str]
    created_at: datetime


class RecentAnalysis(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    language: str
    score: int
    created_at: datetime


class CodeAnalysisSummary(BaseModel):
    total_analyses: int
    average_score: float
    languages_used: List[str]
    recent_analyses: List[RecentAnalysis]


# =============================================================================
# Upload Models
# =============================================================================

class UploadResponse(BaseModel):
    success: bool = True
    avatar_url: str
    message: str


class StoredFileInfo(BaseModel):
    filename: str
    size: int
    mimeType: str
    uploadedAt: int  # epoch milliseconds


class StoredFileList(BaseModel):
    totalFiles: int
    files: List[StoredFileInfo]


# =============================================================================
# Generic Responses
# =============================================================================

class MessageResponse(BaseModel):
    message: str


class SuccessResponse(BaseModel):
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    database: dict
