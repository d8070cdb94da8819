"""
SQLAlchemy database models.

Maps the code tutor domain to PostgreSQL tables.
Separate from Pydantic models (models.py) which handle API validation.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, ForeignKey, Boolean, Index, CheckConstraint
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp (stored the same way on SQLite and PostgreSQL)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DBUser(Base):
    """User account table."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    avatar_url = Column(String(2048), nullable=True)

    # Progress
    level = Column(Integer, nullable=False, default=1)
    xp = Column(Integer, nullable=False, default=0)
    completed_exercises = Column(Integer, nullable=False, default=0)

    # Optional contact profile
    address = Column(String(255), nullable=True)
    neighborhood = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Messages and analyses are cascade deleted with the user
    chat_messages = relationship("DBChatMessage", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    code_analyses = relationship("DBCodeAnalysis", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("level >= 1", name="ck_users_level_positive"),
        CheckConstraint("xp >= 0", name="ck_users_xp_non_negative"),
        CheckConstraint("completed_exercises >= 0", name="ck_users_completed_non_negative"),
    )

    def __repr__(self):
        return f"<DBUser(id={self.id}, email='{self.email}')>"


class DBChatMessage(Base):
    """Chat log entry, written either by the user or by the tutor."""
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    is_user = Column(Boolean, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("DBUser", back_populates="chat_messages")

    __table_args__ = (
        Index('idx_chat_user_created', 'user_id', 'created_at'),
    )

    def __repr__(self):
        return f"<DBChatMessage(id={self.id}, user_id={self.user_id}, is_user={self.is_user})>"


class DBCodeAnalysis(Base):
    """Stored result of a code-quality scoring pass."""
    __tablename__ = "code_analyses"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(Text, nullable=False)
    language = Column(String(50), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    feedback = Column(JSON, nullable=False, default=list)  # ordered list of strings
    suggestions = Column(JSON, nullable=False, default=list)  # ordered list of strings
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("DBUser", back_populates="code_analyses")

    __table_args__ = (
        CheckConstraint("score >= 0 AND score <= 100", name="ck_code_analyses_score_range"),
        Index('idx_analysis_user_created', 'user_id', 'created_at'),
        Index('idx_analysis_user_language', 'user_id', 'language'),
    )

    def __repr__(self):
        return f"<DBCodeAnalysis(id={self.id}, language='{self.language}', score={self.score})>"
