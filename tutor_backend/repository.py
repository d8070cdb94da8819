"""
Database Repository for the Code Tutor backend.

SQLAlchemy-based data access for users, chat messages and code analyses.
Every query that touches a user's records is scoped by the owner's id, so
a record belonging to someone else is indistinguishable from a missing one.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db_models import DBUser, DBChatMessage, DBCodeAnalysis, utcnow
from .exceptions import DuplicateEmailError, InvalidRequestError

logger = logging.getLogger(__name__)

# Columns a user may change through the partial update endpoint
UPDATABLE_USER_FIELDS = ("name", "avatar_url", "level", "xp", "completed_exercises")
PROFILE_FIELDS = ("name", "email", "address", "neighborhood", "city", "phone")


class DatabaseRepository:
    """
    Database-backed repository for users, chat messages and code analyses.

    Wraps a single SQLAlchemy session; each mutating method commits its own
    unit of work.
    """

    def __init__(self, db_session: Session):
        """
        Initialize database repository.

        Args:
            db_session: SQLAlchemy database session
        """
        self.db = db_session

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise

    # =============================================================================
    # USER OPERATIONS
    # =============================================================================

    async def get_user(self, user_id: str) -> Optional[DBUser]:
        """Get user by id."""
        return self.db.query(DBUser).filter_by(id=user_id).first()

    async def get_user_by_email(self, email: str) -> Optional[DBUser]:
        """Get user by (lower-cased) email."""
        return self.db.query(DBUser).filter_by(email=email.lower()).first()

    async def email_in_use(self, email: str, exclude_user_id: str = None) -> bool:
        """Check whether an email belongs to any user other than `exclude_user_id`."""
        query = self.db.query(DBUser.id).filter(DBUser.email == email.lower())
        if exclude_user_id:
            query = query.filter(DBUser.id != exclude_user_id)
        return query.first() is not None

    async def create_user(
        self,
        email: str,
        password_hash: str,
        name: str,
        avatar_url: str = None,
        level: int = 1,
        xp: int = 0,
        completed_exercises: int = 0,
    ) -> DBUser:
        """
        Create a user.

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        if await self.email_in_use(email):
            raise DuplicateEmailError()

        db_user = DBUser(
            email=email.lower(),
            password_hash=password_hash,
            name=name,
            avatar_url=avatar_url,
            level=level,
            xp=xp,
            completed_exercises=completed_exercises,
        )
        self.db.add(db_user)
        try:
            self._commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            raise DuplicateEmailError()
        self.db.refresh(db_user)
        logger.debug(f"Created user {db_user.id}")
        return db_user

    async def list_users(self) -> List[DBUser]:
        """All users, newest first."""
        return self.db.query(DBUser).order_by(DBUser.created_at.desc(), DBUser.id.desc()).all()

    async def update_user(self, user_id: str, fields: Dict) -> Optional[DBUser]:
        """
        Write only the supplied progress fields.

        Args:
            user_id: User to update
            fields: Mapping of column name to new value; unknown keys are ignored

        Returns:
            Updated user, or None if the user does not exist

        Raises:
            InvalidRequestError: If no updatable field was supplied
        """
        changes = {k: v for k, v in fields.items() if k in UPDATABLE_USER_FIELDS}
        if not changes:
            raise InvalidRequestError("No fields to update")

        db_user = await self.get_user(user_id)
        if not db_user:
            return None

        for column, value in changes.items():
            setattr(db_user, column, value)
        db_user.updated_at = utcnow()
        self._commit()
        self.db.refresh(db_user)
        logger.debug(f"Updated user {user_id}: {sorted(changes)}")
        return db_user

    async def update_profile(self, user_id: str, profile: Dict) -> Optional[DBUser]:
        """
        Replace the contact profile (name, email, address fields).

        Raises:
            DuplicateEmailError: If the new email belongs to another user
        """
        email = profile["email"].lower()
        if await self.email_in_use(email, exclude_user_id=user_id):
            raise DuplicateEmailError("Email is already in use by another user")

        db_user = await self.get_user(user_id)
        if not db_user:
            return None

        for column in PROFILE_FIELDS:
            value = profile.get(column)
            if column in ("address", "neighborhood", "city", "phone"):
                value = value or None
            setattr(db_user, column, value)
        db_user.email = email
        db_user.updated_at = utcnow()
        try:
            self._commit()
        except IntegrityError:
            raise DuplicateEmailError("Email is already in use by another user")
        self.db.refresh(db_user)
        return db_user

    async def set_password_hash(self, user_id: str, password_hash: str) -> bool:
        """Store a new password hash. Returns False if the user is missing."""
        db_user = await self.get_user(user_id)
        if not db_user:
            return False
        db_user.password_hash = password_hash
        db_user.updated_at = utcnow()
        self._commit()
        return True

    async def set_avatar_url(self, user_id: str, avatar_url: str) -> bool:
        """Point a user's avatar at an uploaded file. Returns False if the user is missing."""
        db_user = await self.get_user(user_id)
        if not db_user:
            return False
        db_user.avatar_url = avatar_url
        db_user.updated_at = utcnow()
        self._commit()
        return True

    async def delete_user(self, user_id: str) -> bool:
        """
        Delete a user together with their messages and analyses.

        Returns:
            True if a user was deleted
        """
        db_user = await self.get_user(user_id)
        if not db_user:
            return False
        self.db.query(DBChatMessage).filter_by(user_id=user_id).delete(synchronize_session=False)
        self.db.query(DBCodeAnalysis).filter_by(user_id=user_id).delete(synchronize_session=False)
        self.db.delete(db_user)
        self._commit()
        logger.info(f"Deleted user {user_id}")
        return True

    async def get_user_stats(self, user_id: str) -> Optional[Dict]:
        """Activity summary for a user, or None if the user does not exist."""
        db_user = await self.get_user(user_id)
        if not db_user:
            return None

        total_messages = self.db.query(func.count(DBChatMessage.id)).filter(
            DBChatMessage.user_id == user_id
        ).scalar() or 0
        analysis_stats = await self._analysis_aggregates(user_id)

        return {
            "total_chat_messages": total_messages,
            "total_code_analyses": analysis_stats["total"],
            "average_code_score": analysis_stats["average"],
            "languages_used": analysis_stats["languages"],
            "join_date": db_user.created_at,
        }

    # =============================================================================
    # CHAT OPERATIONS
    # =============================================================================

    async def list_chat_messages(self, user_id: str, limit: int, offset: int = 0) -> List[DBChatMessage]:
        """
        Page through a user's chat log.

        The page is selected newest-first (so offset 0 is the latest
        conversation) and returned in chronological order.
        """
        newest_first = (
            self.db.query(DBChatMessage)
            .filter(DBChatMessage.user_id == user_id)
            .order_by(DBChatMessage.created_at.desc(), DBChatMessage.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return list(reversed(newest_first))

    async def add_chat_message(self, user_id: str, content: str, is_user: bool) -> DBChatMessage:
        """Append a message to a user's chat log."""
        message = DBChatMessage(user_id=user_id, content=content, is_user=is_user)
        self.db.add(message)
        self._commit()
        self.db.refresh(message)
        return message

    async def delete_chat_message(self, user_id: str, message_id: str) -> bool:
        """Delete one of the user's messages. Returns False if none matched."""
        deleted = (
            self.db.query(DBChatMessage)
            .filter(DBChatMessage.id == message_id, DBChatMessage.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self._commit()
        return deleted > 0

    async def clear_chat_messages(self, user_id: str) -> int:
        """Delete every message of a user. Returns how many were removed."""
        deleted = (
            self.db.query(DBChatMessage)
            .filter(DBChatMessage.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self._commit()
        return deleted

    # =============================================================================
    # CODE ANALYSIS OPERATIONS
    # =============================================================================

    async def list_code_analyses(
        self,
        user_id: str,
        limit: int,
        offset: int = 0,
        language: str = None,
    ) -> List[DBCodeAnalysis]:
        """A user's analyses, newest first, optionally for one language."""
        query = self.db.query(DBCodeAnalysis).filter(DBCodeAnalysis.user_id == user_id)
        if language:
            query = query.filter(DBCodeAnalysis.language == language)
        return (
            query.order_by(DBCodeAnalysis.created_at.desc(), DBCodeAnalysis.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )

    async def get_code_analysis(self, user_id: str, analysis_id: str) -> Optional[DBCodeAnalysis]:
        """Get one of the user's analyses."""
        return (
            self.db.query(DBCodeAnalysis)
            .filter(DBCodeAnalysis.id == analysis_id, DBCodeAnalysis.user_id == user_id)
            .first()
        )

    async def add_code_analysis(
        self,
        user_id: str,
        code: str,
        language: str,
        score: int,
        feedback: List[str],
        suggestions: List[str],
    ) -> DBCodeAnalysis:
        """Store an analysis result."""
        analysis = DBCodeAnalysis(
            user_id=user_id,
            code=code,
            language=language,
            score=score,
            feedback=list(feedback),
            suggestions=list(suggestions),
        )
        self.db.add(analysis)
        self._commit()
        self.db.refresh(analysis)
        return analysis

    async def delete_code_analysis(self, user_id: str, analysis_id: str) -> bool:
        """Delete one of the user's analyses. Returns False if none matched."""
        deleted = (
            self.db.query(DBCodeAnalysis)
            .filter(DBCodeAnalysis.id == analysis_id, DBCodeAnalysis.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self._commit()
        return deleted > 0

    async def get_code_analysis_summary(self, user_id: str, recent_limit: int) -> Dict:
        """Totals, average score, languages and most recent analyses for a user."""
        stats = await self._analysis_aggregates(user_id)
        recent = (
            self.db.query(DBCodeAnalysis)
            .filter(DBCodeAnalysis.user_id == user_id)
            .order_by(DBCodeAnalysis.created_at.desc(), DBCodeAnalysis.id.desc())
            .limit(recent_limit)
            .all()
        )
        return {
            "total_analyses": stats["total"],
            "average_score": stats["average"],
            "languages_used": stats["languages"],
            "recent_analyses": recent,
        }

    async def _analysis_aggregates(self, user_id: str) -> Dict:
        total, average = self.db.query(
            func.count(DBCodeAnalysis.id), func.avg(DBCodeAnalysis.score)
        ).filter(DBCodeAnalysis.user_id == user_id).one()

        languages = [
            row[0]
            for row in self.db.query(DBCodeAnalysis.language)
            .filter(DBCodeAnalysis.user_id == user_id)
            .distinct()
            .order_by(DBCodeAnalysis.language)
            .all()
        ]
        return {
            "total": int(total or 0),
            "average": round(float(average), 2) if average is not None else 0.0,
            "languages": languages,
        }
