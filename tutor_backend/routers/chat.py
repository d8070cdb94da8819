"""
Chat Router for the Code Tutor backend.

Endpoints:
- GET /chat - Page through the caller's chat log
- POST /chat - Append a message
- DELETE /chat/{message_id} - Delete one message
- DELETE /chat - Clear the log
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from ..constants import CHAT_DEFAULT_LIMIT, MAX_PAGE_LIMIT
from ..db_models import DBUser
from ..dependencies import get_current_user, get_repository
from ..exceptions import InvalidRequestError, ResourceNotFoundError
from ..models import ChatMessage, ChatMessageCreate
from ..repository import DatabaseRepository
from ..sanitization import sanitize_text_content

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/chat",
    tags=["chat"],
    responses={401: {"description": "Unauthorized"}},
)


@router.get("", response_model=List[ChatMessage])
async def list_messages(
    limit: int = Query(CHAT_DEFAULT_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> List[ChatMessage]:
    """
    Get a page of the caller's messages.

    Offset 0 is the most recent `limit` messages; each page is returned
    oldest first so it can be rendered as a conversation.
    """
    messages = await repo.list_chat_messages(current_user.id, limit=limit, offset=offset)
    return [ChatMessage.model_validate(m) for m in messages]


@router.post("", response_model=ChatMessage, status_code=status.HTTP_201_CREATED)
async def create_message(
    message: ChatMessageCreate,
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> ChatMessage:
    """Append a message to the caller's chat log."""
    content = sanitize_text_content(message.content)
    if not content.strip():
        raise InvalidRequestError("Message content cannot be empty")

    db_message = await repo.add_chat_message(current_user.id, content, message.is_user)
    return ChatMessage.model_validate(db_message)


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: UUID,
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
):
    """
    Delete one of the caller's messages.

    Raises:
        ResourceNotFoundError (404): If the message does not exist or
            belongs to another user
    """
    if not await repo.delete_chat_message(current_user.id, str(message_id)):
        raise ResourceNotFoundError("Message")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_messages(
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
):
    """Delete the caller's entire chat log."""
    deleted = await repo.clear_chat_messages(current_user.id)
    logger.info(f"Cleared {deleted} chat messages for user {current_user.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
