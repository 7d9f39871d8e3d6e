"""Business logic for conversations with ownership verification."""

import logging

from fastapi import HTTPException

from chat_relay.conversations import repository
from chat_relay.db.models import DEFAULT_CONVERSATION_TITLE

logger = logging.getLogger(__name__)


def conversation_owned_by(conversation_id: str, user_id: str) -> bool:
    """Return True only if the conversation exists and belongs to user_id.

    A missing row and a failed lookup both deny, so callers cannot tell them
    apart from a conversation owned by someone else.
    """
    try:
        owner = repository.find_conversation_owner(conversation_id)
    except Exception:
        logger.warning("Owner lookup failed for conversation %s", conversation_id, exc_info=True)
        return False
    return owner is not None and owner == user_id


def require_ownership(conversation_id: str, user_id: str) -> None:
    if not conversation_owned_by(conversation_id, user_id):
        raise HTTPException(status_code=403, detail="Forbidden")


def create_conversation(user_id: str, title: str | None = None) -> dict:
    return repository.insert_conversation(user_id, title or DEFAULT_CONVERSATION_TITLE)


def list_conversations(user_id: str) -> list[dict]:
    return repository.list_conversations(user_id)


def list_turns(conversation_id: str, user_id: str) -> list[dict]:
    require_ownership(conversation_id, user_id)
    return repository.list_turns(conversation_id)


def update_title(conversation_id: str, user_id: str, title: str) -> bool:
    require_ownership(conversation_id, user_id)
    return repository.update_conversation_title(conversation_id, title)
