"""Conversation endpoints: create, list, retitle, history."""

from fastapi import APIRouter, Depends

from chat_relay.auth.dependencies import CurrentUser, get_current_user
from chat_relay.conversations.schemas import (
    ConversationListResponse,
    CreateConversationRequest,
    MessageListResponse,
    UpdateConversationRequest,
)
from chat_relay.conversations.service import (
    create_conversation,
    list_conversations,
    list_turns,
    update_title,
)

router = APIRouter(prefix="/conversations", tags=["Conversations"])


@router.post("", status_code=201, summary="Create a conversation", description="Create a new conversation owned by the caller. The title defaults to 'New conversation'.")
async def create(body: CreateConversationRequest, user: CurrentUser = Depends(get_current_user)):
    conv = create_conversation(user.id, body.title)
    return {"status": "success", "data": conv}


@router.get("", response_model=ConversationListResponse, summary="List conversations", description="List the caller's conversations, most recently updated first.")
async def list_all(user: CurrentUser = Depends(get_current_user)):
    return ConversationListResponse(data=list_conversations(user.id))


@router.patch("/{conversation_id}", summary="Rename a conversation", description="Replace the conversation title and bump its updated_at timestamp.")
async def patch(conversation_id: str, body: UpdateConversationRequest, user: CurrentUser = Depends(get_current_user)):
    updated = update_title(conversation_id, user.id, body.title)
    return {"status": "success", "data": {"updated": updated}}


@router.get("/{conversation_id}/messages", response_model=MessageListResponse, summary="List messages", description="Return the conversation's turns ordered by creation time.")
async def messages(conversation_id: str, user: CurrentUser = Depends(get_current_user)):
    return MessageListResponse(data=list_turns(conversation_id, user.id))
