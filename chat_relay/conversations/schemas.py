"""Pydantic schemas for conversation requests and responses."""

from typing import Literal

from pydantic import BaseModel, Field


# --- Requests ---

class CreateConversationRequest(BaseModel):
    title: str | None = Field(default=None, max_length=500)


class UpdateConversationRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)


# --- Responses ---

class ConversationResponse(BaseModel):
    id: str
    user_id: str
    title: str
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class ConversationListResponse(BaseModel):
    status: str = "success"
    data: list[ConversationResponse]


class MessageResponse(BaseModel):
    id: str
    chat_id: str
    role: Literal["user", "assistant"]
    content: str
    created_at: str

    model_config = {"from_attributes": True}


class MessageListResponse(BaseModel):
    status: str = "success"
    data: list[MessageResponse]
