"""Pydantic schemas for the chat completion request."""

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatCompletionRequest(BaseModel):
    """Prior turns, an optional target conversation and the new user text.

    ``messages`` holds only turns that came before ``message``; the relay
    appends the new user turn itself.
    """

    messages: list[ChatTurn] = Field(default_factory=list)
    chat_id: str | None = Field(default=None, alias="chatId")
    message: str | None = None

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _has_input(self):
        if not self.messages and not self.message:
            raise ValueError("either messages or message is required")
        return self

    def model_turns(self) -> list[dict]:
        turns = [t.model_dump() for t in self.messages]
        if self.message:
            turns.append({"role": "user", "content": self.message})
        return turns
