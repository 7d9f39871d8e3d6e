"""Completion relay: authenticate, check ownership, persist, proxy the model stream.

One ``CompletionRelay`` handles exactly one request and walks it through

    UNAUTHENTICATED -> AUTHENTICATED -> OWNERSHIP_CHECKED -> STREAMING -> COMPLETED

leaving early for REJECTED_UNAUTHORIZED, REJECTED_FORBIDDEN or FAILED_INTERNAL.
The user turn is always persisted before the provider is called, and the
assistant turn only once the provider stream has been fully consumed.
"""

import logging
import uuid
from collections.abc import AsyncGenerator, AsyncIterator
from enum import Enum

from fastapi import HTTPException, Request

from chat_relay.auth.dependencies import CurrentUser, verify_caller
from chat_relay.conversations import repository
from chat_relay.conversations.service import conversation_owned_by
from chat_relay.db.models import ROLE_ASSISTANT, ROLE_USER
from chat_relay.llm.client import LLMClient
from chat_relay.llm.prompts import MAX_OUTPUT_TOKENS, SYSTEM_PROMPT, TEMPERATURE
from chat_relay.messages.streaming import (
    format_content_block_delta,
    format_content_block_start,
    format_content_block_stop,
    format_error,
    format_message_delta,
    format_message_start,
    format_message_stop,
)
from chat_relay.middleware.error_handler import INTERNAL_ERROR_MESSAGE

logger = logging.getLogger(__name__)


class RelayState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    OWNERSHIP_CHECKED = "ownership_checked"
    STREAMING = "streaming"
    COMPLETED = "completed"
    REJECTED_UNAUTHORIZED = "rejected_unauthorized"
    REJECTED_FORBIDDEN = "rejected_forbidden"
    FAILED_INTERNAL = "failed_internal"


TERMINAL_STATES = {
    RelayState.COMPLETED,
    RelayState.REJECTED_UNAUTHORIZED,
    RelayState.REJECTED_FORBIDDEN,
    RelayState.FAILED_INTERNAL,
}

_ALLOWED = {
    RelayState.UNAUTHENTICATED: {RelayState.AUTHENTICATED, RelayState.REJECTED_UNAUTHORIZED},
    RelayState.AUTHENTICATED: {RelayState.OWNERSHIP_CHECKED, RelayState.REJECTED_FORBIDDEN, RelayState.FAILED_INTERNAL},
    RelayState.OWNERSHIP_CHECKED: {RelayState.STREAMING, RelayState.FAILED_INTERNAL},
    RelayState.STREAMING: {RelayState.COMPLETED, RelayState.FAILED_INTERNAL},
}


class CompletionRelay:
    def __init__(self, llm: LLMClient):
        self._llm = llm
        self.state = RelayState.UNAUTHENTICATED
        self.user: CurrentUser | None = None
        self.chat_id: str | None = None

    def _transition(self, new_state: RelayState) -> None:
        if new_state not in _ALLOWED.get(self.state, set()):
            raise RuntimeError(f"Illegal relay transition {self.state.value} -> {new_state.value}")
        logger.debug("Relay %s -> %s (chat=%s)", self.state.value, new_state.value, self.chat_id)
        self.state = new_state

    def _fail(self) -> None:
        if self.state not in TERMINAL_STATES:
            self._transition(RelayState.FAILED_INTERNAL)

    def authenticate(self, request: Request) -> CurrentUser:
        user = verify_caller(request)
        if user is None:
            self._transition(RelayState.REJECTED_UNAUTHORIZED)
            raise HTTPException(status_code=401, detail="Unauthorized")
        self.user = user
        self._transition(RelayState.AUTHENTICATED)
        return user

    def authorize(self, chat_id: str | None) -> None:
        """Anonymous exchanges (no chat_id) pass; anything else must be owned by the caller."""
        self.chat_id = chat_id
        if chat_id and not conversation_owned_by(chat_id, self.user.id):
            logger.info("User %s denied access to conversation %s", self.user.id, chat_id)
            self._transition(RelayState.REJECTED_FORBIDDEN)
            raise HTTPException(status_code=403, detail="Forbidden")
        self._transition(RelayState.OWNERSHIP_CHECKED)

    def record_user_turn(self, message: str | None) -> None:
        if not (self.chat_id and message):
            return
        try:
            repository.insert_turn(self.chat_id, ROLE_USER, message)
        except Exception:
            self._fail()
            raise

    async def open(self, turns: list[dict]) -> tuple[str | None, AsyncIterator[str]]:
        """Start the provider stream and wait for its first chunk.

        Awaiting the first chunk here lets a provider failure surface as a
        plain 500 before any response bytes are sent.
        """
        self._transition(RelayState.STREAMING)
        stream = self._llm.open_stream(SYSTEM_PROMPT, turns, TEMPERATURE, MAX_OUTPUT_TOKENS)
        try:
            first = await anext(stream)
        except StopAsyncIteration:
            first = None
        except Exception:
            self._fail()
            raise
        return first, stream

    async def events(self, first: str | None, stream: AsyncIterator[str]) -> AsyncGenerator[str, None]:
        """Forward chunks as SSE events, then persist the assembled assistant turn."""
        parts: list[str] = []

        yield format_message_start(uuid.uuid4().hex, self._llm.model, self.chat_id)
        yield format_content_block_start()

        try:
            if first is not None:
                parts.append(first)
                yield format_content_block_delta(first)
                async for chunk in stream:
                    parts.append(chunk)
                    yield format_content_block_delta(chunk)

            text = "".join(parts)
            if self.chat_id and text:
                repository.insert_turn(self.chat_id, ROLE_ASSISTANT, text)
        except Exception:
            logger.exception("Completion stream failed for conversation %s", self.chat_id)
            self._fail()
            yield format_error("internal_error", INTERNAL_ERROR_MESSAGE)
            return
        finally:
            await self.close(stream)

        yield format_content_block_stop()
        yield format_message_delta("end_turn")
        yield format_message_stop()
        self._transition(RelayState.COMPLETED)
        logger.info("Completed reply of %d chars for conversation %s", len(text), self.chat_id)

    async def close(self, stream: AsyncIterator[str]) -> None:
        """Release the provider connection. Safe to call on a stream that is already closed."""
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            await aclose()
