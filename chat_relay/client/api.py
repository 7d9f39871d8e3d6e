"""Async HTTP client for the Chat Relay API."""

import json
import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass

import httpx

from chat_relay.messages import streaming

logger = logging.getLogger(__name__)


class StreamError(Exception):
    """The completion stream reported an error or ended before message_stop."""


@dataclass
class Conversation:
    id: str
    title: str
    user_id: str = ""
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row: dict) -> "Conversation":
        return cls(
            id=row["id"],
            title=row["title"],
            user_id=row.get("user_id", ""),
            created_at=row.get("created_at", ""),
            updated_at=row.get("updated_at", ""),
        )


class ChatAPI:
    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        self._client = httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "ChatAPI":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_conversations(self) -> list[Conversation]:
        resp = await self._client.get("/conversations")
        resp.raise_for_status()
        return [Conversation.from_row(row) for row in resp.json()["data"]]

    async def create_conversation(self, title: str | None = None) -> Conversation:
        resp = await self._client.post("/conversations", json={"title": title})
        resp.raise_for_status()
        return Conversation.from_row(resp.json()["data"])

    async def list_turns(self, conversation_id: str) -> list[dict]:
        resp = await self._client.get(f"/conversations/{conversation_id}/messages")
        resp.raise_for_status()
        return resp.json()["data"]

    async def update_title(self, conversation_id: str, title: str) -> bool:
        resp = await self._client.patch(f"/conversations/{conversation_id}", json={"title": title})
        resp.raise_for_status()
        return resp.json()["data"]["updated"]

    async def sign_out(self) -> None:
        resp = await self._client.post("/sign-out")
        resp.raise_for_status()

    async def stream_completion(
        self,
        messages: list[dict],
        chat_id: str | None = None,
        message: str | None = None,
    ) -> AsyncGenerator[str, None]:
        """Yield reply text chunks as they arrive from /chat-completion."""
        body = {"messages": messages, "chatId": chat_id, "message": message}
        async with self._client.stream("POST", "/chat-completion", json=body) as resp:
            if resp.status_code != 200:
                await resp.aread()
                resp.raise_for_status()

            event = None
            async for line in resp.aiter_lines():
                if line.startswith("event: "):
                    event = line[7:]
                    continue
                if not line.startswith("data: "):
                    continue
                data = json.loads(line[6:])
                if event == streaming.CONTENT_BLOCK_DELTA:
                    yield data["delta"]["text"]
                elif event == streaming.ERROR:
                    raise StreamError(data["error"]["message"])
                elif event == streaming.MESSAGE_STOP:
                    return

        raise StreamError("Stream ended before message_stop")
