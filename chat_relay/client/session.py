"""Client session state for one chat tab.

The visible message list is an append-only sequence of committed turns plus at
most one uncommitted assistant tail that grows while a reply streams in.
Committing the tail at the end of the stream is the only way content moves
from the tail into ``turns``. All mutation goes through the transition
methods; nothing here is module-global.
"""

import asyncio
import logging
from dataclasses import dataclass

from chat_relay.client.api import ChatAPI, Conversation
from chat_relay.db.models import DEFAULT_CONVERSATION_TITLE, ROLE_ASSISTANT, ROLE_USER

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 50
TITLE_ELLIPSIS = "..."


def title_from_reply(reply: str) -> str:
    if len(reply) > TITLE_MAX_CHARS:
        return reply[:TITLE_MAX_CHARS] + TITLE_ELLIPSIS
    return reply


@dataclass
class DisplayTurn:
    role: str
    content: str
    # True for the pending assistant turn until its first chunk arrives
    composing: bool = False

    @classmethod
    def from_row(cls, row: dict) -> "DisplayTurn":
        return cls(role=row["role"], content=row["content"])

    def as_message(self) -> dict:
        return {"role": self.role, "content": self.content}


class ChatSession:
    def __init__(self, api: ChatAPI, conversations: list[Conversation] | None = None):
        self.api = api
        self.conversations: list[Conversation] = list(conversations or [])
        self.current: Conversation | None = None
        self.turns: list[DisplayTurn] = []
        self.pending: DisplayTurn | None = None
        self.input = ""
        self.sidebar_open = False
        self.busy = False
        # False while the current conversation's history is loading or after that load failed
        self.history_loaded = True
        self._loading: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()

    @property
    def messages(self) -> list[DisplayTurn]:
        """What the UI renders: committed turns followed by the pending tail, if any."""
        if self.pending is None:
            return list(self.turns)
        return self.turns + [self.pending]

    def set_input(self, text: str) -> None:
        self.input = text

    def toggle_sidebar(self) -> None:
        self.sidebar_open = not self.sidebar_open

    async def load_conversations(self) -> None:
        try:
            self.conversations = await self.api.list_conversations()
        except Exception:
            logger.exception("Error loading conversations")

    async def new_conversation(self, title: str = DEFAULT_CONVERSATION_TITLE) -> Conversation | None:
        try:
            conv = await self.api.create_conversation(title)
        except Exception:
            logger.exception("Error creating conversation")
            return None
        self.conversations.insert(0, conv)
        self.current = conv
        self.turns = []
        self.pending = None
        self.sidebar_open = False
        self.history_loaded = True
        self._loading = None
        return conv

    async def select_conversation(self, conv: Conversation) -> None:
        self.current = conv
        self.turns = []
        self.pending = None
        self.sidebar_open = False
        self.history_loaded = False
        self._loading = asyncio.create_task(self._load_history(conv))
        await self._loading

    async def _load_history(self, conv: Conversation) -> None:
        try:
            rows = await self.api.list_turns(conv.id)
        except Exception:
            logger.exception("Error loading messages for conversation %s", conv.id)
            return
        finally:
            if self._loading is asyncio.current_task():
                self._loading = None
        # Another conversation was selected while this one was loading
        if self.current is not conv:
            return
        # Loaded history goes ahead of anything added to the list meanwhile
        self.turns = [DisplayTurn.from_row(row) for row in rows] + self.turns
        self.history_loaded = True

    def receive_chunk(self, text: str) -> None:
        if self.pending is None:
            return
        self.pending.content += text
        self.pending.composing = False

    def complete_stream(self) -> DisplayTurn | None:
        tail = self.pending
        if tail is None:
            return None
        tail.composing = False
        self.turns.append(tail)
        self.pending = None
        return tail

    async def submit(self) -> bool:
        """Send the current input; returns False when the submission is rejected or fails.

        Empty input and a stream already in flight are both no-ops that leave
        the input untouched. A history load still in flight is awaited first,
        and a conversation whose history failed to load is not sent to. On
        failure the optimistic turns are rolled back and the typed text is
        restored, unless the user has since moved to another conversation.
        """
        text = self.input.strip()
        if not text or self.busy:
            return False
        # Set before the first await so a concurrent submit sees it
        self.busy = True
        typed = self.input
        self.input = ""

        conv = None
        user_turn = None
        tail = None
        try:
            if self._loading is not None:
                await self._loading
            if not self.history_loaded:
                logger.warning("Not sending: history for conversation %s is not loaded", self.current.id)
                self.input = typed
                return False

            conv = self.current
            if conv is None:
                conv = await self.new_conversation()
                if conv is None:
                    self.input = typed
                    return False

            history = [t.as_message() for t in self.turns]
            first_exchange = not history
            user_turn = DisplayTurn(role=ROLE_USER, content=text)
            tail = DisplayTurn(role=ROLE_ASSISTANT, content="", composing=True)
            self.turns.append(user_turn)
            self.pending = tail

            reply = []
            async for chunk in self.api.stream_completion(history, chat_id=conv.id, message=text):
                reply.append(chunk)
                # Chunks for a conversation the user navigated away from are not rendered
                if self.pending is tail:
                    self.receive_chunk(chunk)

            if self.pending is tail:
                self.complete_stream()
            if first_exchange:
                self._schedule_title_update(conv, title_from_reply("".join(reply)))
            return True
        except Exception:
            logger.exception("Error sending message")
            if user_turn is not None:
                self.turns = [t for t in self.turns if t is not user_turn]
            if tail is not None and self.pending is tail:
                self.pending = None
            if conv is None or self.current is conv:
                self.input = typed
            return False
        finally:
            self.busy = False

    def _schedule_title_update(self, conv: Conversation, title: str) -> None:
        task = asyncio.create_task(self._update_title(conv.id, title))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _update_title(self, conversation_id: str, title: str) -> None:
        try:
            updated = await self.api.update_title(conversation_id, title)
        except Exception:
            logger.exception("Error updating title for conversation %s", conversation_id)
            return
        if not updated:
            logger.warning("Title update for conversation %s changed nothing", conversation_id)
            return
        for conv in self.conversations:
            if conv.id == conversation_id:
                conv.title = title
        if self.current is not None and self.current.id == conversation_id:
            self.current.title = title

    async def wait_for_background(self) -> None:
        """Await pending title updates (tests and shutdown)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
