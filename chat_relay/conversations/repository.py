"""Data access layer for conversations and their turns."""

from datetime import datetime, timezone

from chat_relay.db.client import get_supabase
from chat_relay.db.models import CONVERSATION_FK, CONVERSATIONS, MESSAGES


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def find_conversation_owner(conversation_id: str) -> str | None:
    db = get_supabase()
    result = db.table(CONVERSATIONS).select("user_id").eq("id", conversation_id).execute()
    return result.data[0]["user_id"] if result.data else None


def insert_conversation(owner_id: str, title: str) -> dict:
    db = get_supabase()
    result = db.table(CONVERSATIONS).insert({"user_id": owner_id, "title": title}).execute()
    return result.data[0]


def update_conversation_title(conversation_id: str, title: str) -> bool:
    db = get_supabase()
    result = db.table(CONVERSATIONS).update({"title": title, "updated_at": _now()}).eq("id", conversation_id).execute()
    return bool(result.data)


def touch_conversation(conversation_id: str) -> None:
    db = get_supabase()
    db.table(CONVERSATIONS).update({"updated_at": _now()}).eq("id", conversation_id).execute()


def list_conversations(owner_id: str) -> list[dict]:
    db = get_supabase()
    result = (
        db.table(CONVERSATIONS)
        .select("*")
        .eq("user_id", owner_id)
        .order("updated_at", desc=True)
        .execute()
    )
    return result.data


def list_turns(conversation_id: str) -> list[dict]:
    db = get_supabase()
    result = (
        db.table(MESSAGES)
        .select("*")
        .eq(CONVERSATION_FK, conversation_id)
        .order("created_at")
        .execute()
    )
    return result.data


def insert_turn(conversation_id: str, role: str, content: str) -> dict:
    db = get_supabase()
    row = {CONVERSATION_FK: conversation_id, "role": role, "content": content}
    result = db.table(MESSAGES).insert(row).execute()
    touch_conversation(conversation_id)
    return result.data[0]
