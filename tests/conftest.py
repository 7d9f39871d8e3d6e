"""Shared test fixtures: in-memory Supabase stand-in, fake model provider, signed tokens."""

import os
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

os.environ.setdefault("SUPABASE_URL", "http://supabase.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-for-testing-only-0123456789")
os.environ.setdefault("LLM_API_KEY", "test-llm-key")

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from chat_relay.llm.client import LLMClient, get_configured_llm_client  # noqa: E402
from chat_relay.main import app  # noqa: E402

JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]
_EPOCH = datetime(2020, 1, 1, tzinfo=timezone.utc)


class FakeQuery:
    """Just enough of the PostgREST query builder for the repository module."""

    def __init__(self, db: "FakeSupabase", table: str):
        self._db = db
        self._table = table
        self._op = "select"
        self._columns = "*"
        self._payload: dict = {}
        self._filters: list[tuple[str, object]] = []
        self._order: tuple[str, bool] | None = None

    def select(self, columns: str = "*", count=None):
        self._op = "select"
        self._columns = columns
        return self

    def insert(self, row: dict):
        self._op = "insert"
        self._payload = row
        return self

    def update(self, data: dict):
        self._op = "update"
        self._payload = data
        return self

    def eq(self, column: str, value):
        self._filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False):
        self._order = (column, desc)
        return self

    def execute(self):
        if (self._op, self._table) in self._db.failures:
            raise RuntimeError(f"{self._op} on {self._table} failed")

        rows = self._db.tables.setdefault(self._table, [])
        if self._op == "insert":
            stamp = self._db.next_timestamp()
            row = {"id": str(uuid.uuid4()), "created_at": stamp, **self._payload}
            if self._table == "chats":
                row.setdefault("updated_at", stamp)
            rows.append(row)
            self._db.writes.append(("insert", self._table, dict(self._payload)))
            return SimpleNamespace(data=[dict(row)], count=None)

        matched = [r for r in rows if all(r.get(col) == val for col, val in self._filters)]
        if self._op == "update":
            for r in matched:
                r.update(self._payload)
            self._db.writes.append(("update", self._table, dict(self._payload)))
            return SimpleNamespace(data=[dict(r) for r in matched], count=None)

        if self._order:
            column, desc = self._order
            matched = sorted(matched, key=lambda r: r.get(column) or "", reverse=desc)
        if self._columns != "*":
            keys = [c.strip() for c in self._columns.split(",")]
            matched = [{k: r.get(k) for k in keys} for r in matched]
        else:
            matched = [dict(r) for r in matched]
        return SimpleNamespace(data=matched, count=len(matched))


class FakeAuth:
    def __init__(self):
        self.signed_out: list[str] = []
        self.admin = SimpleNamespace(sign_out=self.signed_out.append)
        self.passwords: dict[str, str] = {}

    def _response(self, email: str, with_session: bool = True):
        user = SimpleNamespace(id=f"user-{email}", email=email, user_metadata={"full_name": "Test User"})
        session = SimpleNamespace(access_token="access", refresh_token="refresh", expires_at=1900000000) if with_session else None
        return SimpleNamespace(user=user, session=session)

    def sign_in_with_password(self, credentials: dict):
        if self.passwords.get(credentials["email"]) != credentials["password"]:
            raise RuntimeError("Invalid login credentials")
        return self._response(credentials["email"])

    def sign_up(self, credentials: dict):
        if credentials["email"] in self.passwords:
            raise RuntimeError("User already registered")
        self.passwords[credentials["email"]] = credentials["password"]
        return self._response(credentials["email"], with_session=False)


class FakeSupabase:
    def __init__(self):
        self.tables: dict[str, list[dict]] = {"chats": [], "messages": []}
        self.writes: list[tuple[str, str, dict]] = []
        self.failures: set[tuple[str, str]] = set()
        self.auth = FakeAuth()
        self._seq = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def next_timestamp(self) -> str:
        self._seq += 1
        return (_EPOCH + timedelta(seconds=self._seq)).isoformat()

    def add_conversation(self, owner_id: str, title: str = "New conversation") -> dict:
        stamp = self.next_timestamp()
        row = {"id": str(uuid.uuid4()), "user_id": owner_id, "title": title, "created_at": stamp, "updated_at": stamp}
        self.tables["chats"].append(row)
        return row

    def add_turn(self, chat_id: str, role: str, content: str) -> dict:
        row = {"id": str(uuid.uuid4()), "chat_id": chat_id, "role": role, "content": content, "created_at": self.next_timestamp()}
        self.tables["messages"].append(row)
        return row

    def turns(self, chat_id: str) -> list[dict]:
        return [m for m in self.tables["messages"] if m["chat_id"] == chat_id]


class FakeLLM(LLMClient):
    model = "fake/model"

    def __init__(self, store: FakeSupabase):
        self.store = store
        self.chunks: list[str] = ["Hi", " there", "!"]
        self.fail_at: int | None = None
        self.calls: list[dict] = []
        self.closed = False

    async def open_stream(self, system_prompt, turns, temperature, max_tokens):
        self.calls.append({
            "system_prompt": system_prompt,
            "turns": turns,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages_at_call": [dict(m) for m in self.store.tables["messages"]],
        })
        try:
            for i, chunk in enumerate(self.chunks):
                if self.fail_at == i:
                    raise RuntimeError("upstream connection reset by provider-internal-host")
                yield chunk
            if self.fail_at == len(self.chunks):
                raise RuntimeError("upstream connection reset by provider-internal-host")
        finally:
            self.closed = True


def make_token(user_id: str, email: str = "user@example.com", *, secret: str = JWT_SECRET,
               audience: str = "authenticated", expires_in: int = 3600, full_name: str | None = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "aud": audience,
        "role": "authenticated",
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
        "user_metadata": {"full_name": full_name} if full_name else {},
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def store(monkeypatch):
    fake = FakeSupabase()
    monkeypatch.setattr("chat_relay.conversations.repository.get_supabase", lambda: fake)
    monkeypatch.setattr("chat_relay.auth.routes.get_supabase", lambda: fake)
    monkeypatch.setattr("chat_relay.auth.routes.get_anon_supabase", lambda: fake)
    return fake


@pytest.fixture
def llm(store):
    fake = FakeLLM(store)
    app.dependency_overrides[get_configured_llm_client] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
def client(store, llm):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def user_id():
    return "11111111-1111-1111-1111-111111111111"


@pytest.fixture
def auth_header(user_id):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def other_header():
    return {"Authorization": f"Bearer {make_token('22222222-2222-2222-2222-222222222222', 'other@example.com')}"}
