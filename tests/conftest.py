"""Shared fixtures: in-memory Supabase double, provider stubs and the FastAPI app."""

from __future__ import annotations

import copy
import json
import os
import re
from datetime import datetime, timezone
from types import SimpleNamespace

# Settings are read at import time
os.environ["SUPABASE_URL"] = "https://project.supabase.test"
os.environ["SUPABASE_SERVICE_KEY"] = "service-role-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["TELEGRAM_BOT_TOKEN"] = "123456:TEST-TOKEN"
os.environ["WATI_BASE_URL"] = "https://wati.test"
os.environ["WATI_API_KEY"] = "Bearer wati-key"
os.environ["WATI_WEBHOOK_SECRET"] = "wati-secret"
os.environ.pop("DEFAULT_OWNER_USER_ID", None)

import httpx
import pytest
from fastapi.testclient import TestClient

from estate_hive.models.user import User
from estate_hive.services.telegram_service import TelegramBotService
from estate_hive.services.whatsapp_service import WatiService

TELEGRAM_BASE_URL = "https://api.telegram.test"
AGENT_USER_ID = "agent-1"
OWNER_USER_ID = "owner-1"


# ---------------------------------------------------------------------------
# Supabase double
# ---------------------------------------------------------------------------

def _ilike(value, pattern: str) -> bool:
    if value is None:
        return False
    regex = ".*".join(re.escape(part) for part in pattern.split("%"))
    return re.fullmatch(regex, str(value), flags=re.IGNORECASE | re.DOTALL) is not None


class FakeQuery:
    """Chained PostgREST-style builder over in-memory tables."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.values = None
        self.filters = []
        self.ordering = None
        self.max_rows = None

    # operations
    def select(self, *columns, count=None):
        self.op = "select"
        return self

    def insert(self, values):
        self.op = "insert"
        self.values = values
        return self

    def update(self, values):
        self.op = "update"
        self.values = values
        return self

    def delete(self):
        self.op = "delete"
        return self

    # filters
    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def is_(self, column, value):
        if value == "null":
            self.filters.append(lambda row: row.get(column) is None)
        else:
            self.filters.append(lambda row: row.get(column) == value)
        return self

    def ilike(self, column, pattern):
        self.filters.append(lambda row: _ilike(row.get(column), pattern))
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def or_(self, expression):
        clauses = []
        for clause in expression.split(","):
            column, operator, pattern = clause.split(".", 2)
            assert operator == "ilike", f"unsupported or_ operator {operator}"
            clauses.append((column, pattern))
        self.filters.append(lambda row: any(_ilike(row.get(c), p) for c, p in clauses))
        return self

    def order(self, column, desc=False):
        self.ordering = (column, desc)
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def _matching(self):
        rows = self.db.tables.setdefault(self.table_name, [])
        return [row for row in rows if all(f(row) for f in self.filters)]

    def execute(self):
        if (self.table_name, self.op) in self.db.fail_on:
            raise RuntimeError(f"{self.op} on {self.table_name} failed")

        rows = self.db.tables.setdefault(self.table_name, [])

        if self.op == "insert":
            new_rows = self.values if isinstance(self.values, list) else [self.values]
            inserted = []
            for values in new_rows:
                row = {"created_at": datetime.now(timezone.utc).isoformat(), **copy.deepcopy(values)}
                row["id"] = self.db.next_id(self.table_name)
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return SimpleNamespace(data=inserted, count=None)

        matching = self._matching()

        if self.op == "update":
            for row in matching:
                row.update(copy.deepcopy(self.values))
            return SimpleNamespace(data=copy.deepcopy(matching), count=None)

        if self.op == "delete":
            self.db.tables[self.table_name] = [row for row in rows if row not in matching]
            return SimpleNamespace(data=copy.deepcopy(matching), count=None)

        if self.ordering:
            column, desc = self.ordering
            matching = sorted(matching, key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        if self.max_rows is not None:
            matching = matching[:self.max_rows]
        return SimpleNamespace(data=copy.deepcopy(matching), count=len(matching))


class FakeAdmin:
    def __init__(self, users):
        self.users = users

    def list_users(self):
        return list(self.users)


class FakeAuth:
    def __init__(self, users, tokens):
        self.admin = FakeAdmin(users)
        self.tokens = tokens

    def get_user(self, token):
        if token not in self.tokens:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=self.tokens[token])


class FakeSupabase:
    """Just enough of supabase.Client for the services under test."""

    def __init__(self, users=None, tokens=None):
        self.tables = {"conversations": [], "messages": []}
        self.fail_on = set()
        self._ids = {}
        self.auth = FakeAuth(users if users is not None else [], tokens or {})

    def next_id(self, table):
        self._ids[table] = self._ids.get(table, 0) + 1
        return self._ids[table]

    def table(self, name):
        return FakeQuery(self, name)

    # test helpers
    def add_conversation(self, **fields):
        row = {"unread_count": 0, "user_id": OWNER_USER_ID, **fields}
        return self.table("conversations").insert(row).execute().data[0]

    def add_message(self, **fields):
        row = {"sender_id": None, "is_read": False, **fields}
        return self.table("messages").insert(row).execute().data[0]

    @property
    def conversations(self):
        return self.tables["conversations"]

    @property
    def messages(self):
        return self.tables["messages"]


# ---------------------------------------------------------------------------
# Provider stubs
# ---------------------------------------------------------------------------

class ProviderStub:
    """httpx.MockTransport handler routing by URL path suffix."""

    def __init__(self, default_routes=None):
        self.requests = []
        self.routes = dict(default_routes or {})

    def respond(self, suffix, status_code=200, json_body=None, content=None, headers=None, exc=None):
        self.routes[suffix] = dict(
            status_code=status_code, json_body=json_body, content=content, headers=headers, exc=exc
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, route in self.routes.items():
            if request.url.path.endswith(suffix):
                if route.get("exc"):
                    raise route["exc"]
                if route.get("content") is not None:
                    return httpx.Response(route["status_code"], content=route["content"], headers=route.get("headers"))
                return httpx.Response(route["status_code"], json=route.get("json_body"), headers=route.get("headers"))
        return httpx.Response(404, json={"ok": False, "description": "Not Found"})

    def calls(self, suffix):
        return [r for r in self.requests if r.url.path.endswith(suffix)]

    def json_of(self, suffix, index=0):
        return json.loads(self.calls(suffix)[index].content)

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)


@pytest.fixture
def owner():
    return SimpleNamespace(id=OWNER_USER_ID, email="owner@estatehive.test")


@pytest.fixture
def fake_supabase(owner):
    agent = SimpleNamespace(
        id=AGENT_USER_ID, email="agent@estatehive.test", aud="authenticated",
        role="authenticated", user_metadata={},
    )
    return FakeSupabase(users=[owner], tokens={"store-token": agent})


@pytest.fixture
def telegram_stub():
    stub = ProviderStub()
    stub.respond("/sendChatAction", json_body={"ok": True, "result": True})
    stub.respond("/sendMessage", json_body={"ok": True, "result": {"message_id": 77}})
    return stub


@pytest.fixture
def wati_stub():
    stub = ProviderStub()
    stub.respond("/messages", json_body={"result": True, "id": "wamid.1"})
    return stub


@pytest.fixture
def telegram_service(telegram_stub):
    return TelegramBotService(
        bot_token="123456:TEST-TOKEN", base_url=TELEGRAM_BASE_URL, transport=telegram_stub.transport
    )


@pytest.fixture
def whatsapp_service(wati_stub):
    return WatiService(base_url="https://wati.test", api_key="Bearer wati-key", transport=wati_stub.transport)


@pytest.fixture
def app(fake_supabase, telegram_service, whatsapp_service):
    """App with storage and providers replaced; authentication left real."""
    from main import app as _app
    from estate_hive.services.supabase_client import get_supabase_client
    from estate_hive.services.telegram_service import get_telegram_service
    from estate_hive.services.whatsapp_service import get_whatsapp_service

    _app.dependency_overrides[get_supabase_client] = lambda: fake_supabase
    _app.dependency_overrides[get_telegram_service] = lambda: telegram_service
    _app.dependency_overrides[get_whatsapp_service] = lambda: whatsapp_service
    yield _app
    _app.dependency_overrides.clear()


@pytest.fixture
def anon_client(app):
    return TestClient(app)


@pytest.fixture
def client(app):
    """Client whose requests are authenticated as AGENT_USER_ID."""
    from estate_hive.auth.dependencies import get_current_user

    app.dependency_overrides[get_current_user] = lambda: User(user_id=AGENT_USER_ID, email="agent@estatehive.test")
    return TestClient(app)
