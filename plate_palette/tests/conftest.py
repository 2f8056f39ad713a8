# plate_palette/tests/conftest.py
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import httpx
import pytest
from postgrest.exceptions import APIError

from plate_palette.api.deps import build_services
from plate_palette.config.settings import Settings
from plate_palette.services.catalog_client import CatalogClient


# --- Fake Supabase client ---
# Mirrors the supabase-py fluent interface closely enough for the services:
# table().select/insert/update/upsert/delete + eq/neq/gte/lte/in_/order/limit
# and execute(). Unique constraints match the real schema.
def _pair(row):
    return frozenset((str(row.get("user_id")), str(row.get("friend_id"))))


UNIQUE_KEYS = {
    "users": [lambda r: ("id", str(r.get("id"))), lambda r: ("email", r.get("email"))],
    "food_logs": [
        lambda r: (str(r.get("user_id")), str(r.get("fdc_id")), str(r.get("week_starting_date")))
    ],
    "friendships": [_pair],
    "weekly_reactions": [
        lambda r: (str(r.get("from_user_id")), str(r.get("to_user_id")), str(r.get("week_starting_date")))
    ],
}


def _norm(v):
    return None if v is None else str(v)


def _unique_violation():
    return APIError(
        {
            "message": "duplicate key value violates unique constraint",
            "code": "23505",
            "hint": None,
            "details": None,
        }
    )


class FakeQuery:

    def __init__(self, store, table):
        self._store = store
        self._table = table
        self._op = "select"
        self._payload = None
        self._on_conflict = None
        self._filters = []
        self._order = None
        self._limit = None

    # operations
    def select(self, *args, **kwargs):
        self._op = "select"
        return self

    def insert(self, rows):
        self._op = "insert"
        self._payload = rows if isinstance(rows, list) else [rows]
        return self

    def upsert(self, rows, on_conflict=None):
        self._op = "upsert"
        self._payload = rows if isinstance(rows, list) else [rows]
        self._on_conflict = [c.strip() for c in (on_conflict or "id").split(",")]
        return self

    def update(self, data):
        self._op = "update"
        self._payload = data
        return self

    def delete(self):
        self._op = "delete"
        return self

    # filters
    def eq(self, col, val):
        self._filters.append(lambda r: _norm(r.get(col)) == _norm(val))
        return self

    def neq(self, col, val):
        self._filters.append(lambda r: _norm(r.get(col)) != _norm(val))
        return self

    def gte(self, col, val):
        self._filters.append(lambda r: r.get(col) is not None and str(r.get(col)) >= str(val))
        return self

    def lte(self, col, val):
        self._filters.append(lambda r: r.get(col) is not None and str(r.get(col)) <= str(val))
        return self

    def in_(self, col, values):
        wanted = {_norm(v) for v in values}
        self._filters.append(lambda r: _norm(r.get(col)) in wanted)
        return self

    def order(self, col, desc=False):
        self._order = (col, desc)
        return self

    def limit(self, n):
        self._limit = n
        return self

    def _matching(self):
        return [r for r in self._store.tables.setdefault(self._table, []) if all(f(r) for f in self._filters)]

    def execute(self):
        self._store.calls.append((self._table, self._op))
        failure = self._store.failures.get((self._table, self._op))
        if failure is not None:
            raise failure
        hook = self._store.hooks.pop((self._table, self._op), None)
        if hook is not None:
            hook(self._store)
        return getattr(self, "_exec_" + self._op)()

    def _exec_select(self):
        rows = [dict(r) for r in self._matching()]
        if self._order:
            col, desc = self._order
            rows.sort(key=lambda r: str(r.get(col) or ""), reverse=desc)
        if self._limit is not None:
            rows = rows[: self._limit]
        return SimpleNamespace(data=rows, count=None)

    def _exec_insert(self):
        table = self._store.tables.setdefault(self._table, [])
        new_rows = []
        for row in self._payload:
            row = dict(row)
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            new_rows.append(row)
        # all-or-nothing, like a single INSERT statement
        for key_fn in UNIQUE_KEYS.get(self._table, []):
            seen = {key_fn(r) for r in table}
            for row in new_rows:
                key = key_fn(row)
                if key in seen:
                    raise _unique_violation()
                seen.add(key)
        table.extend(new_rows)
        return SimpleNamespace(data=[dict(r) for r in new_rows], count=None)

    def _exec_upsert(self):
        table = self._store.tables.setdefault(self._table, [])
        out = []
        for row in self._payload:
            match = next(
                (
                    r
                    for r in table
                    if all(_norm(r.get(c)) == _norm(row.get(c)) for c in self._on_conflict)
                ),
                None,
            )
            if match is not None:
                match.update(row)
                out.append(dict(match))
            else:
                row = dict(row)
                row.setdefault("id", str(uuid.uuid4()))
                row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
                table.append(row)
                out.append(dict(row))
        return SimpleNamespace(data=out, count=None)

    def _exec_update(self):
        rows = self._matching()
        for r in rows:
            r.update(self._payload)
        return SimpleNamespace(data=[dict(r) for r in rows], count=None)

    def _exec_delete(self):
        rows = self._matching()
        table = self._store.tables[self._table]
        self._store.tables[self._table] = [r for r in table if r not in rows]
        return SimpleNamespace(data=[dict(r) for r in rows], count=None)


class FakeAuth:

    def __init__(self, store):
        self._store = store

    def get_user(self, token):
        user_id = self._store.tokens.get(token)
        if user_id is None:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id=user_id))


class FakeClient:

    def __init__(self):
        self.tables = {}
        self.tokens = {}
        self.calls = []
        # (table, op) -> exception raised on execute
        self.failures = {}
        # (table, op) -> callable(store) run once just before that execute
        self.hooks = {}
        self.auth = FakeAuth(self)

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name):
        return self.tables.get(name, [])


class FixedClock:

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


# Wednesday 2026-10-14 11:00 in Los Angeles; week is Mon 12 .. Sun 18
WEDNESDAY = datetime(2026, 10, 14, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        supabase_url=None,
        supabase_service_role_key=None,
        usda_api_key="test-key",
        default_timezone="America/Los_Angeles",
        default_weekly_goal=20,
    )


@pytest.fixture
def fake_client():
    client = FakeClient()
    client.tables["users"] = [
        {"id": "u-alice", "email": "alice@example.com", "first_name": "Alice", "weekly_goal": 5, "timezone": None},
        {"id": "u-bob", "email": "bob@example.com", "first_name": "Bob", "weekly_goal": 20, "timezone": "America/Los_Angeles"},
        {"id": "u-carol", "email": "carol@example.com", "first_name": None, "weekly_goal": 30, "timezone": "Europe/Berlin"},
        {"id": "u-dave", "email": "dave@example.com", "first_name": "Dave", "weekly_goal": None, "timezone": None},
    ]
    client.tokens = {"tok-alice": "u-alice", "tok-bob": "u-bob", "tok-carol": "u-carol", "tok-dave": "u-dave"}
    return client


@pytest.fixture
def clock():
    return FixedClock(WEDNESDAY)


@pytest.fixture
def catalog_handler():
    """Swap `.handler` in a test to change what the fake USDA API returns."""
    holder = SimpleNamespace(handler=lambda request: httpx.Response(200, json={"foods": []}))
    return holder


@pytest.fixture
def services(fake_client, settings, clock, catalog_handler):
    transport = httpx.MockTransport(lambda request: catalog_handler.handler(request))
    catalog = CatalogClient(settings, transport=transport)
    return build_services(fake_client, settings, catalog=catalog, clock=clock)


def make_food(fdc_id, name=None, nutrients=None):
    from plate_palette.services.catalog_client import FoodRecord

    return FoodRecord(
        fdc_id=fdc_id,
        description=name or f"Food {fdc_id}",
        data_type="SR_Legacy",
        nutrients=nutrients or [],
    )


def accepted(a, b):
    return {"id": f"f-{a}-{b}", "user_id": a, "friend_id": b, "status": "accepted"}


@pytest.fixture
def food():
    return make_food


@pytest.fixture
def friends_row():
    return accepted
