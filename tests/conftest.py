import copy
import itertools
import re
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from app.config.settings import settings
from app.core.dependencies import get_current_user_id
from app.database.supabase_client import get_supabase
from app.main import app, limiter

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)

# column tuples that PostgREST would reject with 23505
UNIQUE_KEYS = {
    "help_offers": ("sos_request_id", "volunteer_id"),
    "post_likes": ("post_id", "user_id"),
    "sos_ratings": ("sos_request_id",),
}

TABLE_DEFAULTS = {
    "chat_messages": {"is_read": False},
    "support_points": {"is_active": True, "is_verified": False},
    "profiles": {"is_volunteer_ready": False},
}


def _matches_or(row, expression):
    for clause in expression.split(","):
        column, op, value = clause.split(".", 2)
        current = row.get(column)
        if op == "eq" and str(current) == value:
            return True
        if op == "neq" and str(current) != value:
            return True
        if op == "is" and value == "null" and current is None:
            return True
    return False


class FakeQuery:
    """Just enough of the postgrest request builder for the services under test"""

    def __init__(self, db, table):
        self.db = db
        self.table_name = table
        self.filters = []
        self.orders = []
        self.limit_count = None
        self.offset = 0
        self.single_mode = None
        self.action = "select"
        self.payload = None
        self._negate = False

    # filters
    def _add(self, fn):
        if self._negate:
            self._negate = False
            self.filters.append(lambda row: not fn(row))
        else:
            self.filters.append(fn)
        return self

    def select(self, *columns, **kwargs):
        return self

    @property
    def not_(self):
        self._negate = True
        return self

    def eq(self, column, value):
        return self._add(lambda row: row.get(column) == value)

    def neq(self, column, value):
        return self._add(lambda row: row.get(column) != value)

    def in_(self, column, values):
        values = list(values)
        return self._add(lambda row: row.get(column) in values)

    def is_(self, column, value):
        expected = None if value in ("null", None) else value
        return self._add(lambda row: row.get(column) is expected)

    def ilike(self, column, pattern):
        regex = re.compile("^" + re.escape(pattern).replace("%", ".*") + "$", re.IGNORECASE)
        return self._add(lambda row: bool(regex.match(row.get(column) or "")))

    def contains(self, column, values):
        return self._add(lambda row: all(v in (row.get(column) or []) for v in values))

    def or_(self, expression):
        return self._add(lambda row: _matches_or(row, expression))

    # modifiers
    def order(self, column, desc=False, **kwargs):
        self.orders.append((column, desc))
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def range(self, start, end):
        self.offset = start
        self.limit_count = end - start + 1
        return self

    def maybe_single(self):
        self.single_mode = "maybe"
        return self

    def single(self):
        self.single_mode = "single"
        return self

    # mutations
    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def upsert(self, payload):
        self.action, self.payload = "upsert", payload
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def _selected(self):
        rows = [row for row in self.db.rows(self.table_name) if all(f(row) for f in self.filters)]
        for column, desc in reversed(self.orders):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column) or ""), reverse=desc)
        return rows

    def execute(self):
        if self.action in ("insert", "upsert"):
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            data = [self.db.insert(self.table_name, row, upsert=self.action == "upsert") for row in payload]
        elif self.action == "update":
            self.db.count_update(self.table_name)
            data = []
            for row in self._selected():
                row.update(copy.deepcopy(self.payload))
                data.append(row)
        elif self.action == "delete":
            data = self._selected()
            table = self.db.rows(self.table_name)
            for row in data:
                table.remove(row)
        else:
            data = self._selected()[self.offset:]
            if self.limit_count is not None:
                data = data[:self.limit_count]

        data = copy.deepcopy(data)
        if self.single_mode:
            if not data and self.single_mode == "maybe":
                return None
            return SimpleNamespace(data=data[0] if data else None)
        return SimpleNamespace(data=data)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self._clock = itertools.count(1)
        self.auth = None
        self.update_counts = {}
        self.failing_updates = {}

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def next_timestamp(self):
        return (BASE_TIME + timedelta(minutes=next(self._clock))).isoformat()

    def insert(self, table, row, upsert=False):
        row = {**TABLE_DEFAULTS.get(table, {}), **copy.deepcopy(row)}
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", self.next_timestamp())
        existing = self.rows(table)

        if upsert:
            for current in existing:
                if current["id"] == row["id"]:
                    current.update(row)
                    return current

        keys = UNIQUE_KEYS.get(table)
        if keys and any(all(r.get(k) == row.get(k) for k in keys) for r in existing):
            raise APIError({
                "code": "23505",
                "message": f'duplicate key value violates unique constraint "{table}_unique"',
            })
        existing.append(row)
        return row

    def fail_update(self, table, nth):
        """The nth update against table raises like a dropped connection"""
        self.failing_updates[table] = nth

    def count_update(self, table):
        self.update_counts[table] = self.update_counts.get(table, 0) + 1
        if self.update_counts[table] == self.failing_updates.get(table):
            raise APIError({"code": "08006", "message": "connection failure"})

    def seed(self, table, **row):
        return copy.deepcopy(self.insert(table, row))

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture(autouse=True)
def fresh_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture(autouse=True)
def notification_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "notification_state_dir", str(tmp_path / "notification_states"))
    return tmp_path / "notification_states"


@pytest.fixture
def client(db):
    app.dependency_overrides[get_supabase] = lambda: db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login(db):
    """login(user_id) makes every following request come from that user"""
    def _login(user_id, email=None):
        app.dependency_overrides[get_current_user_id] = lambda: {
            "id": user_id,
            "email": email or f"{user_id}@example.com",
            "user_metadata": {},
        }
    return _login


@pytest.fixture
def people(db):
    """Requester, two volunteers and a bystander with profile rows"""
    return SimpleNamespace(
        requester=db.seed("profiles", id="u-req", name="Lan"),
        volunteer=db.seed("profiles", id="u-vol", name="Minh", is_volunteer_ready=True),
        volunteer2=db.seed("profiles", id="u-vol2", name="Hoa", is_volunteer_ready=True),
        bystander=db.seed("profiles", id="u-other", name="Tuan"),
    )


@pytest.fixture
def make_sos(db):
    """make_sos(owner_id, status, **columns) seeds one sos_requests row"""
    def _make(user_id, status="active", **extra):
        row = {
            "user_id": user_id,
            "type": "Cứu hộ",
            "description": "Nước ngập tới mái nhà",
            "urgency": "Khẩn cấp",
            "people_affected": 3,
            "latitude": 16.0544,
            "longitude": 108.2022,
            "status": status,
        }
        row.update(extra)
        return db.seed("sos_requests", **row)
    return _make
