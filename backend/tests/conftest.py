"""
Pytest fixtures for the sales dashboard backend.

Provides an in-memory Firestore stand-in, a fake identity provider, a
scripted model client and a test client wired to all three.
"""
import copy
import operator
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from salesdash.database import get_db
from salesdash.dependencies import get_gemini, get_identity
from salesdash.main import app
from salesdash.services import data_service
from salesdash.utils.parsing import to_datetime

_OPS = {
    "==": operator.eq,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def _comparable(value):
    if isinstance(value, datetime):
        return to_datetime(value)
    return value


class FakeSnapshot:

    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeWatch:

    def __init__(self, watchers, callback):
        self._watchers = watchers
        self._callback = callback
        self.unsubscribed = 0

    def unsubscribe(self):
        self.unsubscribed += 1
        if self._callback in self._watchers:
            self._watchers.remove(self._callback)


class FakeDocument:

    def __init__(self, db, collection, doc_id):
        self.db = db
        self.collection_name = collection
        self.id = doc_id

    @property
    def _store(self):
        return self.db.data.setdefault(self.collection_name, {})

    def get(self):
        return FakeSnapshot(self.id, self._store.get(self.id))

    def set(self, data, merge=False):
        if merge and self.id in self._store:
            self._store[self.id].update(copy.deepcopy(data))
        else:
            self._store[self.id] = copy.deepcopy(data)
        self.db.writes.append((self.collection_name, self.id, copy.deepcopy(data), merge))
        self._notify()

    def on_snapshot(self, callback):
        watchers = self.db.watchers.setdefault((self.collection_name, self.id), [])
        watchers.append(callback)
        callback([self.get()], [], None)
        return FakeWatch(watchers, callback)

    def _notify(self):
        for callback in list(self.db.watchers.get((self.collection_name, self.id), [])):
            callback([self.get()], [], None)


class FakeQuery:

    def __init__(self, db, collection, filters=(), order=None, limit_count=None):
        self.db = db
        self.collection_name = collection
        self.filters = tuple(filters)
        self.order = order
        self.limit_count = limit_count

    def where(self, filter):
        return FakeQuery(self.db, self.collection_name, self.filters + (filter,), self.order, self.limit_count)

    def order_by(self, field, direction="ASCENDING"):
        return FakeQuery(self.db, self.collection_name, self.filters, (field, direction), self.limit_count)

    def limit(self, count):
        return FakeQuery(self.db, self.collection_name, self.filters, self.order, count)

    def stream(self):
        self.db.queries.append(self)
        if self.collection_name in self.db.failing:
            raise self.db.failing[self.collection_name]
        docs = list(self.db.data.get(self.collection_name, {}).items())
        for f in self.filters:
            op = _OPS[f.op_string]
            docs = [
                (doc_id, d) for doc_id, d in docs
                if d.get(f.field_path) is not None
                and op(_comparable(d[f.field_path]), _comparable(f.value))
            ]
        if self.order is not None:
            field, direction = self.order
            docs.sort(key=lambda item: _comparable(item[1].get(field)), reverse=direction == "DESCENDING")
        if self.limit_count is not None:
            docs = docs[:self.limit_count]
        return iter([FakeSnapshot(doc_id, copy.deepcopy(d)) for doc_id, d in docs])


class FakeCollection(FakeQuery):

    def document(self, doc_id=None):
        if doc_id is None:
            self.db.generated_ids += 1
            doc_id = f"auto-{self.db.generated_ids}"
        return FakeDocument(self.db, self.collection_name, doc_id)


class FakeBatch:

    def __init__(self, db):
        self.db = db
        self.operations = []
        self.committed = False

    def set(self, ref, data, merge=False):
        self.operations.append((ref, data, merge))

    def commit(self):
        for ref, data, merge in self.operations:
            ref.set(data, merge=merge)
        self.committed = True
        self.db.batches.append(self)


class FakeFirestore:
    """Just enough of the Firestore client API for the services under test."""

    def __init__(self):
        self.data = {}
        self.watchers = {}
        self.queries = []
        self.writes = []
        self.batches = []
        self.failing = {}
        self.generated_ids = 0

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def add(self, collection, doc_id, data):
        self.data.setdefault(collection, {})[doc_id] = data

    def query_count(self, collection):
        return sum(1 for q in self.queries if q.collection_name == collection)


class FakeIdentity:

    def __init__(self):
        self.tokens = {}
        self.accounts = {}
        self.claims = {}
        self.created = []
        self.reset_links = []

    def add_token(self, token, uid, role=None, email=None):
        claims = {"uid": uid, "email": email or f"{uid}@soldemaria.com.br"}
        if role is not None:
            claims["role"] = role
        self.tokens[token] = claims

    def verify_id_token(self, token):
        return self.tokens.get(token)

    def get_or_create_user(self, email):
        for uid, account_email in self.accounts.items():
            if account_email == email:
                return uid, False
        uid = f"uid-{len(self.accounts) + 1}"
        self.accounts[uid] = email
        self.created.append(email)
        return uid, True

    def set_role_claim(self, uid, role):
        self.claims[uid] = {"role": role}

    def password_reset_link(self, email):
        self.reset_links.append(email)
        return f"https://auth.example/reset?email={email}"

    def iter_users(self):
        return iter(list(self.accounts.items()))


class ScriptedGemini:
    """Returns queued replies and records every prompt it receives."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def generate(self, prompt, api_key, **options):
        self.calls.append({"prompt": prompt, "api_key": api_key, **options})
        if not self.replies:
            return "ok"
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def sale(doc_id, day, product="Vestido", revenue=100.0, **fields):
    """Sales document as stored by the upload."""
    document = {
        "data": datetime(2024, 5, day, 12, 0, tzinfo=timezone.utc),
        "codigo": fields.pop("codigo", f"P{doc_id}"),
        "descricao": product,
        "quantidade": fields.pop("quantidade", 1),
        "final": revenue,
    }
    document.update(fields)
    return document


@pytest.fixture(autouse=True)
def clear_record_cache():
    data_service.clear_cache()
    yield
    data_service.clear_cache()


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def identity():
    fake = FakeIdentity()
    fake.add_token("admin-token", "u-admin", role="admin")
    fake.add_token("seller-token", "u-seller", role="vendedor")
    fake.add_token("finance-token", "u-finance", role="financeiro")
    return fake


@pytest.fixture
def gemini():
    return ScriptedGemini()


@pytest.fixture
def client(db, identity, gemini):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_identity] = lambda: identity
    app.dependency_overrides[get_gemini] = lambda: gemini
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(token):
    return {"Authorization": f"Bearer {token}"}
