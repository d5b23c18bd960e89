import copy

import pytest

import expenses
import firebase_store
import members
from expenses import Expense
from members import Member


class FakeSnapshot:
    """Document snapshot returned by get() and stream()."""

    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocument:
    def __init__(self, db, path):
        self._db = db
        self._path = path

    @property
    def id(self):
        return self._path[-1]

    def collection(self, name):
        return FakeCollection(self._db, self._path + (name,))

    def set(self, data):
        self._db.docs[self._path] = copy.deepcopy(data)

    def get(self):
        return FakeSnapshot(self.id, self._db.docs.get(self._path))

    def update(self, fields):
        if self._path not in self._db.docs:
            raise KeyError(f"No document to update: {'/'.join(self._path)}")
        data = self._db.docs[self._path]
        for dotted_key, value in fields.items():
            *parents, leaf = dotted_key.split(".")
            target = data
            for key in parents:
                target = target.setdefault(key, {})
            target[leaf] = value

    def delete(self):
        self._db.docs.pop(self._path, None)


class FakeCollection:
    def __init__(self, db, path):
        self._db = db
        self._path = path

    def document(self, doc_id):
        return FakeDocument(self._db, self._path + (doc_id,))

    def stream(self):
        for path, data in list(self._db.docs.items()):
            if len(path) == len(self._path) + 1 and path[:-1] == self._path:
                yield FakeSnapshot(path[-1], copy.deepcopy(data))


class FakeFirestore:
    """In-memory stand-in for the Firestore client, keyed by document path."""

    def __init__(self):
        self.docs = {}

    def collection(self, name):
        return FakeCollection(self, (name,))

    def document_data(self, *path):
        return self.docs.get(tuple(path))


@pytest.fixture
def fake_db(monkeypatch):
    """Patch every module that talks to Firestore with one in-memory client."""
    db = FakeFirestore()
    for module in (members, expenses, firebase_store):
        monkeypatch.setattr(module, "get_db", lambda: db)
    return db


@pytest.fixture
def household(fake_db):
    """A household with three members stored in the fake database."""
    household_id = "household_test"
    fake_db.collection("households").document(household_id).set({"household_id": household_id})
    for member in roster_members():
        fake_db.collection("households").document(household_id) \
               .collection("members").document(member.member_id).set(member.to_dict())
    return household_id


def roster_members():
    return [
        Member("A", "Alice", role="Owner"),
        Member("B", "Bob"),
        Member("C", "Carol"),
    ]


@pytest.fixture
def roster():
    """Alice (A), Bob (B) and Carol (C)."""
    return roster_members()


@pytest.fixture
def make_expense():
    """Factory for expenses; every participant is unsettled unless given."""
    counter = {"n": 0}

    def _make(amount, paid_by, split_among, settled=None, expense_id=None, category="Other"):
        counter["n"] += 1
        if settled is None:
            settled = {member_id: False for member_id in split_among}
        return Expense(
            expense_id=expense_id or f"E{counter['n']:03d}",
            title=f"Expense {counter['n']}",
            amount=amount,
            paid_by=paid_by,
            split_among=split_among,
            settled=settled,
            category=category,
            paid_at="2025-05-10"
        )

    return _make
