import pytest
from pymongo.errors import ServerSelectionTimeoutError

import database
import store


class FakeCollection:
    def __init__(self):
        self.docs = {}

    def find(self, filter=None):
        return [dict(doc) for doc in self.docs.values()]

    def find_one(self, filter=None):
        for doc in self.find():
            if not filter or all(doc.get(k) == v for k, v in filter.items()):
                return doc
        return None

    def update_one(self, filter, update, upsert=False):
        doc = self.docs.get(filter["_id"])
        if doc is None:
            if not upsert:
                return
            doc = {"_id": filter["_id"]}
        doc.update(update["$set"])
        self.docs[filter["_id"]] = doc

    def replace_one(self, filter, replacement, upsert=False):
        if filter["_id"] in self.docs or upsert:
            self.docs[filter["_id"]] = {"_id": filter["_id"], **replacement}

    def count_documents(self, filter):
        return len(self.docs)


class FakeDatabase:
    name = "rentcar_test"

    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())

    def command(self, cmd):
        return {"ok": 1}


class BrokenCollection:
    def _fail(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers available")

    find = find_one = update_one = replace_one = count_documents = _fail


class BrokenDatabase:
    name = "rentcar_down"

    def __getitem__(self, name):
        return BrokenCollection()

    def command(self, cmd):
        raise ServerSelectionTimeoutError("no servers available")


@pytest.fixture(autouse=True)
def outbox():
    store.default_outbox.clear()
    yield store.default_outbox
    store.default_outbox.clear()


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeDatabase()
    monkeypatch.setattr(database, "db", db)
    return db


@pytest.fixture
def broken_db(monkeypatch):
    db = BrokenDatabase()
    monkeypatch.setattr(database, "db", db)
    return db


@pytest.fixture
def no_db(monkeypatch):
    monkeypatch.setattr(database, "db", None)
