import copy
from types import SimpleNamespace

import pytest
from bson import ObjectId

from doc_persistence.context import MongoConnectionContext
from doc_persistence.store import RecordStore


def _matches(doc, filter):
    return all(doc.get(key) == value for key, value in filter.items())


def _sorted(docs, sort):
    for key, direction in reversed(sort or []):
        docs = sorted(docs, key=lambda d: d.get(key), reverse=direction < 0)
    return docs


class StubCursor:
    def __init__(self, docs):
        self._docs = iter(docs)
        self.closed = False

    def __iter__(self):
        return self

    def __next__(self):
        if self.closed:
            raise StopIteration
        return next(self._docs)

    def close(self):
        self.closed = True


class StubCollection:
    def __init__(self):
        self.docs = []
        self.calls = []
        self.cursors = []

    def _cursor(self, docs):
        cursor = StubCursor(copy.deepcopy(docs))
        self.cursors.append(cursor)
        return cursor

    def insert_one(self, doc):
        self.calls.append(("insert_one", doc))
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    def update_one(self, filter, update):
        self.calls.append(("update_one", filter, update))
        for doc in self.docs:
            if _matches(doc, filter):
                doc.update(copy.deepcopy(update.get("$set", {})))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def find(self, filter, limit=0, skip=0, sort=None):
        self.calls.append(("find", filter, {"limit": limit, "skip": skip, "sort": sort}))
        docs = _sorted([d for d in self.docs if _matches(d, filter)], sort)
        docs = docs[skip:]
        if limit:
            docs = docs[:limit]
        return self._cursor(docs)

    def aggregate(self, pipeline):
        self.calls.append(("aggregate", pipeline))
        docs = list(self.docs)
        for stage in pipeline:
            ((op, spec),) = stage.items()
            if op == "$match":
                docs = [d for d in docs if _matches(d, spec)]
            elif op == "$sort":
                docs = _sorted(docs, list(spec.items()))
            elif op == "$limit":
                docs = docs[:spec]
            elif op == "$skip":
                docs = docs[spec:]
        return self._cursor(docs)


class StubDatabase(dict):
    def __missing__(self, name):
        collection = self[name] = StubCollection()
        return collection


class StubMongoClient(dict):
    def __init__(self):
        super().__init__()
        self.admin = SimpleNamespace(command=self._command)
        self.commands = []

    def __missing__(self, name):
        database = self[name] = StubDatabase()
        return database

    def _command(self, name):
        self.commands.append(name)
        return {"ok": 1.0}


@pytest.fixture()
def client():
    return StubMongoClient()


@pytest.fixture()
def context(client):
    return MongoConnectionContext(client)


@pytest.fixture()
def store(context):
    return RecordStore(context, "testdb")


@pytest.fixture()
def users(client):
    return client["testdb"]["users"]
