"""
In-memory stand-ins for the pymongo objects the splitters touch.

Only the surface used by shardsplit is modelled:

    client[db][coll].find(filter, sort=...)   -> context-managed cursor
    client[db][coll].find_one(filter)
    client[db][coll].aggregate(pipeline, ...)
    client[db].command(name_or_son, ...)
    client.admin.command("ping")
    client.close()

find() filters by top-level equality and returns documents in insertion order,
so tests insert chunk records already sorted by min.
"""

from typing import Any, Dict, List, Optional

import pytest


class FakeCursor:
    def __init__(self, docs):
        self._docs = list(docs)
        self.closed = False

    def __iter__(self):
        return iter(self._docs)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self.closed = True


def _matches(doc: Dict[str, Any], flt: Optional[Dict[str, Any]]) -> bool:
    return all(doc.get(key) == value for key, value in (flt or {}).items())


class FakeCollection:
    def __init__(self, database: "FakeDatabase", name: str):
        self.database = database
        self.name = name
        self.full_name = f"{database.name}.{name}"
        self.docs: List[Dict[str, Any]] = []
        self.error: Optional[Exception] = None
        self.find_calls: List[Dict[str, Any]] = []
        self.aggregate_result: List[Dict[str, Any]] = []
        self.pipelines: List[List[Dict[str, Any]]] = []

    def insert_many(self, docs):
        self.docs.extend(docs)

    def find(self, filter=None, **kwargs):
        self.find_calls.append({"filter": filter, **kwargs})
        if self.error:
            raise self.error
        return FakeCursor(doc for doc in self.docs if _matches(doc, filter))

    def find_one(self, filter=None):
        if self.error:
            raise self.error
        return next((doc for doc in self.docs if _matches(doc, filter)), None)

    def aggregate(self, pipeline, **kwargs):
        self.pipelines.append(pipeline)
        if self.error:
            raise self.error
        return iter(self.aggregate_result)


class FakeDatabase:
    def __init__(self, name: str):
        self.name = name
        self.collections: Dict[str, FakeCollection] = {}
        self.responses: Dict[str, Any] = {}
        self.commands: List[Any] = []

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name)
        return self.collections[name]

    def command(self, command, value=None, **kwargs):
        name = command if isinstance(command, str) else next(iter(command))
        self.commands.append(command if value is None else (command, value))
        response = self.responses.get(name, {"ok": 1})
        if isinstance(response, Exception):
            raise response
        return response


class FakeClient:
    def __init__(self, uri: Optional[str] = None, **kwargs):
        self.uri = uri
        self.kwargs = kwargs
        self.databases: Dict[str, FakeDatabase] = {}
        self.closed = False

    def __getitem__(self, name: str) -> FakeDatabase:
        if name not in self.databases:
            self.databases[name] = FakeDatabase(name)
        return self.databases[name]

    @property
    def admin(self) -> FakeDatabase:
        return self["admin"]

    def close(self):
        self.closed = True


class ClientFactory:
    """Returns one prepared FakeClient and records how it was asked for."""

    def __init__(self, client: FakeClient):
        self.client = client
        self.calls: List[Any] = []

    def __call__(self, uri, **kwargs):
        self.calls.append((uri, kwargs))
        self.client.uri = uri
        self.client.kwargs = kwargs
        return self.client


INPUT_URI = "mongodb://mongos1:27017/app.events"


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def client_factory(fake_client) -> ClientFactory:
    return ClientFactory(fake_client)
