"""
Pytest configuration for unit tests

The fakes below stand in for the small part of the pymongo client surface
the harness uses. Every client created by `FakeClientFactory` talks to the
same `FakeServer`, which also scripts connection failures.
"""
import pytest
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from mongo_cdc_harness.config import Settings
from mongo_cdc_harness.services.connection_context import ConnectionContext


def _matches(document: Dict[str, Any], filter: Dict[str, Any]) -> bool:
    return all(document.get(key) == value for key, value in (filter or {}).items())


class FakeCollection:
    def __init__(self, server: "FakeServer", name: str):
        self.server = server
        self.name = name
        self.documents: List[Dict[str, Any]] = []
        self.bypass_flags: List[bool] = []

    def drop(self):
        self.server.calls.append(("drop", self.name))
        self.documents.clear()

    def insert_one(self, document, bypass_document_validation=False):
        self.server.maybe_fail("insert_one")
        self.server.calls.append(("insert_one", self.name))
        self.documents.append(dict(document))
        self.bypass_flags.append(bypass_document_validation)
        return SimpleNamespace(inserted_id=document.get("_id"))

    def update_one(self, filter, update):
        self.server.calls.append(("update_one", self.name))
        for document in self.documents:
            if _matches(document, filter):
                document.update(update.get("$set", {}))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def find(self, filter=None):
        return [dict(d) for d in self.documents if _matches(d, filter)]


class FakeDatabase:
    def __init__(self, server: "FakeServer", name: str):
        self.server = server
        self.name = name
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(self.server, f"{self.name}.{name}")
        return self.collections[name]

    def list_collection_names(self) -> List[str]:
        return list(self.collections)

    def command(self, name: str):
        assert name == "hello"
        self.server.maybe_fail("hello")
        return {"setName": "rs0", "primary": self.server.primary, "isWritablePrimary": True}


class FakeServer:
    """Shared state behind every fake client"""

    def __init__(self):
        self.primary: Optional[str] = "node1:27017"
        self.databases: Dict[str, FakeDatabase] = {}
        self.failures: Dict[str, List[BaseException]] = {}
        self.passes: Dict[str, int] = {}
        self.calls: List[tuple] = []

    def fail(self, operation: str, *errors: BaseException, after: int = 0):
        """Raise `errors` in order on the calls of `operation` following the next `after`"""
        self.failures.setdefault(operation, []).extend(errors)
        self.passes[operation] = after

    def maybe_fail(self, operation: str):
        if self.passes.get(operation):
            self.passes[operation] -= 1
            return
        pending = self.failures.get(operation)
        if pending:
            raise pending.pop(0)

    def database(self, name: str) -> FakeDatabase:
        if name not in self.databases:
            self.databases[name] = FakeDatabase(self, name)
        return self.databases[name]


class FakeClient:
    def __init__(self, server: FakeServer, uri: str, **options):
        self.server = server
        self.uri = uri
        self.options = options
        self.closed = False
        self.admin = FakeDatabase(server, "admin")

    @property
    def address(self):
        host, port = self.server.primary.split(":")
        return host, int(port)

    def __getitem__(self, name: str) -> FakeDatabase:
        return self.server.database(name)

    def list_database_names(self) -> List[str]:
        return ["admin", "config", "local"] + list(self.server.databases)

    def close(self):
        self.closed = True


class FakeClientFactory:
    def __init__(self, server: FakeServer):
        self.server = server
        self.created: List[FakeClient] = []

    def __call__(self, uri: str, **options) -> FakeClient:
        client = FakeClient(self.server, uri, **options)
        self.created.append(client)
        return client


@pytest.fixture
def settings() -> Settings:
    """Settings with short retry delays"""
    return Settings(
        mongodb_hosts="node1:27017,node2:27017",
        replica_set_name="rs0",
        connect_backoff_initial_delay_ms=10,
        connect_backoff_max_delay_ms=40,
        connection_error_threshold=3,
    )


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def client_factory(server) -> FakeClientFactory:
    return FakeClientFactory(server)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def connection_context(settings, client_factory, sleeps) -> ConnectionContext:
    return ConnectionContext(settings, client_factory=client_factory, sleep=sleeps.append)
