"""
Pytest configuration for cosmos-models.

Provides:
- An in-memory stand-in for ``azure.cosmos.aio.CosmosClient`` that raises the
  SDK's real exception types
- A counting client factory for registry tests
- Settings isolation (cache cleared, Cosmos env variables removed)
- Emulator fixtures for integration tests
"""

from __future__ import annotations

import asyncio
import copy
import os
from typing import Any, AsyncIterator, Dict, List, Optional

import pytest
from azure.cosmos.exceptions import (
    CosmosHttpResponseError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)

from cosmos_models.config import get_settings
from cosmos_models.queries import FIND_BY_QUERY, FIND_MANY_BY_QUERY, FIND_MANY_QUERY

TEST_CONNECTION_STRING = "AccountEndpoint=https://fake.documents.azure.com:443/;AccountKey=c2VjcmV0;"
COUNT_QUERY = "SELECT VALUE COUNT(1) FROM c"
SELECT_ALL_QUERY = "SELECT * FROM c"

# Cosmos emulator well-known key; safe to commit.
EMULATOR_CONNECTION_STRING = (
    "AccountEndpoint=https://localhost:8081/;"
    "AccountKey=C2y6yDjf5/R+ob0N8A7Cgv30VRDJIWEHLM+4QDU5DE2nQ9nDuVTqobD4b8mGGyPMbIZnqyMsEcaGQy67XIw/Jw==;"
)


async def _aiter(rows: List[Any]) -> AsyncIterator[Any]:
    for row in rows:
        yield row


class FakeContainer:
    """Subset of ``ContainerProxy`` (aio) backed by a dict keyed on id."""

    def __init__(self, name: str, partition_key_paths: Optional[List[str]] = None) -> None:
        self.name = name
        self.items: Dict[str, Dict[str, Any]] = {}
        self.partition_key_paths = partition_key_paths or ["/id"]
        self.calls: List[tuple] = []
        self.delay = 0.0

    def _stored(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return {**copy.deepcopy(body), "_rid": "rid==", "_etag": '"00000000"', "_ts": 1700000000}

    async def _latency(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)

    def _missing(self, item: str) -> CosmosResourceNotFoundError:
        return CosmosResourceNotFoundError(
            status_code=404,
            message=f"Entity with the specified id does not exist in the system. id={item}",
        )

    def read_all_items(self, max_item_count: Optional[int] = None) -> AsyncIterator[Dict[str, Any]]:
        self.calls.append(("read_all_items", max_item_count))
        return _aiter([self._stored(body) for body in self.items.values()])

    async def read_item(self, item: str, partition_key: Any) -> Dict[str, Any]:
        self.calls.append(("read_item", item, partition_key))
        await self._latency()
        if item not in self.items or partition_key != item:
            raise self._missing(item)
        return self._stored(self.items[item])

    def query_items(
        self,
        query: str,
        parameters: Optional[List[Dict[str, Any]]] = None,
        max_item_count: Optional[int] = None,
    ) -> AsyncIterator[Any]:
        self.calls.append(("query_items", query, copy.deepcopy(parameters), max_item_count))
        params = {p["name"]: p["value"] for p in parameters or []}
        return self._query(query, params)

    async def _query(self, query: str, params: Dict[str, Any]) -> AsyncIterator[Any]:
        await self._latency()
        documents = [self._stored(body) for body in self.items.values()]
        if query == FIND_MANY_QUERY:
            rows: List[Any] = [d for d in documents if d["id"] in params["@ids"]]
        elif query in (FIND_BY_QUERY, FIND_MANY_BY_QUERY):
            rows = [d for d in documents if d.get(params["@key"]) == params["@value"]]
            if query == FIND_BY_QUERY:
                rows = rows[:1]
        elif query == COUNT_QUERY:
            rows = [len(documents)]
        elif query == SELECT_ALL_QUERY:
            rows = documents
        else:
            raise CosmosHttpResponseError(status_code=400, message=f"Syntax error near {query!r}")
        for row in rows:
            yield row

    async def create_item(self, body: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("create_item", copy.deepcopy(body)))
        await self._latency()
        if body["id"] in self.items:
            raise CosmosResourceExistsError(
                status_code=409,
                message="Entity with the specified id already exists in the system.",
            )
        self.items[body["id"]] = copy.deepcopy(body)
        return self._stored(body)

    async def upsert_item(self, body: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("upsert_item", copy.deepcopy(body)))
        await self._latency()
        self.items[body["id"]] = copy.deepcopy(body)
        return self._stored(body)

    async def replace_item(self, item: str, body: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("replace_item", item, copy.deepcopy(body)))
        await self._latency()
        if item not in self.items:
            raise self._missing(item)
        self.items[item] = copy.deepcopy(body)
        return self._stored(body)

    async def delete_item(self, item: str, partition_key: Any) -> None:
        self.calls.append(("delete_item", item, partition_key))
        await self._latency()
        if item not in self.items:
            raise self._missing(item)
        del self.items[item]

    async def read(self) -> Dict[str, Any]:
        self.calls.append(("read",))
        return {"id": self.name, "partitionKey": {"paths": self.partition_key_paths, "kind": "Hash"}}


class FakeDatabase:
    def __init__(self, client: "FakeCosmosClient", name: str) -> None:
        self._client = client
        self.name = name

    def get_container_client(self, container: str) -> FakeContainer:
        return self._client.containers.setdefault((self.name, container), FakeContainer(container))


class FakeCosmosClient:
    def __init__(self, connection_string: str = TEST_CONNECTION_STRING) -> None:
        self.connection_string = connection_string
        self.containers: Dict[tuple, FakeContainer] = {}
        self.closed = False

    def get_database_client(self, database: str) -> FakeDatabase:
        return FakeDatabase(self, database)

    def container(self, name: str, database: str = "app") -> FakeContainer:
        return FakeDatabase(self, database).get_container_client(name)

    async def close(self) -> None:
        self.closed = True


class CountingClientFactory:
    """Client factory that records every client it builds."""

    def __init__(self) -> None:
        self.clients: List[FakeCosmosClient] = []

    def __call__(self, connection_string: str) -> FakeCosmosClient:
        client = FakeCosmosClient(connection_string)
        self.clients.append(client)
        return client


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """
    Keep the developer's Cosmos environment out of unit tests.
    """
    for name in list(os.environ):
        if name.startswith("COSMOS_") and not name.startswith("COSMOS_TEST_"):
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_client() -> FakeCosmosClient:
    return FakeCosmosClient()


@pytest.fixture
def client_factory() -> CountingClientFactory:
    return CountingClientFactory()


@pytest.fixture
def fixed_clock(monkeypatch: pytest.MonkeyPatch):
    """
    Replace ``utc_now_iso`` with a settable clock; returns a one-item list to mutate.
    """
    from cosmos_models.domain import fields

    now = ["2024-05-01T12:00:00.000Z"]
    monkeypatch.setattr(fields, "utc_now_iso", lambda: now[0])
    return now


@pytest.fixture(scope="session")
def emulator_connection_string() -> str:
    """
    Connection string for integration tests; defaults to the local emulator.
    """
    return os.getenv("COSMOS_TEST_CONNECTION_STRING", EMULATOR_CONNECTION_STRING)


@pytest.fixture(scope="session")
def emulator_database() -> str:
    return os.getenv("COSMOS_TEST_DATABASE", "cosmos-models-tests")
