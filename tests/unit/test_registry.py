from __future__ import annotations

import asyncio
from typing import Any, Dict

import pytest

from cosmos_models.config import Settings
from cosmos_models.domain.models import AutoFieldPolicy, Document
from cosmos_models.errors import ConfigurationError
from cosmos_models.infrastructure.connection import ConnectionConfig
from cosmos_models.model import Model
from cosmos_models.registry import (
    CONNECTION_KEY,
    Database,
    ModelBuilder,
    create_client,
    create_client_from_settings,
    create_client_verified,
    reserved_names,
)

CONNECTION_STRING = "AccountEndpoint=https://acct.documents.azure.com:443/;AccountKey=a2V5;"
ENVIRON = {"COSMOS_CONNECTION_STRING": CONNECTION_STRING}


class User(Document):
    name: str


def _two_models(builder: ModelBuilder) -> Dict[str, Model]:
    return {
        "users": builder.create_model("users", User),
        "events": builder.create_model("events"),
    }


def test_create_client_builds_exactly_one_connection(client_factory):
    db = create_client("app", _two_models, environ=ENVIRON, client_factory=client_factory)

    assert len(client_factory.clients) == 1
    assert db.connection is client_factory.clients[0]
    assert db.users.connection is db.connection
    assert db.events.connection is db.connection


def test_factory_is_called_once_with_a_builder(client_factory):
    calls = []

    def models(builder: ModelBuilder) -> Dict[str, Model]:
        calls.append(builder)
        return {"users": builder.create_model("users", User)}

    create_client("app", models, environ=ENVIRON, client_factory=client_factory)

    assert len(calls) == 1
    assert isinstance(calls[0], ModelBuilder)


def test_models_are_reachable_by_attribute_and_key(client_factory):
    db = create_client("app", _two_models, environ=ENVIRON, client_factory=client_factory)

    assert isinstance(db, Database)
    assert db.users is db["users"]
    assert sorted(db) == ["events", "users"]
    assert len(db) == 2
    assert db.users.collection == "users"
    assert db.users.database == "app"
    assert db.users.document_type is User
    assert db.events.document_type is Document


def test_unknown_model_attribute_raises_attribute_error(client_factory):
    db = create_client("app", _two_models, environ=ENVIRON, client_factory=client_factory)

    with pytest.raises(AttributeError):
        db.orders  # noqa: B018


def test_missing_connection_string_fails_before_anything_is_built(client_factory):
    calls = []

    def models(builder: ModelBuilder) -> Dict[str, Model]:
        calls.append(builder)
        return {}

    with pytest.raises(ConfigurationError, match="COSMOS_CONNECTION_STRING"):
        create_client("app", models, environ={}, client_factory=client_factory)

    assert client_factory.clients == []
    assert calls == []


def test_explicit_connection_config_skips_environment(client_factory):
    db = create_client(
        "app",
        _two_models,
        connection=ConnectionConfig(connection_string=CONNECTION_STRING),
        environ={},
        client_factory=client_factory,
    )

    assert db.connection.connection_string == CONNECTION_STRING


def test_policy_defaults_to_everything_enabled(client_factory):
    db = create_client("app", _two_models, environ=ENVIRON, client_factory=client_factory)

    assert db.users.policy == AutoFieldPolicy(generate_id=True, generate_timestamps=True)


def test_registry_policy_applies_to_every_model(client_factory):
    db = create_client(
        "app",
        _two_models,
        auto_fields=AutoFieldPolicy(generate_id=False),
        environ=ENVIRON,
        client_factory=client_factory,
    )

    assert db.users.policy.generate_id is False
    assert db.users.policy.generate_timestamps is True
    assert db.events.policy.generate_id is False


def test_per_model_overrides_take_precedence(client_factory):
    def models(builder: ModelBuilder) -> Dict[str, Model]:
        return {
            "users": builder.create_model("users", User, generate_id=True),
            "events": builder.create_model("events", generate_timestamps=False),
        }

    db = create_client(
        "app",
        models,
        auto_fields=AutoFieldPolicy(generate_id=False, generate_timestamps=True),
        environ=ENVIRON,
        client_factory=client_factory,
    )

    assert db.users.policy == AutoFieldPolicy(generate_id=True, generate_timestamps=True)
    assert db.events.policy == AutoFieldPolicy(generate_id=False, generate_timestamps=False)


def test_connection_setting_name_flows_to_models(client_factory):
    db = create_client(
        "app",
        _two_models,
        connection=ConnectionConfig(connection_string_env_name="ORDERS_DB"),
        environ={"ORDERS_DB": CONNECTION_STRING},
        client_factory=client_factory,
    )

    assert db.users.connection_string_setting == "ORDERS_DB"


def test_reserved_connection_name_is_rejected(client_factory):
    def models(builder: ModelBuilder) -> Dict[str, Model]:
        return {CONNECTION_KEY: builder.create_model("connection")}

    with pytest.raises(ConfigurationError, match="reserved"):
        create_client("app", models, environ=ENVIRON, client_factory=client_factory)


def test_empty_names_are_rejected(client_factory):
    with pytest.raises(ConfigurationError, match="Database"):
        create_client("", _two_models, environ=ENVIRON, client_factory=client_factory)

    with pytest.raises(ConfigurationError, match="Collection"):
        create_client(
            "app",
            lambda builder: {"x": builder.create_model("")},
            environ=ENVIRON,
            client_factory=client_factory,
        )


def test_defaults_for_paging_and_timeout_reach_models(client_factory):
    db = create_client(
        "app",
        _two_models,
        max_item_count=50,
        default_timeout=2.5,
        environ=ENVIRON,
        client_factory=client_factory,
    )

    assert db.users.max_item_count == 50
    assert db.users.default_timeout == 2.5


def test_create_client_from_settings(monkeypatch, client_factory):
    monkeypatch.setenv("COSMOS_CONNECTION_STRING", CONNECTION_STRING)
    settings = Settings(
        COSMOS_DATABASE="shop",
        COSMOS_GENERATE_TIMESTAMPS=False,
        COSMOS_MAX_ITEM_COUNT=25,
    )

    db = create_client_from_settings(_two_models, settings=settings, client_factory=client_factory)

    assert db.name == "shop"
    assert db.users.database == "shop"
    assert db.users.policy.generate_timestamps is False
    assert db.users.max_item_count == 25


@pytest.mark.asyncio
async def test_close_closes_the_shared_client(client_factory):
    async with create_client("app", _two_models, environ=ENVIRON, client_factory=client_factory) as db:
        client = db.connection

    assert client.closed is True


@pytest.mark.asyncio
async def test_verify_accepts_id_partitioned_containers(client_factory):
    db = create_client("app", _two_models, environ=ENVIRON, client_factory=client_factory)

    await db.verify()


@pytest.mark.asyncio
async def test_verified_client_rejects_other_partition_keys_and_closes(client_factory):
    def models(builder: ModelBuilder) -> Dict[str, Any]:
        users = builder.create_model("users", User)
        users.container.partition_key_paths = ["/tenantId"]
        return {"users": users}

    with pytest.raises(ConfigurationError, match="/tenantId"):
        await create_client_verified("app", models, environ=ENVIRON, client_factory=client_factory)

    assert client_factory.clients[0].closed is True


@pytest.mark.parametrize("name", ["items", "name", "keys", "get", "verify", "close"])
def test_names_shadowed_by_database_attributes_are_rejected(client_factory, name):
    with pytest.raises(ConfigurationError, match="reserved") as excinfo:
        create_client(
            "app",
            lambda builder: {name: builder.create_model(name), "users": builder.create_model("users")},
            environ=ENVIRON,
            client_factory=client_factory,
        )

    assert excinfo.value.setting == name


def test_reserved_names_lists_every_collision():
    assert reserved_names(["users", "items", "name", CONNECTION_KEY]) == [
        CONNECTION_KEY,
        "items",
        "name",
    ]
    assert reserved_names(["users", "events", "orders"]) == []


def test_failed_build_closes_the_client(client_factory):
    def models(builder: ModelBuilder) -> Dict[str, Model]:
        return {CONNECTION_KEY: builder.create_model("connection")}

    with pytest.raises(ConfigurationError):
        create_client("app", models, environ=ENVIRON, client_factory=client_factory)

    assert len(client_factory.clients) == 1
    assert client_factory.clients[0].closed is True


def test_factory_error_closes_the_client_and_propagates(client_factory):
    def models(builder: ModelBuilder) -> Dict[str, Model]:
        raise RuntimeError("factory failed")

    with pytest.raises(RuntimeError, match="factory failed"):
        create_client("app", models, environ=ENVIRON, client_factory=client_factory)

    assert client_factory.clients[0].closed is True


@pytest.mark.asyncio
async def test_failed_build_inside_a_running_loop_closes_the_client(client_factory):
    with pytest.raises(ConfigurationError):
        create_client(
            "app",
            lambda builder: {"items": builder.create_model("items")},
            environ=ENVIRON,
            client_factory=client_factory,
        )

    await asyncio.sleep(0)

    assert client_factory.clients[0].closed is True
