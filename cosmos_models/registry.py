"""
Model registry: one client, many typed models.

``create_client`` resolves the connection string once, builds a single Cosmos
client, and hands a ``ModelBuilder`` to the caller's factory. Every model the
factory creates shares that client. The factory's mapping comes back merged
with the client on a ``Database``:

    class User(Document):
        name: str

    db = create_client(
        "app",
        lambda builder: {
            "users": builder.create_model("users", User),
            "events": builder.create_model("events", generate_timestamps=False),
        },
    )
    user = await db.users.create({"name": "Ada"})
    await db.close()
"""

from __future__ import annotations

import asyncio
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Set,
    Type,
    TypeVar,
)

from cosmos_models.config import Settings, get_settings
from cosmos_models.domain.models import AutoFieldPolicy, Document
from cosmos_models.errors import ConfigurationError
from cosmos_models.infrastructure.connection import (
    ClientFactory,
    ConnectionConfig,
    open_connection,
)
from cosmos_models.model import Model
from cosmos_models.utils.logging import get_logger

T = TypeVar("T", bound=Document)

CONNECTION_KEY = "connection"

# Attributes set on every Database instance.
_INSTANCE_ATTRS = frozenset({CONNECTION_KEY, "name", "_models"})

# Close tasks scheduled from inside a running loop; referenced until done.
_closing: Set["asyncio.Task[None]"] = set()

log = get_logger(__name__)


class ModelBuilder:
    """
    Creates models bound to an already-resolved client.

    Policy precedence, lowest first: system defaults, the registry-level
    policy, then the per-call overrides.
    """

    def __init__(
        self,
        connection: Any,
        database: str,
        auto_fields: AutoFieldPolicy,
        connection_string_setting: str,
        max_item_count: Optional[int] = None,
        default_timeout: Optional[float] = None,
    ) -> None:
        self._connection = connection
        self._database = database
        self._auto_fields = auto_fields
        self._connection_string_setting = connection_string_setting
        self._max_item_count = max_item_count
        self._default_timeout = default_timeout

    def create_model(
        self,
        collection: str,
        document_type: Type[T] = Document,  # type: ignore[assignment]
        *,
        generate_id: Optional[bool] = None,
        generate_timestamps: Optional[bool] = None,
    ) -> Model[T]:
        if not collection:
            raise ConfigurationError("Collection name must not be empty", setting="collection")
        policy = self._auto_fields.merge(
            generate_id=generate_id, generate_timestamps=generate_timestamps
        )
        model: Model[T] = Model(
            self._connection,
            self._database,
            collection,
            document_type,
            policy=policy,
            connection_string_setting=self._connection_string_setting,
            max_item_count=self._max_item_count,
            default_timeout=self._default_timeout,
        )
        log.info(
            f"Model registered: {collection}",
            extra={
                "database": self._database,
                "collection": collection,
                "document_type": document_type.__name__,
                "generate_id": policy.generate_id,
                "generate_timestamps": policy.generate_timestamps,
            },
        )
        return model


class Database(Mapping[str, Model]):
    """
    Result of ``create_client``: the shared client plus the caller's models.

    Models are reachable as attributes (``db.users``) and by key
    (``db["users"]``). Closing the database closes the client.
    """

    def __init__(self, connection: Any, name: str, models: Mapping[str, Model]) -> None:
        self.connection = connection
        self.name = name
        self._models: Dict[str, Model] = dict(models)

    def __getattr__(self, item: str) -> Model:
        models = self.__dict__.get("_models", {})
        try:
            return models[item]
        except KeyError:
            raise AttributeError(item) from None

    def __getitem__(self, key: str) -> Model:
        return self._models[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._models)

    def __len__(self) -> int:
        return len(self._models)

    def __repr__(self) -> str:
        return f"Database(name={self.name!r}, models={sorted(self._models)!r})"

    async def verify(self, timeout: Optional[float] = None) -> None:
        """Check every model's container is partitioned on ``/id``."""
        for model in self._models.values():
            await model.verify_partition_key(timeout=timeout)

    async def close(self) -> None:
        await self.connection.close()

    async def __aenter__(self) -> "Database":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def reserved_names(names: Iterable[str]) -> List[str]:
    """Names that ``db.<name>`` would resolve to a Database attribute instead of a model."""
    return sorted(
        name for name in names if name in _INSTANCE_ATTRS or hasattr(Database, name)
    )


def _discard_client(client: Any) -> None:
    """Close a client whose registry build failed."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(client.close())
        return
    task = loop.create_task(client.close())
    _closing.add(task)
    task.add_done_callback(_closing.discard)


def create_client(
    database: str,
    models: Callable[[ModelBuilder], Mapping[str, Model]],
    *,
    connection: Optional[ConnectionConfig] = None,
    auto_fields: Optional[AutoFieldPolicy] = None,
    max_item_count: Optional[int] = None,
    default_timeout: Optional[float] = None,
    environ: Optional[Mapping[str, Any]] = None,
    client_factory: Optional[ClientFactory] = None,
) -> Database:
    """
    Build the shared client and the caller's models.

    Parameters
    ----------
    database : str
        Cosmos database name.
    models : Callable[[ModelBuilder], Mapping[str, Model]]
        Factory called exactly once with the builder.
    connection : ConnectionConfig | None
        Explicit connection string and/or the environment variable to read.
    auto_fields : AutoFieldPolicy | None
        Registry-level policy; models may override either switch.
    max_item_count : int | None
        Default page size hint for every model.
    default_timeout : float | None
        Default per-call deadline for every model.
    environ : Mapping | None
        Environment to resolve the connection string from (``os.environ``).
    client_factory : Callable[[str], client] | None
        Builds the client from the connection string.

    Raises
    ------
    ConfigurationError
        When no connection string can be resolved, or a model name would be
        shadowed by a ``Database`` attribute (``connection``, ``name``,
        ``items``, ...). The client is closed before the error propagates.
    """
    if not database:
        raise ConfigurationError("Database name must not be empty", setting="database")
    config = connection or ConnectionConfig()
    client = open_connection(config, environ=environ, client_factory=client_factory)

    builder = ModelBuilder(
        client,
        database,
        auto_fields or AutoFieldPolicy(),
        connection_string_setting=config.connection_string_env_name,
        max_item_count=max_item_count,
        default_timeout=default_timeout,
    )
    try:
        created = models(builder)
        shadowed = reserved_names(created)
        if shadowed:
            raise ConfigurationError(
                f"Model names {shadowed} are reserved by Database "
                f"('{CONNECTION_KEY}' holds the shared client)",
                setting=shadowed[0],
            )
    except BaseException:
        _discard_client(client)
        raise

    log.info(
        f"Cosmos client ready for database {database}",
        extra={"database": database, "models": sorted(created)},
    )
    return Database(client, database, created)


def create_client_from_settings(
    models: Callable[[ModelBuilder], Mapping[str, Model]],
    settings: Optional[Settings] = None,
    **kwargs: Any,
) -> Database:
    """``create_client`` configured from ``Settings`` (environment / ``.env``)."""
    settings = settings or get_settings()
    return create_client(
        settings.database,
        models,
        connection=settings.connection_config(),
        auto_fields=settings.auto_field_policy(),
        max_item_count=settings.max_item_count,
        default_timeout=settings.operation_timeout_seconds,
        **kwargs,
    )


async def create_client_verified(
    database: str,
    models: Callable[[ModelBuilder], Mapping[str, Model]],
    **kwargs: Any,
) -> Database:
    """``create_client`` followed by ``Database.verify``; closes the client on failure."""
    db = create_client(database, models, **kwargs)
    try:
        await db.verify()
    except BaseException:
        await db.close()
        raise
    return db


__all__ = [
    "CONNECTION_KEY",
    "reserved_names",
    "Database",
    "ModelBuilder",
    "create_client",
    "create_client_from_settings",
    "create_client_verified",
]
