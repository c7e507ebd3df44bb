"""
Typed handle over one Cosmos container.

A ``Model`` pairs a document type with a container of the shared client and
exposes async CRUD and query operations. Point operations use the document id
as the partition key; containers partitioned on anything other than ``/id``
are not supported (see ``verify_partition_key``).

Every operation is one awaited call with no retry. ``replace`` and ``delete``
read the stored document first, so they cost two round-trips. Each operation
takes an optional ``timeout`` in seconds; without one the call waits as long
as the transport does.
"""

from __future__ import annotations

import asyncio
from typing import (
    Any,
    Awaitable,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
    overload,
)

from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError
from pydantic import BaseModel, TypeAdapter

from cosmos_models import bindings
from cosmos_models.domain import fields
from cosmos_models.domain.models import (
    CREATED_AT_FIELD,
    ID_FIELD,
    UPDATED_AT_FIELD,
    AutoFieldPolicy,
    Document,
    QuerySpec,
)
from cosmos_models.errors import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    OperationTimeoutError,
    StoreError,
)
from cosmos_models.infrastructure.connection import DEFAULT_CONNECTION_STRING_ENV
from cosmos_models.queries import field_equals_query, ids_query
from cosmos_models.utils.logging import get_logger

T = TypeVar("T", bound=Document)
R = TypeVar("R")

REQUIRED_PARTITION_KEY_PATHS = ["/id"]

# Properties the store adds to every item; they are not document data.
SYSTEM_PROPERTIES = frozenset({"_rid", "_self", "_etag", "_attachments", "_ts", "_lsn"})

# Python-side spellings accepted in write inputs for the reserved timestamps.
_INPUT_ALIASES = {"created_at": CREATED_AT_FIELD, "updated_at": UPDATED_AT_FIELD}

log = get_logger(__name__)


def _translate(
    exc: CosmosHttpResponseError,
    operation: str,
    collection: str,
    item_id: Optional[str],
) -> StoreError:
    status = getattr(exc, "status_code", None)
    target = f"'{collection}'" if item_id is None else f"'{collection}/{item_id}'"
    if status == 409:
        error_cls: Type[StoreError] = ConflictError
        message = f"{operation} on {target} failed: a document with this id already exists"
    elif status == 404:
        error_cls = NotFoundError
        message = f"{operation} on {target} failed: not found"
    else:
        error_cls = StoreError
        message = f"{operation} on {target} failed with status {status}"
    return error_cls(
        message,
        operation=operation,
        collection=collection,
        item_id=item_id,
        status_code=status,
        original=exc,
    )


class Model(Generic[T]):
    """
    CRUD and query operations for one container.

    Parameters
    ----------
    connection : azure.cosmos.aio.CosmosClient
        Shared client; the model never closes it.
    database : str
        Database name.
    collection : str
        Container name.
    document_type : type[Document]
        Pydantic type documents are parsed into.
    policy : AutoFieldPolicy | None
        Effective auto-field policy. Defaults to everything enabled.
    connection_string_setting : str
        Name of the setting holding the connection string, used by bindings.
    max_item_count : int | None
        Default page size hint for reads that page.
    default_timeout : float | None
        Deadline applied when an operation gets no ``timeout`` of its own.
    """

    def __init__(
        self,
        connection: Any,
        database: str,
        collection: str,
        document_type: Type[T] = Document,  # type: ignore[assignment]
        policy: Optional[AutoFieldPolicy] = None,
        connection_string_setting: str = DEFAULT_CONNECTION_STRING_ENV,
        max_item_count: Optional[int] = None,
        default_timeout: Optional[float] = None,
    ) -> None:
        self.connection = connection
        self.database = database
        self.collection = collection
        self.document_type = document_type
        self.policy = policy or AutoFieldPolicy()
        self.connection_string_setting = connection_string_setting
        self.max_item_count = max_item_count
        self.default_timeout = default_timeout
        self.container = connection.get_database_client(database).get_container_client(collection)

    def __repr__(self) -> str:
        return (
            f"Model(collection={self.collection!r}, document_type={self.document_type.__name__}, "
            f"policy={self.policy!r})"
        )

    # ------------------------------------------------------------------
    # Bindings
    # ------------------------------------------------------------------

    def create_find_binding(self, variable: str = "id") -> bindings.CosmosInputBinding:
        return bindings.find_binding(
            self.database, self.collection, self.connection_string_setting, variable
        )

    def create_all_binding(self) -> bindings.CosmosInputBinding:
        return bindings.all_binding(self.database, self.collection, self.connection_string_setting)

    def create_sql_binding(self, sql_query: str) -> bindings.CosmosInputBinding:
        return bindings.sql_binding(
            self.database, self.collection, self.connection_string_setting, sql_query
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def all(self, *, timeout: Optional[float] = None) -> List[T]:
        """Fetch every document in the container."""

        async def _read_all() -> List[T]:
            pager = self.container.read_all_items(**self._page_kwargs(None))
            return [self._to_document(item) async for item in pager]

        return await self._run("all", _read_all(), timeout)

    async def find(self, id: str, *, timeout: Optional[float] = None) -> Optional[T]:
        """Point read by id; ``None`` when absent."""

        async def _find() -> Optional[T]:
            resource = await self._read_or_none(id)
            return None if resource is None else self._to_document(resource)

        return await self._run("find", _find(), timeout, item_id=id)

    async def find_many(self, ids: Sequence[str], *, timeout: Optional[float] = None) -> List[T]:
        """Fetch the documents whose id is in ``ids``; missing ids are skipped."""
        if isinstance(ids, str):
            raise TypeError("find_many expects a sequence of ids, not a single string")
        if not ids:
            return []
        return await self._query_documents("find_many", ids_query(ids), timeout)

    async def find_by(
        self, field: str, value: Any, *, timeout: Optional[float] = None
    ) -> Optional[T]:
        """
        First document whose ``field`` equals ``value``, in store order.

        ``field`` must be declared on the document type (by attribute name or
        alias) unless the model uses the bare ``Document`` type.
        """
        spec = field_equals_query(self._wire_field(field), value, first_only=True)
        documents = await self._query_documents("find_by", spec, timeout)
        return documents[0] if documents else None

    async def find_many_by(
        self, field: str, value: Any, *, timeout: Optional[float] = None
    ) -> List[T]:
        spec = field_equals_query(self._wire_field(field), value)
        return await self._query_documents("find_many_by", spec, timeout)

    @overload
    async def query(
        self,
        spec: Union[str, QuerySpec],
        *,
        max_item_count: Optional[int] = ...,
        result_type: None = ...,
        timeout: Optional[float] = ...,
    ) -> List[Any]: ...

    @overload
    async def query(
        self,
        spec: Union[str, QuerySpec],
        *,
        max_item_count: Optional[int] = ...,
        result_type: Type[R],
        timeout: Optional[float] = ...,
    ) -> List[R]: ...

    async def query(
        self,
        spec: Union[str, QuerySpec],
        *,
        max_item_count: Optional[int] = None,
        result_type: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> List[Any]:
        """
        Run a raw or parameterized query and return every row.

        Rows are returned as the store sends them unless ``result_type`` is
        given, in which case each row is validated into it:

            await model.query("SELECT c.id FROM c", result_type=IdRow)
            await model.query("SELECT VALUE COUNT(1) FROM c", result_type=int)  # [5]
        """
        query_spec = QuerySpec.coerce(spec)
        adapter = TypeAdapter(result_type) if result_type is not None else None
        rows = await self._run(
            "query", self._fetch_rows(query_spec, max_item_count), timeout
        )
        if adapter is None:
            return rows
        return [adapter.validate_python(row) for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self, data: Union[Mapping[str, Any], BaseModel], *, timeout: Optional[float] = None
    ) -> T:
        """
        Insert a new document.

        ``id`` is generated when the policy says so and must be in ``data``
        otherwise. Timestamps are both set to the same instant when enabled and
        copied from ``data`` when not. Raises ConflictError if the id exists.
        """
        merged = self._input_fields(data)
        if self.policy.generate_id:
            merged[ID_FIELD] = fields.new_id()
        elif not merged.get(ID_FIELD):
            raise ValueError(
                f"create on '{self.collection}' needs an 'id' because id generation is disabled"
            )
        if self.policy.generate_timestamps:
            now = fields.utc_now_iso()
            merged[CREATED_AT_FIELD] = now
            merged[UPDATED_AT_FIELD] = now

        body = self._to_body(merged)
        resource = await self._run(
            "create", self.container.create_item(body=body), timeout, item_id=body[ID_FIELD]
        )
        return self._to_document(resource)

    async def upsert(
        self, data: Union[Mapping[str, Any], BaseModel], *, timeout: Optional[float] = None
    ) -> T:
        """
        Insert or overwrite the document with ``data['id']``.

        Fields are stored as given: no id generation and no timestamp handling,
        unlike ``create`` and ``replace``.
        """
        merged = self._input_fields(data)
        if not merged.get(ID_FIELD):
            raise ValueError(f"upsert on '{self.collection}' needs an 'id'")
        body = self._to_body(merged)
        resource = await self._run(
            "upsert", self.container.upsert_item(body=body), timeout, item_id=body[ID_FIELD]
        )
        return self._to_document(resource)

    async def replace(
        self,
        id: str,
        data: Union[Mapping[str, Any], BaseModel],
        *,
        timeout: Optional[float] = None,
    ) -> T:
        """
        Replace the whole document stored under ``id``.

        ``createdAt`` always keeps the stored value. ``updatedAt`` is refreshed
        when timestamps are enabled and copied from ``data`` when not. Raises
        NotFoundError if nothing is stored under ``id``.
        """
        merged = self._input_fields(data)
        if merged.get(ID_FIELD) not in (None, id):
            raise ValueError(
                f"replace on '{self.collection}': body id {merged[ID_FIELD]!r} does not match {id!r}"
            )
        merged[ID_FIELD] = id
        merged.pop(CREATED_AT_FIELD, None)

        async def _replace() -> Dict[str, Any]:
            existing = await self.container.read_item(item=id, partition_key=id)
            if existing.get(CREATED_AT_FIELD) is not None:
                merged[CREATED_AT_FIELD] = existing[CREATED_AT_FIELD]
            if self.policy.generate_timestamps:
                merged[UPDATED_AT_FIELD] = fields.next_timestamp(existing.get(UPDATED_AT_FIELD))
            body = self._to_body(merged)
            return await self.container.replace_item(item=id, body=body)

        resource = await self._run("replace", _replace(), timeout, item_id=id)
        return self._to_document(resource)

    async def delete(self, id: str, *, timeout: Optional[float] = None) -> Optional[T]:
        """Delete and return the stored document; ``None`` when there was none."""

        async def _delete() -> Optional[T]:
            existing = await self._read_or_none(id)
            if existing is None:
                return None
            try:
                await self.container.delete_item(item=id, partition_key=id)
            except CosmosResourceNotFoundError:
                # Removed by someone else between the read and the delete.
                return None
            return self._to_document(existing)

        return await self._run("delete", _delete(), timeout, item_id=id)

    # ------------------------------------------------------------------
    # Container checks
    # ------------------------------------------------------------------

    async def verify_partition_key(self, *, timeout: Optional[float] = None) -> None:
        """
        Check that the container is partitioned on ``/id``.

        Raises
        ------
        ConfigurationError
            If the container uses any other partition key.
        """
        properties = await self._run("verify_partition_key", self.container.read(), timeout)
        paths = list((properties.get("partitionKey") or {}).get("paths") or [])
        if paths != REQUIRED_PARTITION_KEY_PATHS:
            raise ConfigurationError(
                f"Collection '{self.collection}' is partitioned on {paths}; "
                f"only {REQUIRED_PARTITION_KEY_PATHS} is supported",
                setting=self.collection,
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(
        self,
        operation: str,
        awaitable: Awaitable[Any],
        timeout: Optional[float],
        item_id: Optional[str] = None,
    ) -> Any:
        deadline = self.default_timeout if timeout is None else timeout
        log.debug(
            f"{operation} {self.collection}",
            extra={"collection": self.collection, "operation": operation, "item_id": item_id},
        )
        try:
            if deadline is None:
                return await awaitable
            return await asyncio.wait_for(awaitable, deadline)
        except asyncio.TimeoutError as exc:
            log.warning(
                f"{operation} {self.collection} timed out",
                extra={"collection": self.collection, "operation": operation, "timeout": deadline},
            )
            raise OperationTimeoutError(
                f"{operation} on '{self.collection}' did not finish within {deadline}s",
                operation=operation,
                collection=self.collection,
                item_id=item_id,
                original=exc,
            ) from exc
        except CosmosHttpResponseError as exc:
            error = _translate(exc, operation, self.collection, item_id)
            log.warning(
                error.message,
                extra={
                    "collection": self.collection,
                    "operation": operation,
                    "item_id": item_id,
                    "status_code": error.status_code,
                },
            )
            raise error from exc

    async def _read_or_none(self, id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.container.read_item(item=id, partition_key=id)
        except CosmosResourceNotFoundError:
            return None

    async def _fetch_rows(self, spec: QuerySpec, max_item_count: Optional[int]) -> List[Any]:
        pager = self.container.query_items(
            query=spec.query,
            parameters=spec.sdk_parameters(),
            **self._page_kwargs(max_item_count),
        )
        return [row async for row in pager]

    async def _query_documents(
        self, operation: str, spec: QuerySpec, timeout: Optional[float]
    ) -> List[T]:
        rows = await self._run(operation, self._fetch_rows(spec, None), timeout)
        return [self._to_document(row) for row in rows]

    def _page_kwargs(self, max_item_count: Optional[int]) -> Dict[str, Any]:
        page_size = max_item_count or self.max_item_count
        return {"max_item_count": page_size} if page_size else {}

    def _wire_field(self, field: str) -> str:
        """
        Map an attribute name or alias of the document type to its stored name.

        Subclasses must declare the field. The bare ``Document`` type declares
        no payload, so any stored name is accepted for it.
        """
        if self.document_type is Document:
            return _INPUT_ALIASES.get(field, field)
        for name, info in self.document_type.model_fields.items():
            if field in (name, info.alias):
                return info.alias or name
        raise ValueError(
            f"{self.document_type.__name__} has no field {field!r}; "
            f"known fields: {sorted(self.document_type.model_fields)}"
        )

    @staticmethod
    def _input_fields(data: Union[Mapping[str, Any], BaseModel]) -> Dict[str, Any]:
        if isinstance(data, BaseModel):
            raw = data.model_dump(mode="json", by_alias=True, exclude_unset=True)
        else:
            raw = dict(data)
        return {_INPUT_ALIASES.get(key, key): value for key, value in raw.items()}

    def _to_body(self, merged: Dict[str, Any]) -> Dict[str, Any]:
        return self.document_type.model_validate(merged).to_store()

    def _to_document(self, resource: Mapping[str, Any]) -> T:
        data = {key: value for key, value in resource.items() if key not in SYSTEM_PROPERTIES}
        return self.document_type.model_validate(data)


__all__ = ["Model", "REQUIRED_PARTITION_KEY_PATHS", "SYSTEM_PROPERTIES"]
