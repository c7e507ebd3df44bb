"""
Domain models for cosmos-models.

Defines the document base type callers extend with their own payload fields,
the auto-field policy that decides which reserved fields the library fills in,
and the structured query representation accepted by ``Model.query``.
"""
from __future__ import annotations

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ID_FIELD = "id"
CREATED_AT_FIELD = "createdAt"
UPDATED_AT_FIELD = "updatedAt"

# Wire names of the fields managed by the library.
RESERVED_FIELDS = (ID_FIELD, CREATED_AT_FIELD, UPDATED_AT_FIELD)


class AutoFieldPolicy(BaseModel):
    """
    Which reserved fields are generated on writes.

    Both switches default to enabled. ``merge`` layers partial overrides on top
    of an existing policy; ``None`` means "keep the current value".
    """

    generate_id: bool = Field(True, description="Generate a ULID id on create.")
    generate_timestamps: bool = Field(
        True, description="Set createdAt/updatedAt on create and updatedAt on replace."
    )

    model_config = ConfigDict(frozen=True)

    def merge(
        self,
        generate_id: Optional[bool] = None,
        generate_timestamps: Optional[bool] = None,
    ) -> "AutoFieldPolicy":
        return AutoFieldPolicy(
            generate_id=self.generate_id if generate_id is None else generate_id,
            generate_timestamps=(
                self.generate_timestamps if generate_timestamps is None else generate_timestamps
            ),
        )


class Document(BaseModel):
    """
    Base type for stored documents.

    Subclass it to declare the payload fields of a collection. Undeclared
    fields are kept (``extra="allow"``) so documents written by other clients
    still round-trip.
    """

    id: str = Field(..., min_length=1, description="Document id, also the partition key.")
    created_at: Optional[str] = Field(None, alias=CREATED_AT_FIELD)
    updated_at: Optional[str] = Field(None, alias=UPDATED_AT_FIELD)

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_store(self) -> dict[str, Any]:
        """
        Serialize the fields that were actually supplied, with wire names.

        Declared defaults the caller never set are not written, and empty
        reserved timestamps are dropped.
        """
        body = self.model_dump(mode="json", by_alias=True, exclude_unset=True)
        for name in (CREATED_AT_FIELD, UPDATED_AT_FIELD):
            if body.get(name) is None:
                body.pop(name, None)
        return body


class QueryParameter(BaseModel):
    """One named binding; ``name`` carries the leading ``@``."""

    name: str = Field(..., pattern=r"^@\w+$")
    value: Any = None

    model_config = ConfigDict(frozen=True)


class QuerySpec(BaseModel):
    """A query template plus its named parameter bindings."""

    query: str = Field(..., min_length=1)
    parameters: List[QueryParameter] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def coerce(cls, spec: Union[str, "QuerySpec"]) -> "QuerySpec":
        if isinstance(spec, QuerySpec):
            return spec
        return cls(query=spec)

    def sdk_parameters(self) -> Optional[list[dict[str, Any]]]:
        """Parameters in the shape ``ContainerProxy.query_items`` expects."""
        if not self.parameters:
            return None
        return [{"name": p.name, "value": p.value} for p in self.parameters]


__all__ = [
    "AutoFieldPolicy",
    "Document",
    "QueryParameter",
    "QuerySpec",
    "RESERVED_FIELDS",
    "ID_FIELD",
    "CREATED_AT_FIELD",
    "UPDATED_AT_FIELD",
]
