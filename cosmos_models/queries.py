"""
Parameterized query templates used by the model lookups.

Caller values only ever travel as bound parameters (``@ids``, ``@key``,
``@value``); nothing here formats a value into the query text.
"""

from __future__ import annotations

from typing import Any, Sequence

from cosmos_models.domain.models import QueryParameter, QuerySpec

FIND_MANY_QUERY = "SELECT * FROM c WHERE ARRAY_CONTAINS(@ids, c.id)"
FIND_BY_QUERY = "SELECT * FROM c WHERE c[@key] = @value OFFSET 0 LIMIT 1"
FIND_MANY_BY_QUERY = "SELECT * FROM c WHERE c[@key] = @value"


def ids_query(ids: Sequence[str]) -> QuerySpec:
    return QuerySpec(
        query=FIND_MANY_QUERY,
        parameters=[QueryParameter(name="@ids", value=list(ids))],
    )


def field_equals_query(field: str, value: Any, first_only: bool = False) -> QuerySpec:
    """Match documents whose ``field`` equals ``value``; optionally cap to one row."""
    return QuerySpec(
        query=FIND_BY_QUERY if first_only else FIND_MANY_BY_QUERY,
        parameters=[
            QueryParameter(name="@key", value=field),
            QueryParameter(name="@value", value=value),
        ],
    )


__all__ = [
    "FIND_MANY_QUERY",
    "FIND_BY_QUERY",
    "FIND_MANY_BY_QUERY",
    "ids_query",
    "field_equals_query",
]
