"""
Domain package for cosmos-models.

Exports the value types shared by the registry, the models, and the query
builders. Keep this package free of I/O.
"""

from cosmos_models.domain.fields import MonotonicUlid, new_id, next_timestamp, utc_now_iso
from cosmos_models.domain.models import (
    RESERVED_FIELDS,
    AutoFieldPolicy,
    Document,
    QueryParameter,
    QuerySpec,
)

__all__ = [
    "AutoFieldPolicy",
    "Document",
    "QueryParameter",
    "QuerySpec",
    "RESERVED_FIELDS",
    "MonotonicUlid",
    "new_id",
    "next_timestamp",
    "utc_now_iso",
]
