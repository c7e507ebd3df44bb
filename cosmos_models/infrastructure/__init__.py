"""
Infrastructure package for cosmos-models.

Centralizes connection concerns: resolving the connection string and building
the one Cosmos client a registry shares between its models.
"""

from cosmos_models.infrastructure.connection import (
    DEFAULT_CONNECTION_STRING_ENV,
    ConnectionConfig,
    open_connection,
    resolve_connection_string,
)

__all__ = [
    "DEFAULT_CONNECTION_STRING_ENV",
    "ConnectionConfig",
    "open_connection",
    "resolve_connection_string",
]
