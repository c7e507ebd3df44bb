"""
cosmos-models - typed models over Azure Cosmos DB.

Declare named collections against one shared Cosmos client and work with them
through async CRUD and parameterized-query operations:

- One connection resolved per registry build (explicit string or env variable)
- Generic ``Model[T]`` handles parsing documents into pydantic types
- Automatic ULID ids and ISO-8601 timestamps, switchable per model
- Parameterized lookups that never interpolate caller values
- Declarative Azure Functions input bindings
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from cosmos_models.bindings import CosmosInputBinding
from cosmos_models.config import Settings, get_settings
from cosmos_models.domain.models import AutoFieldPolicy, Document, QueryParameter, QuerySpec
from cosmos_models.errors import (
    ConfigurationError,
    ConflictError,
    CosmosModelError,
    NotFoundError,
    OperationTimeoutError,
    StoreError,
)
from cosmos_models.infrastructure.connection import ConnectionConfig, resolve_connection_string
from cosmos_models.model import Model
from cosmos_models.registry import (
    Database,
    ModelBuilder,
    create_client,
    create_client_from_settings,
    create_client_verified,
)
from cosmos_models.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    "ConnectionConfig",
    "resolve_connection_string",
    # Registry
    "Database",
    "ModelBuilder",
    "create_client",
    "create_client_from_settings",
    "create_client_verified",
    # Models
    "Model",
    "Document",
    "AutoFieldPolicy",
    "QuerySpec",
    "QueryParameter",
    "CosmosInputBinding",
    # Errors
    "CosmosModelError",
    "ConfigurationError",
    "StoreError",
    "ConflictError",
    "NotFoundError",
    "OperationTimeoutError",
    # Logging
    "configure_logging",
    "get_logger",
]
