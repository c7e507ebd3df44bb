"""
Connection resolution for cosmos-models.

Turns a ``ConnectionConfig`` into exactly one ``azure.cosmos.aio.CosmosClient``.
The connection string comes either from the config itself or from a named
entry of the caller's environment mapping; when neither yields a string the
build fails before any client exists.

There is no retry here: a client that cannot be constructed is a
configuration problem, and request-level failures belong to the models.
"""

from __future__ import annotations

import os
from typing import Any, Callable, Mapping, Optional

from azure.cosmos.aio import CosmosClient
from pydantic import BaseModel, ConfigDict, Field

from cosmos_models.errors import ConfigurationError
from cosmos_models.utils.logging import get_logger

DEFAULT_CONNECTION_STRING_ENV = "COSMOS_CONNECTION_STRING"

ClientFactory = Callable[[str], Any]

log = get_logger(__name__)


class ConnectionConfig(BaseModel):
    """
    Where to find the connection string.

    ``connection_string`` wins when it was passed at all; otherwise the
    variable named by ``connection_string_env_name`` is looked up.
    """

    connection_string: Optional[str] = None
    connection_string_env_name: str = Field(DEFAULT_CONNECTION_STRING_ENV, min_length=1)

    model_config = ConfigDict(frozen=True)


def resolve_connection_string(
    config: ConnectionConfig,
    environ: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Resolve the connection string for ``config``.

    Parameters
    ----------
    config : ConnectionConfig
        Explicit string and/or the environment variable name.
    environ : Mapping[str, Any] | None
        Environment to read from. Defaults to ``os.environ``.

    Raises
    ------
    ConfigurationError
        If an explicit string is empty, or the variable is missing or not a string.
    """
    if "connection_string" in config.model_fields_set:
        if not config.connection_string:
            raise ConfigurationError(
                "Option 'connection_string' was supplied but is empty",
                setting="connection_string",
            )
        return config.connection_string

    env = os.environ if environ is None else environ
    name = config.connection_string_env_name
    value = env.get(name)
    if not isinstance(value, str):
        raise ConfigurationError(f"Missing an env with the name {name}", setting=name)
    return value


def default_client_factory(connection_string: str) -> CosmosClient:
    return CosmosClient.from_connection_string(connection_string)


def open_connection(
    config: ConnectionConfig,
    environ: Optional[Mapping[str, Any]] = None,
    client_factory: Optional[ClientFactory] = None,
) -> Any:
    """
    Resolve the connection string and construct the client once.

    ``client_factory`` receives the resolved string; it defaults to
    ``CosmosClient.from_connection_string``.
    """
    connection_string = resolve_connection_string(config, environ)
    factory = client_factory or default_client_factory
    client = factory(connection_string)
    log.debug(
        "Cosmos client constructed",
        extra={"connection_source": _describe_source(config)},
    )
    return client


def _describe_source(config: ConnectionConfig) -> str:
    if "connection_string" in config.model_fields_set:
        return "explicit"
    return f"env:{config.connection_string_env_name}"


__all__ = [
    "DEFAULT_CONNECTION_STRING_ENV",
    "ClientFactory",
    "ConnectionConfig",
    "default_client_factory",
    "open_connection",
    "resolve_connection_string",
]
