"""
Declarative Cosmos DB input bindings for Azure Functions.

A model can describe how the Functions host should fetch its documents before
a function runs: one document by id, the whole container, or the rows of a
fixed query. These objects only describe the binding; the Functions host
executes it.

Example
-------
    binding = db.users.create_find_binding("user_id")

    @app.route(route="users/{user_id}")
    @app.cosmos_db_input(**binding.to_kwargs(arg_name="user"))
    def get_user(req, user):
        ...
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CosmosInputBinding(BaseModel):
    database_name: str
    container_name: str
    connection: str = Field(..., description="Name of the app setting holding the connection string.")
    id: Optional[str] = None
    partition_key: Optional[str] = None
    sql_query: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def to_kwargs(self, arg_name: str) -> Dict[str, Any]:
        """Keyword arguments for ``FunctionApp.cosmos_db_input``."""
        kwargs: Dict[str, Any] = {
            "arg_name": arg_name,
            "database_name": self.database_name,
            "container_name": self.container_name,
            "connection": self.connection,
        }
        for key in ("id", "partition_key", "sql_query"):
            value = getattr(self, key)
            if value is not None:
                kwargs[key] = value
        return kwargs


def find_binding(database: str, collection: str, connection: str, variable: str = "id") -> CosmosInputBinding:
    """Bind one document whose id and partition key both come from ``{variable}``."""
    expression = f"{{{variable}}}"
    return CosmosInputBinding(
        database_name=database,
        container_name=collection,
        connection=connection,
        id=expression,
        partition_key=expression,
    )


def all_binding(database: str, collection: str, connection: str) -> CosmosInputBinding:
    return CosmosInputBinding(
        database_name=database,
        container_name=collection,
        connection=connection,
    )


def sql_binding(database: str, collection: str, connection: str, sql_query: str) -> CosmosInputBinding:
    return CosmosInputBinding(
        database_name=database,
        container_name=collection,
        connection=connection,
        sql_query=sql_query,
    )


__all__ = ["CosmosInputBinding", "find_binding", "all_binding", "sql_binding"]
