from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, List, Optional

import typer

from cosmos_models.config import get_settings
from cosmos_models.domain.models import QueryParameter, QuerySpec
from cosmos_models.errors import CosmosModelError
from cosmos_models.infrastructure.connection import resolve_connection_string
from cosmos_models.registry import Database, create_client_from_settings
from cosmos_models.reporter import print_documents
from cosmos_models.utils.logging import configure_logging

app = typer.Typer(help="cosmos-models CLI.")


def _mask(secret: str) -> str:
    if "AccountKey=" not in secret:
        return "***"
    head, _, tail = secret.partition("AccountKey=")
    _, sep, rest = tail.partition(";")
    return f"{head}AccountKey=***{sep}{rest}"


def _parse_param(raw: str) -> QueryParameter:
    """
    Parse ``name=value``; values are JSON when they parse as JSON, strings otherwise.
    """
    name, sep, value = raw.partition("=")
    if not sep or not name:
        raise typer.BadParameter(f"Expected name=value, got {raw!r}")
    try:
        parsed: Any = json.loads(value)
    except json.JSONDecodeError:
        parsed = value
    return QueryParameter(name=name if name.startswith("@") else f"@{name}", value=parsed)


def _open(collections: List[str]) -> Database:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    return create_client_from_settings(
        lambda builder: {name: builder.create_model(name) for name in collections},
        settings=settings,
    )


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except CosmosModelError as exc:
        typer.echo(f"Error: {exc.message}", err=True)
        raise typer.Exit(code=2) from exc


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    try:
        connection = _mask(resolve_connection_string(settings.connection_config()))
    except CosmosModelError as exc:
        connection = f"<unresolved: {exc.message}>"
    typer.echo(
        f"database={settings.database} | connection_env={settings.connection_string_setting} "
        f"| connection={connection}"
    )
    typer.echo(
        f"generate_id={settings.generate_id} generate_timestamps={settings.generate_timestamps} "
        f"max_item_count={settings.max_item_count} timeout={settings.operation_timeout_seconds}"
    )


@app.command()
def query(
    collection: str = typer.Argument(..., help="Container to query."),
    sql: str = typer.Argument(..., help="Query text, e.g. 'SELECT * FROM c WHERE c.name = @name'."),
    param: Optional[List[str]] = typer.Option(
        None,
        "--param",
        "-p",
        help="Query parameter as name=value (repeatable).",
    ),
    max_item_count: Optional[int] = typer.Option(
        None,
        "--max-item-count",
        help="Page size hint passed to the store.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print rows as JSON instead of a table."),
) -> None:
    """
    Run a query against a collection and print every row.
    """
    spec = QuerySpec(query=sql, parameters=[_parse_param(p) for p in param or []])

    async def _query() -> list:
        async with _open([collection]) as db:
            return await db[collection].query(spec, max_item_count=max_item_count)

    rows = _run(_query())
    if as_json:
        typer.echo(json.dumps(rows, indent=2, default=str))
    else:
        print_documents(rows, title=f"{collection}: {sql}")


@app.command()
def get(
    collection: str = typer.Argument(..., help="Container to read from."),
    document_id: str = typer.Argument(..., help="Document id (also its partition key)."),
) -> None:
    """
    Read one document by id. Exits with code 1 when it does not exist.
    """

    async def _get():
        async with _open([collection]) as db:
            return await db[collection].find(document_id)

    document = _run(_get())
    if document is None:
        typer.echo(f"No document '{document_id}' in '{collection}'.", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(document.model_dump(mode="json", by_alias=True), indent=2))


@app.command()
def verify(
    collections: List[str] = typer.Argument(..., help="Containers to check."),
) -> None:
    """
    Check that every collection is partitioned on /id.
    """

    async def _verify() -> None:
        async with _open(collections) as db:
            await db.verify()

    _run(_verify())
    typer.echo(f"OK: {', '.join(collections)} partitioned on /id.")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
