from __future__ import annotations

from typing import Any, Dict, List, Sequence

from pydantic import BaseModel
from rich import box
from rich.console import Console
from rich.table import Table

MAX_CELL_WIDTH = 60


def _as_row(value: Any) -> Dict[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, dict):
        return value
    return {"value": value}


def _columns(rows: Sequence[Dict[str, Any]]) -> List[str]:
    """
    Union of keys across rows, first-seen order, reserved fields first.
    """
    seen: Dict[str, None] = {"id": None} if any("id" in r for r in rows) else {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


def _cell(value: Any) -> str:
    if value is None:
        return "[dim]-[/dim]"
    text = str(value)
    if len(text) > MAX_CELL_WIDTH:
        text = text[: MAX_CELL_WIDTH - 1] + "…"
    return text


def print_documents(results: Sequence[Any], title: str = "Results", console: Console | None = None) -> None:
    """
    Render documents or query rows as a rich table.

    Scalar rows (``SELECT VALUE ...``) show up in a single ``value`` column.
    """
    console = console or Console()

    if not results:
        console.print("[yellow]No documents found.[/yellow]")
        return

    rows = [_as_row(r) for r in results]
    columns = _columns(rows)

    table = Table(
        title=title,
        box=box.ROUNDED,
        caption=f"{len(rows)} row(s)",
    )
    for index, column in enumerate(columns):
        table.add_column(column, style="cyan" if index == 0 else None, no_wrap=index == 0)

    for row in rows:
        table.add_row(*(_cell(row.get(column)) for column in columns))

    console.print(table)


__all__ = ["print_documents"]
