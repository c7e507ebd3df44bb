"""
Seed a Cosmos container with synthetic documents.

Generates deterministic pseudo-random documents and writes them through
``Model.create`` so ids and timestamps follow the model's auto-field policy.
Point it at the Cosmos emulator for local work and integration tests.
"""

from __future__ import annotations

import asyncio
import random
import sys
import time
from typing import Any, Dict, List

import typer

from cosmos_models.config import get_settings
from cosmos_models.model import Model
from cosmos_models.registry import create_client_from_settings
from cosmos_models.utils.logging import configure_logging

app = typer.Typer(help="Generate synthetic documents and load them into a Cosmos container.")

CATEGORIES = ["alpha", "beta", "gamma", "delta"]


def _generate_documents(count: int, seed: int) -> List[Dict[str, Any]]:
    rng = random.Random(seed)
    documents: List[Dict[str, Any]] = []
    for _ in range(count):
        documents.append(
            {
                "category": rng.choice(CATEGORIES),
                "amount": round(rng.uniform(1, 10_000), 2),
                "isActive": rng.choice([True, False]),
                "payload": {
                    "userId": rng.randint(1, 1_000_000),
                    "action": rng.choice(["view", "click", "purchase", "impression"]),
                },
                "source": "generator",
            }
        )
    return documents


async def _load(model: Model, documents: List[Dict[str, Any]], concurrency: int) -> int:
    """Create every document, at most ``concurrency`` requests in flight."""
    semaphore = asyncio.Semaphore(concurrency)

    async def _create(document: Dict[str, Any]) -> None:
        async with semaphore:
            await model.create(document)

    tasks = [asyncio.create_task(_create(document)) for document in documents]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        # Pending creates are cancelled before the error propagates.
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return len(documents)


@app.command()
def main(
    collection: str = typer.Argument(..., help="Container to seed."),
    count: int = typer.Option(
        100,
        "--count",
        "-n",
        help="Number of documents to create.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    concurrency: int = typer.Option(
        8,
        "--concurrency",
        "-c",
        help="Maximum concurrent create requests.",
    ),
) -> None:
    """
    Generate synthetic documents and create them in COLLECTION.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    documents = _generate_documents(count, seed)

    async def _seed() -> int:
        async with create_client_from_settings(
            lambda builder: {collection: builder.create_model(collection)}, settings=settings
        ) as db:
            return await _load(db[collection], documents, concurrency)

    start = time.perf_counter()
    typer.echo(f"Creating {count:,} documents in {settings.database}/{collection} (seed={seed})")
    created = asyncio.run(_seed())
    duration = time.perf_counter() - start
    typer.echo(f"Created {created:,} documents in {duration:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
