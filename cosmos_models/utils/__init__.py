"""
Utilities package for cosmos-models.

Exports shared helpers for cross-cutting concerns. Keep this package free of
Cosmos-specific logic.
"""

from cosmos_models.utils.logging import JsonFormatter, configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
    "JsonFormatter",
]
