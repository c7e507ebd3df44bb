"""
Exception hierarchy for cosmos-models.

Configuration problems are raised while building the registry; store problems
are raised by model operations and always chain the original SDK exception.
Point lookups that find nothing are not errors and return ``None`` instead.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CosmosModelError(Exception):
    """Base class for every error raised by this package."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"type": type(self).__name__, "message": self.message}


class ConfigurationError(CosmosModelError):
    """
    Missing or invalid configuration detected before any store round-trip.

    ``setting`` names the option or environment variable at fault.
    """

    def __init__(self, message: str, setting: Optional[str] = None) -> None:
        super().__init__(message)
        self.setting = setting

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["setting"] = self.setting
        return payload


class StoreError(CosmosModelError):
    """
    A store operation failed.

    Attributes
    ----------
    operation : str
        Model operation that failed (e.g. ``"create"``).
    collection : str
        Container the operation targeted.
    item_id : str | None
        Document id, for point operations.
    status_code : int | None
        HTTP status reported by the store, when there was one.
    original : Exception | None
        The SDK exception this error was translated from.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        collection: str,
        item_id: Optional[str] = None,
        status_code: Optional[int] = None,
        original: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.collection = collection
        self.item_id = item_id
        self.status_code = status_code
        self.original = original

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update(
            {
                "operation": self.operation,
                "collection": self.collection,
                "item_id": self.item_id,
                "status_code": self.status_code,
                "original": repr(self.original) if self.original else None,
            }
        )
        return payload


class ConflictError(StoreError):
    """A document with the same id already exists (HTTP 409)."""


class NotFoundError(StoreError):
    """The targeted document or container does not exist (HTTP 404)."""


class OperationTimeoutError(StoreError):
    """The per-call deadline expired before the store answered."""


__all__ = [
    "CosmosModelError",
    "ConfigurationError",
    "StoreError",
    "ConflictError",
    "NotFoundError",
    "OperationTimeoutError",
]
