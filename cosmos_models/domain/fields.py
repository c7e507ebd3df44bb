"""
Generators for the reserved document fields.

``new_id`` issues ULIDs that sort lexicographically in generation order, even
when several are issued within the same millisecond. ``utc_now_iso`` renders
timestamps the way JavaScript's ``Date.toISOString`` does, so documents written
by other Cosmos clients compare cleanly.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from ulid import ULID


class MonotonicUlid:
    """
    Thread-safe ULID source that never goes backwards.

    When the clock has not advanced past the last issued identifier, the next
    one is the previous value plus one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last: Optional[ULID] = None

    def __call__(self) -> str:
        with self._lock:
            candidate = ULID()
            if self._last is not None and int(candidate) <= int(self._last):
                candidate = ULID.from_int(int(self._last) + 1)
            self._last = candidate
            return str(candidate)


new_id = MonotonicUlid()


def _format(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    """Current UTC time, millisecond precision, ``Z`` suffix."""
    return _format(datetime.now(timezone.utc))


def next_timestamp(previous: Optional[str]) -> str:
    """
    A fresh ``updatedAt`` value strictly later than ``previous``.

    Falls back to plain "now" when ``previous`` is missing or not an ISO-8601
    string this module can parse.
    """
    now = utc_now_iso()
    if not previous or now > previous:
        return now
    try:
        parsed = datetime.fromisoformat(previous.replace("Z", "+00:00"))
    except ValueError:
        return now
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return _format(parsed.astimezone(timezone.utc) + timedelta(milliseconds=1))


__all__ = ["MonotonicUlid", "new_id", "next_timestamp", "utc_now_iso"]
