"""
Pending Queue and Response Store interfaces, plus in-process backends.

Backends implement these protocols so the client, worker and HTTP API never
depend on where the queue and results actually live:

- memory (this module): tests and single-process development
- file (filestore.py): one JSON file per entry, claim-by-rename
- redis (redis_store.py): list + expiring string keys
- remote (remote.py): the worker's view of a server over HTTP
"""

import asyncio
import time
from collections.abc import Callable
from typing import Protocol

from agentrelay.relay.models import Result, WorkItem


def serialized(item: WorkItem | str) -> str:
    """Serialized form used for storage and exact-match removal."""
    return item if isinstance(item, str) else item.to_json()


class WorkSource(Protocol):
    """Consumer side of the pending queue, all the worker needs."""

    async def list_all(self) -> list[str]:
        """Snapshot of serialized items in FIFO order. Removes nothing."""
        ...

    async def remove(self, item: WorkItem | str) -> None:
        """Remove the first entry whose serialized form matches exactly.

        A missing entry is a silent no-op.
        """
        ...


class PendingQueue(WorkSource, Protocol):
    """Ordered list of unclaimed work items.

    Implementations provide atomic single-entry operations; nothing else is
    shared between the producer and the single consumer.
    """

    async def enqueue(self, item: WorkItem) -> None:
        """Append to the tail. No dedup: every call must use a fresh id."""
        ...


class ResultSink(Protocol):
    """Write side of the response store, all the worker needs."""

    async def publish(self, result: Result) -> None:
        """Store ``result`` under its request id, replacing any existing entry.

        The entry expires after the store's retention window if never taken.
        """
        ...


class ResponseStore(ResultSink, Protocol):
    """Keyed, expiring store holding at most one Result per request id."""

    async def take_if_present(self, request_id: str) -> Result | None:
        """Atomically read and delete. Absent is the common case, not an error."""
        ...

    async def purge_expired(self) -> int:
        """Drop entries past retention. Returns how many were dropped."""
        ...


class MemoryPendingQueue:
    """In-process PendingQueue."""

    def __init__(self):
        self._items: list[str] = []
        self._lock = asyncio.Lock()

    async def enqueue(self, item: WorkItem) -> None:
        async with self._lock:
            self._items.append(item.to_json())

    async def list_all(self) -> list[str]:
        async with self._lock:
            return list(self._items)

    async def remove(self, item: WorkItem | str) -> None:
        target = serialized(item)
        async with self._lock:
            try:
                self._items.remove(target)
            except ValueError:
                pass


class MemoryResponseStore:
    """In-process ResponseStore with per-entry retention."""

    def __init__(self, ttl: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[Result, float]] = {}  # id -> (result, expires_at)
        self._lock = asyncio.Lock()

    async def publish(self, result: Result) -> None:
        async with self._lock:
            self._entries[result.request_id] = (result, self._clock() + self.ttl)

    async def take_if_present(self, request_id: str) -> Result | None:
        async with self._lock:
            entry = self._entries.pop(request_id, None)
        if entry is None:
            return None
        result, expires_at = entry
        if self._clock() >= expires_at:
            return None
        return result

    async def purge_expired(self) -> int:
        now = self._clock()
        async with self._lock:
            expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
