"""
File-backed Pending Queue and Response Store.

Layout under the data directory:

    pending/<time_ns>_<id>.json     one serialized WorkItem per file
    responses/<id>.json             {"expiresAt": <epoch>, "result": {...}}

Writes go through atomic_write_text, so readers never see partial files.
``take_if_present`` claims a response by renaming it first; only one reader
can win the rename, which makes read-and-delete atomic across processes.
"""

import asyncio
import json
import logging
import time
import uuid
from collections.abc import Callable
from pathlib import Path

from agentrelay.errors import RelayTransportError
from agentrelay.relay.models import Result, WorkItem
from agentrelay.relay.store import serialized
from agentrelay.reliability import (
    ValidationError,
    atomic_write_json,
    atomic_write_text,
    safe_move,
    validate_request_id,
)

log = logging.getLogger(__name__)


async def _run(func, *args):
    try:
        return await asyncio.to_thread(func, *args)
    except OSError as e:
        raise RelayTransportError(f"file store failure: {e}") from e


class FilePendingQueue:
    def __init__(self, root: Path):
        self.dir = root / "pending"
        self.dir.mkdir(parents=True, exist_ok=True)

    async def enqueue(self, item: WorkItem) -> None:
        await _run(self._enqueue, item)

    async def list_all(self) -> list[str]:
        return await _run(self._list_all)

    async def remove(self, item: WorkItem | str) -> None:
        await _run(self._remove, serialized(item))

    def _enqueue(self, item: WorkItem) -> None:
        path = self.dir / f"{time.time_ns()}_{item.id}.json"
        atomic_write_text(path, item.to_json())

    def _entries(self) -> list[tuple[Path, str]]:
        entries = []
        for path in sorted(self.dir.glob("*.json")):
            try:
                entries.append((path, path.read_text()))
            except FileNotFoundError:
                continue  # removed while listing
        return entries

    def _list_all(self) -> list[str]:
        return [content for _, content in self._entries()]

    def _remove(self, target: str) -> None:
        for path, content in self._entries():
            if content == target:
                path.unlink(missing_ok=True)
                return


class FileResponseStore:
    def __init__(self, root: Path, ttl: float = 300, clock: Callable[[], float] = time.time):
        self.dir = root / "responses"
        self.dir.mkdir(parents=True, exist_ok=True)
        self.ttl = ttl
        self._clock = clock

    async def publish(self, result: Result) -> None:
        await _run(self._publish, result)

    async def take_if_present(self, request_id: str) -> Result | None:
        return await _run(self._take, validate_request_id(request_id))

    async def purge_expired(self) -> int:
        return await _run(self._purge)

    def _path(self, request_id: str) -> Path:
        return self.dir / f"{request_id}.json"

    def _publish(self, result: Result) -> None:
        path = self._path(validate_request_id(result.request_id))
        atomic_write_json(path, {
            "expiresAt": self._clock() + self.ttl,
            "result": result.to_dict(),
        }, indent=None)

    def _claim(self, path: Path) -> dict | None:
        """Rename ``path`` aside, read it, delete it. None if someone else won."""
        claim = path.with_name(f"{path.stem}.{uuid.uuid4().hex}.claim")
        if not safe_move(path, claim):
            return None
        try:
            entry = json.loads(claim.read_text())
        except FileNotFoundError:
            return None  # purged while claimed
        except json.JSONDecodeError as e:
            log.warning(f"Dropping unreadable response file {path.name}: {e}")
            return None
        finally:
            claim.unlink(missing_ok=True)
        if not isinstance(entry, dict):
            log.warning(f"Dropping response file {path.name}: not a JSON object")
            return None
        return entry

    def _take(self, request_id: str) -> Result | None:
        entry = self._claim(self._path(request_id))
        if entry is None:
            return None
        if self._clock() >= entry.get("expiresAt", 0):
            return None
        try:
            return Result.from_dict(entry.get("result"))
        except ValidationError as e:
            log.warning(f"Dropping malformed response for {request_id}: {e}")
            return None

    def _purge(self) -> int:
        now = self._clock()
        purged = 0
        # leftover .claim files come from a reader that crashed mid-take
        for path in [*self.dir.glob("*.json"), *self.dir.glob("*.claim")]:
            try:
                entry = json.loads(path.read_text())
            except FileNotFoundError:
                continue
            except json.JSONDecodeError:
                entry = {}
            if not isinstance(entry, dict):
                entry = {}
            if now >= entry.get("expiresAt", 0):
                path.unlink(missing_ok=True)
                purged += 1
        return purged
