"""
Reliability utilities for Agent Relay.

- Atomic file writes (file-backed queue, store and agent data)
- Input validation at the wire and tool boundaries
- Structured audit logging of tool executions
- Idempotency tracking for published-but-not-removed work items

Each helper is pure or has a single side effect, and none of them keep
module-level state.
"""

import json
import logging
import os
import tempfile
import time
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)


# =============================================================================
# Atomic File Operations
# =============================================================================
# Write to a temp file in the same directory, then os.replace(). Within one
# filesystem the rename is atomic, so readers see the old file or the new one.
# =============================================================================

def atomic_write_text(path: Path, content: str) -> None:
    """Atomically replace ``path`` with ``content``.

    Raises:
        OSError: If the write or rename fails.
    """
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def atomic_write_json(path: Path, data: Any, indent: int | None = 2) -> None:
    """Atomically write JSON data to a file.

    Serializes before touching the filesystem, so unserializable data never
    leaves a temp file behind.

    Raises:
        OSError: If the write or rename fails.
        TypeError: If data is not JSON-serializable.
    """
    content = json.dumps(data, indent=indent)
    atomic_write_text(path, content)


def safe_move(src: Path, dest: Path) -> bool:
    """Move a file, tolerating a source that is already gone.

    Returns True if moved, False if another process got there first.
    Raises OSError on other failures.
    """
    try:
        src.rename(dest)
        return True
    except FileNotFoundError:
        return False


# =============================================================================
# Input Validation
# =============================================================================

class ValidationError(Exception):
    """Raised when input validation fails. Contains a user-facing message."""
    pass


def validate_request_id(request_id: Any) -> str:
    """Validate a request id is a non-empty string safe to use in a path or key.

    Raises ValidationError if invalid.
    """
    if request_id is None or request_id == "":
        raise ValidationError("request id is required")
    if not isinstance(request_id, str):
        request_id = str(request_id)
    if not request_id.strip():
        raise ValidationError("request id cannot be empty")
    if ".." in request_id or "/" in request_id or "\\" in request_id:
        raise ValidationError("request id contains invalid characters")
    if len(request_id) > 200:
        raise ValidationError("request id is too long (max 200 characters)")
    return request_id


def validate_tool_arguments(arguments: Any) -> dict[str, Any]:
    """Validate tool arguments are a JSON-serializable mapping with string keys.

    ``None`` is treated as "no arguments". Returns a plain dict copy.
    """
    if arguments is None:
        return {}
    if not isinstance(arguments, Mapping):
        raise ValidationError(
            f"arguments must be an object, got {type(arguments).__name__}"
        )
    for key in arguments:
        if not isinstance(key, str):
            raise ValidationError(f"argument names must be strings, got {key!r}")
    try:
        json.dumps(arguments, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"arguments are not JSON-serializable: {e}") from e
    return dict(arguments)


def require_string(args: Mapping[str, Any], name: str) -> str:
    """Fetch a required, non-blank string argument."""
    value = args.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{name} is required")
    if not isinstance(value, str):
        value = str(value)
    return value.strip()


# =============================================================================
# Audit Logging
# =============================================================================
# Append-only JSONL, one self-contained entry per tool execution. Kept apart
# from the application log.
# =============================================================================

_TRUNCATED_KEYS = ("content", "body", "text", "description", "message")
_REDACTED_KEYS = ("token", "password", "secret", "api_key")


class AuditLog:
    """Append-only JSONL audit trail of tool executions."""

    def __init__(self, log_dir: Path, filename: str = "audit.jsonl"):
        log_dir.mkdir(parents=True, exist_ok=True)
        self.path = log_dir / filename

    def record(
        self,
        tool: str,
        args: Mapping[str, Any] | None = None,
        request_id: str = "",
        result: str = "",
        error: str = "",
        duration_ms: int | None = None,
    ) -> None:
        """Append one entry. Write failures are logged, never raised."""
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "tool": tool,
        }
        if request_id:
            entry["request_id"] = request_id

        if args:
            sanitized = {}
            for k, v in args.items():
                if k in _REDACTED_KEYS:
                    sanitized[k] = "[REDACTED]"
                elif k in _TRUNCATED_KEYS:
                    s = str(v)
                    sanitized[k] = s[:200] + "..." if len(s) > 200 else s
                else:
                    sanitized[k] = v
            entry["args"] = sanitized

        if result:
            entry["result"] = result[:500]
        if error:
            entry["error"] = error[:500]
        if duration_ms is not None:
            entry["duration_ms"] = duration_ms

        try:
            line = json.dumps(entry, default=str) + "\n"
            with open(self.path, "a") as f:
                f.write(line)
        except OSError as e:
            log.warning(f"Audit log write failed ({self.path}): {e}")


# =============================================================================
# Idempotency
# =============================================================================

class IdempotencyTracker:
    """Remembers recently handled ids with TTL-based expiry.

    In-memory only. The worker uses it for items whose result was published
    but whose queue entry could not be removed: on the next cycle those are
    removed again instead of being executed a second time.
    """

    def __init__(self, ttl_seconds: float = 600, clock: Callable[[], float] = time.monotonic):
        self._seen: dict[str, float] = {}  # id -> timestamp
        self._ttl = ttl_seconds
        self._clock = clock

    def __contains__(self, item_id: str) -> bool:
        self._evict_expired()
        return item_id in self._seen

    def __len__(self) -> int:
        self._evict_expired()
        return len(self._seen)

    def mark(self, item_id: str) -> None:
        self._seen[item_id] = self._clock()

    def discard(self, item_id: str) -> None:
        self._seen.pop(item_id, None)

    def _evict_expired(self) -> None:
        cutoff = self._clock() - self._ttl
        self._seen = {k: v for k, v in self._seen.items() if v > cutoff}

