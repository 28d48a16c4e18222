"""
Relay wire types.

WorkItem and Result travel across the network boundary as JSON objects with
camelCase keys. ``WorkItem.to_json()`` is the canonical serialization: the
pending queue stores exactly that text and ``remove`` matches against it.
"""

import json
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from agentrelay.reliability import ValidationError, validate_request_id, validate_tool_arguments


def canonical_json(data: Any) -> str:
    """Serialize with sorted keys and no whitespace, the form queues compare.

    NaN and Infinity are rejected: strict JSON readers (the HTTP API among
    them) cannot render them.
    """
    try:
        return json.dumps(data, sort_keys=True, separators=(",", ":"), allow_nan=False)
    except ValueError as e:
        raise ValidationError(f"not valid JSON: {e}") from e


def _reject_constant(name: str):
    raise ValueError(f"{name} is not allowed in JSON")


def strict_loads(raw: str | bytes) -> Any:
    """json.loads that rejects NaN and Infinity. Raises ValueError."""
    return json.loads(raw, parse_constant=_reject_constant)


@dataclass(frozen=True)
class WorkItem:
    """One queued tool execution. Immutable once enqueued."""

    id: str
    user_id: str
    origin_channel: str
    tool_name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    enqueued_at: float = 0.0

    @classmethod
    def new(cls, user_id: str, origin_channel: str, tool_name: str,
            arguments: dict[str, Any] | None = None) -> "WorkItem":
        """Create an item with a fresh id and the current time."""
        return cls(
            id=uuid.uuid4().hex,
            user_id=str(user_id),
            origin_channel=origin_channel,
            tool_name=tool_name,
            arguments=validate_tool_arguments(arguments),
            enqueued_at=time.time(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "originChannel": self.origin_channel,
            "toolName": self.tool_name,
            "arguments": self.arguments,
            "enqueuedAt": self.enqueued_at,
        }

    def to_json(self) -> str:
        return canonical_json(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> "WorkItem":
        """Build from the wire form. Raises ValidationError on bad input."""
        if not isinstance(data, dict):
            raise ValidationError(f"work item must be an object, got {type(data).__name__}")
        tool_name = data.get("toolName")
        if not isinstance(tool_name, str) or not tool_name:
            raise ValidationError("work item toolName is required")
        enqueued_at = data.get("enqueuedAt", 0.0)
        if isinstance(enqueued_at, bool) or not isinstance(enqueued_at, (int, float)):
            raise ValidationError("work item enqueuedAt must be a number")
        return cls(
            id=validate_request_id(data.get("id")),
            user_id=str(data.get("userId", "")),
            origin_channel=str(data.get("originChannel", "")),
            tool_name=tool_name,
            arguments=validate_tool_arguments(data.get("arguments")),
            enqueued_at=float(enqueued_at),
        )

    @classmethod
    def from_json(cls, raw: str) -> "WorkItem":
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(f"work item is not valid JSON: {e}") from e
        return cls.from_dict(data)


@dataclass(frozen=True)
class Result:
    """Outcome of one WorkItem: ``value`` on success XOR ``error_message``."""

    request_id: str
    value: Any = None
    error_message: str | None = None

    def __post_init__(self):
        if self.value is not None and self.error_message is not None:
            raise ValidationError("result cannot carry both a value and an errorMessage")

    @classmethod
    def success(cls, request_id: str, value: Any) -> "Result":
        return cls(request_id=request_id, value=value)

    @classmethod
    def failure(cls, request_id: str, error_message: str) -> "Result":
        return cls(request_id=request_id, error_message=error_message or "Unknown error")

    @property
    def ok(self) -> bool:
        return self.error_message is None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"requestId": self.request_id, "value": self.value}
        return {"requestId": self.request_id, "errorMessage": self.error_message}

    @classmethod
    def from_dict(cls, data: Any) -> "Result":
        """Build from the wire form. Exactly one of value/errorMessage must be present."""
        if not isinstance(data, dict):
            raise ValidationError(f"result must be an object, got {type(data).__name__}")
        request_id = validate_request_id(data.get("requestId"))
        error = data.get("errorMessage")
        has_value = "value" in data
        if error is not None:
            if has_value and data["value"] is not None:
                raise ValidationError("result cannot carry both a value and an errorMessage")
            return cls.failure(request_id, str(error))
        if not has_value:
            raise ValidationError("result needs a value or an errorMessage")
        return cls.success(request_id, data["value"])


@dataclass(frozen=True)
class TimedOut:
    """The bounded wait ran out before a Result arrived. Not a failure."""

    request_id: str
    waited: float
