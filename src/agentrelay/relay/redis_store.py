"""
Redis-backed Pending Queue and Response Store.

    relay:pending            list of serialized WorkItems (RPUSH / LRANGE / LREM 1)
    relay:response:<id>      serialized Result with EX = retention window

GETDEL gives the atomic read-and-delete; key expiry does the retention purge.
The client must be created with ``decode_responses=True``.
"""

import json
from collections.abc import Awaitable, Callable
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from agentrelay.errors import RelayTransportError
from agentrelay.relay.models import Result, WorkItem, canonical_json
from agentrelay.relay.store import serialized
from agentrelay.reliability import ValidationError

PENDING_KEY = "relay:pending"
RESPONSE_PREFIX = "relay:response:"


async def _call(op: Callable[[], Awaitable[Any]]) -> Any:
    try:
        return await op()
    except RedisError as e:
        raise RelayTransportError(f"redis failure: {e}") from e


class RedisPendingQueue:
    def __init__(self, redis: Redis, key: str = PENDING_KEY):
        self._redis = redis
        self._key = key

    async def enqueue(self, item: WorkItem) -> None:
        await _call(lambda: self._redis.rpush(self._key, item.to_json()))

    async def list_all(self) -> list[str]:
        return await _call(lambda: self._redis.lrange(self._key, 0, -1))

    async def remove(self, item: WorkItem | str) -> None:
        await _call(lambda: self._redis.lrem(self._key, 1, serialized(item)))


class RedisResponseStore:
    def __init__(self, redis: Redis, ttl: float = 300, prefix: str = RESPONSE_PREFIX):
        self._redis = redis
        self.ttl = ttl
        self._prefix = prefix

    async def publish(self, result: Result) -> None:
        key = self._prefix + result.request_id
        ttl_ms = max(1, round(self.ttl * 1000))  # EX takes whole seconds only
        await _call(lambda: self._redis.set(key, canonical_json(result.to_dict()), px=ttl_ms))

    async def take_if_present(self, request_id: str) -> Result | None:
        raw = await _call(lambda: self._redis.getdel(self._prefix + request_id))
        if raw is None:
            return None
        try:
            return Result.from_dict(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise RelayTransportError(f"corrupt response for {request_id}: {e}") from e

    async def purge_expired(self) -> int:
        # Redis expires keys on its own.
        return 0
