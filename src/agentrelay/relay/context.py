"""
RelayContext: the relay handle for one server process.

Built once at startup by ``open_relay(config)`` and passed to everything that
touches the queue or the response store. Closing the context releases the
backend connection.
"""

import contextlib
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from redis.asyncio import Redis

from agentrelay.config import Config
from agentrelay.errors import ConfigError
from agentrelay.relay.client import RelayClient
from agentrelay.relay.filestore import FilePendingQueue, FileResponseStore
from agentrelay.relay.redis_store import RedisPendingQueue, RedisResponseStore
from agentrelay.relay.store import (
    MemoryPendingQueue,
    MemoryResponseStore,
    PendingQueue,
    ResponseStore,
)

log = logging.getLogger(__name__)


@dataclass
class RelayContext:
    queue: PendingQueue
    store: ResponseStore
    client: RelayClient
    backend: str


def build_context(config: Config, queue: PendingQueue, store: ResponseStore, backend: str) -> RelayContext:
    client = RelayClient(
        queue,
        store,
        poll_interval=config.client_poll_interval,
        default_deadline=config.wait_deadline,
    )
    return RelayContext(queue=queue, store=store, client=client, backend=backend)


@contextlib.asynccontextmanager
async def open_relay(config: Config) -> AsyncIterator[RelayContext]:
    """Open the configured backend and yield a RelayContext for it."""
    backend = config.store_backend
    if backend == "memory":
        yield build_context(config, MemoryPendingQueue(), MemoryResponseStore(ttl=config.response_ttl), backend)
    elif backend == "file":
        root = config.data_dir / "relay"
        log.info(f"Relay store: files under {root}")
        yield build_context(
            config,
            FilePendingQueue(root),
            FileResponseStore(root, ttl=config.response_ttl),
            backend,
        )
    elif backend == "redis":
        redis = Redis.from_url(config.redis_url, decode_responses=True)
        log.info("Relay store: redis")
        try:
            yield build_context(
                config,
                RedisPendingQueue(redis),
                RedisResponseStore(redis, ttl=config.response_ttl),
                backend,
            )
        finally:
            await redis.aclose()
    else:
        raise ConfigError(f"Unknown relay store backend: {backend!r}")
