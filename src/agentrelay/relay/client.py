"""
Relay Client - the server-side half of the relay.

Enqueues work for the private worker and waits a bounded time for its
Result. Running out of time yields TimedOut, which callers present as
"still processing" rather than as an error.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from agentrelay.errors import RelayTransportError
from agentrelay.relay.models import Result, TimedOut, WorkItem
from agentrelay.relay.store import PendingQueue, ResponseStore

log = logging.getLogger(__name__)


class RelayClient:
    def __init__(
        self,
        queue: PendingQueue,
        store: ResponseStore,
        poll_interval: float = 1.0,
        default_deadline: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.queue = queue
        self.store = store
        self.poll_interval = poll_interval
        self.default_deadline = default_deadline
        self._clock = clock

    async def enqueue(self, item: WorkItem) -> None:
        """Hand ``item`` to the worker. Raises RelayTransportError if the queue is unreachable."""
        await self.queue.enqueue(item)
        log.info(f"Enqueued {item.id} ({item.tool_name}) for user {item.user_id}")

    async def await_result(self, request_id: str, deadline: float | None = None) -> Result | TimedOut:
        """Poll the response store until a Result shows up or ``deadline`` seconds pass.

        Returns as soon as a Result is taken. A store failure during a poll is
        logged and the next poll proceeds as usual.
        """
        if deadline is None:
            deadline = self.default_deadline
        start = self._clock()
        while True:
            try:
                result = await self.store.take_if_present(request_id)
            except RelayTransportError as e:
                log.warning(f"Polling for {request_id} failed: {e}")
                result = None
            if result is not None:
                return result

            elapsed = self._clock() - start
            remaining = deadline - elapsed
            if remaining <= 0:
                log.info(f"Timed out waiting for {request_id} after {elapsed:.1f}s")
                return TimedOut(request_id=request_id, waited=elapsed)
            await asyncio.sleep(min(self.poll_interval, remaining))

    async def submit_and_wait(self, item: WorkItem, deadline: float | None = None) -> Result | TimedOut:
        """Enqueue ``item`` and wait for its Result within ``deadline`` seconds."""
        await self.enqueue(item)
        return await self.await_result(item.id, deadline)
