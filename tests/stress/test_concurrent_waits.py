"""
Tests for Concurrent Relay Waits

Many callers wait on the same relay at once; every caller must get its own
Result and nothing may be left behind in the queue or the store.
"""

import asyncio
import time

import pytest

from agentrelay.relay.client import RelayClient
from agentrelay.relay.filestore import FilePendingQueue, FileResponseStore
from agentrelay.relay.models import Result
from agentrelay.relay.store import MemoryPendingQueue, MemoryResponseStore
from agentrelay.relay.worker import RelayWorker
from tests.mocks import RecordingDispatcher


def echo_dispatcher(delay=0.0):
    dispatcher = RecordingDispatcher(delay=delay)
    dispatcher.handles("echo", lambda args: {"n": args["n"]})
    return dispatcher


async def run_concurrently(client, queue, store, dispatcher, items, deadline=10.0):
    worker = RelayWorker(queue, store, dispatcher, poll_interval=0.01)
    worker_task = asyncio.create_task(worker.run_forever())
    try:
        return await asyncio.gather(*(client.submit_and_wait(item, deadline) for item in items))
    finally:
        worker.stop()
        await worker_task


@pytest.mark.stress
@pytest.mark.slow
class TestConcurrentWaits:
    """Many simultaneous bounded waits against one worker."""

    @pytest.mark.asyncio
    async def test_200_waiters_memory(self, work_item_generator):
        queue, store = MemoryPendingQueue(), MemoryResponseStore()
        client = RelayClient(queue, store, poll_interval=0.01)
        items = [work_item_generator.generate_item(tool_name="echo", arguments={"n": i}) for i in range(200)]

        start = time.time()
        outcomes = await run_concurrently(client, queue, store, echo_dispatcher(), items)
        elapsed = time.time() - start

        assert all(isinstance(o, Result) and o.ok for o in outcomes)
        assert [o.value["n"] for o in outcomes] == list(range(200))
        assert [o.request_id for o in outcomes] == [i.id for i in items]
        assert await queue.list_all() == []
        assert len(store) == 0
        assert elapsed < 30

    @pytest.mark.asyncio
    async def test_50_waiters_file_store(self, relay_dir, work_item_generator):
        queue, store = FilePendingQueue(relay_dir), FileResponseStore(relay_dir)
        client = RelayClient(queue, store, poll_interval=0.01)
        items = [work_item_generator.generate_item(tool_name="echo", arguments={"n": i}) for i in range(50)]

        outcomes = await run_concurrently(client, queue, store, echo_dispatcher(), items)

        assert [o.value["n"] for o in outcomes] == list(range(50))
        assert await queue.list_all() == []

    @pytest.mark.asyncio
    async def test_slow_tools_time_out_without_losing_work(self, work_item_generator):
        """Waiters give up, but every item is still executed and published once."""
        queue, store = MemoryPendingQueue(), MemoryResponseStore()
        client = RelayClient(queue, store, poll_interval=0.01)
        dispatcher = echo_dispatcher(delay=0.02)
        items = [work_item_generator.generate_item(tool_name="echo", arguments={"n": i}) for i in range(20)]

        outcomes = await run_concurrently(client, queue, store, dispatcher, items, deadline=0.05)

        timed_out = [o for o in outcomes if not isinstance(o, Result)]
        assert timed_out

        worker = RelayWorker(queue, store, dispatcher)
        while await queue.list_all():
            await worker.run_cycle()

        assert len(dispatcher.calls_for("echo")) == 20
        assert len(store) == len(timed_out)
