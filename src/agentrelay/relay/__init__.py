"""
The request relay between the public server and the private worker.

Usage (server):
    async with open_relay(config) as relay:
        outcome = await relay.client.submit_and_wait(item)

Usage (worker):
    worker = RelayWorker(RemotePendingQueue(http), RemoteResultSink(http), dispatcher)
    await worker.run_forever()
"""

from .models import Result, TimedOut, WorkItem
from .store import PendingQueue, ResponseStore, ResultSink, WorkSource
from .client import RelayClient
from .worker import RelayWorker
from .context import RelayContext, open_relay

__all__ = [
    "WorkItem",
    "Result",
    "TimedOut",
    "PendingQueue",
    "WorkSource",
    "ResultSink",
    "ResponseStore",
    "RelayClient",
    "RelayWorker",
    "RelayContext",
    "open_relay",
]
