"""
Relay Worker - the private-network half of the relay.

Each cycle takes a snapshot of the pending queue and, in order, executes
every item against the tool dispatcher, publishes its Result, then removes
it from the queue. An item counts as done only once both publish and remove
succeed, so a crash in between means it is executed again later
(at-least-once). Tool handlers are written to be safe to re-run.

Only one worker may consume a queue. Running several would need a claim
step before execution.
"""

import asyncio
import json
import logging
import time
from typing import Any, Protocol

from agentrelay.errors import RelayTransportError, ToolError
from agentrelay.relay.models import Result, WorkItem
from agentrelay.relay.store import ResultSink, WorkSource
from agentrelay.reliability import (
    AuditLog,
    IdempotencyTracker,
    ValidationError,
    validate_request_id,
)

log = logging.getLogger(__name__)


class Dispatcher(Protocol):
    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> Any:
        ...


def _salvage_id(raw: str) -> str | None:
    """Best-effort request id from an item that failed validation."""
    try:
        data = json.loads(raw)
        return validate_request_id(data.get("id"))
    except (json.JSONDecodeError, AttributeError, ValidationError):
        return None


class RelayWorker:
    def __init__(
        self,
        queue: WorkSource,
        sink: ResultSink,
        dispatcher: Dispatcher,
        poll_interval: float = 2.0,
        tracker: IdempotencyTracker | None = None,
        audit: AuditLog | None = None,
    ):
        self.queue = queue
        self.sink = sink
        self.dispatcher = dispatcher
        self.poll_interval = poll_interval
        self.failures = 0  # consecutive cycles that hit a transport error
        # ids whose Result is published but whose queue entry is not yet removed
        self.published = tracker or IdempotencyTracker(ttl_seconds=600)
        self.audit = audit
        self._stop = asyncio.Event()

    # -------------------------------------------------------------------------
    # One cycle
    # -------------------------------------------------------------------------

    async def run_cycle(self) -> int:
        """Process one snapshot of the queue. Returns the number of items handled.

        Raises RelayTransportError when the queue or sink cannot be reached;
        items not yet removed stay pending for the next cycle.
        """
        snapshot = await self.queue.list_all()
        if snapshot:
            log.info(f"📬 {len(snapshot)} pending request(s)")
        for raw in snapshot:
            await self._process(raw)
        return len(snapshot)

    async def _process(self, raw: str) -> None:
        try:
            item = WorkItem.from_json(raw)
        except ValidationError as e:
            await self._discard_malformed(raw, e)
            return

        if item.id in self.published:
            log.info(f"Result for {item.id} already published, removing")
        else:
            result = await self._execute(item)
            await self.sink.publish(result)
            self.published.mark(item.id)

        await self.queue.remove(raw)
        self.published.discard(item.id)

    async def _discard_malformed(self, raw: str, error: ValidationError) -> None:
        log.warning(f"Malformed work item: {error}")
        request_id = _salvage_id(raw)
        if request_id is not None:
            await self.sink.publish(Result.failure(request_id, f"Malformed request: {error}"))
        await self.queue.remove(raw)

    async def _execute(self, item: WorkItem) -> Result:
        start = time.monotonic()
        try:
            value = await self.dispatcher.execute(item.tool_name, item.arguments)
            result = self._success(item, value)
        except ToolError as e:
            result = Result.failure(item.id, str(e))
        except Exception as e:
            log.exception(f"{item.tool_name} crashed on {item.id}")
            result = Result.failure(item.id, str(e) or type(e).__name__)

        duration_ms = int((time.monotonic() - start) * 1000)
        status = "✅" if result.ok else "❌"
        log.info(f"{status} {item.tool_name} [{item.id}] in {duration_ms}ms")
        if self.audit is not None:
            self.audit.record(
                item.tool_name,
                item.arguments,
                request_id=item.id,
                result="ok" if result.ok else "",
                error=result.error_message or "",
                duration_ms=duration_ms,
            )
        return result

    @staticmethod
    def _success(item: WorkItem, value: Any) -> Result:
        try:
            json.dumps(value, allow_nan=False)
        except (TypeError, ValueError) as e:
            log.warning(f"{item.tool_name} returned an unusable value: {e}")
            return Result.failure(item.id, f"{item.tool_name} returned a result that could not be sent")
        return Result.success(item.id, value)

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    async def run_forever(self) -> None:
        """Run cycles until stop() is called.

        A transport failure is logged and the cycle is retried after the
        normal poll interval.
        """
        log.info(f"Relay worker started (poll every {self.poll_interval}s)")
        while not self._stop.is_set():
            try:
                await self.run_cycle()
            except RelayTransportError as e:
                self.failures += 1
                log.warning(f"⚠️ Relay unreachable ({self.failures} in a row): {e}")
            except Exception as e:
                log.exception(f"Cycle error: {e}")
            else:
                if self.failures:
                    log.info(f"Relay reachable again after {self.failures} failed cycle(s)")
                self.failures = 0
            await self._sleep(self.poll_interval)
        log.info("Relay worker stopped")

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def stop(self) -> None:
        """Ask run_forever() to exit after the current cycle."""
        self._stop.set()
