"""
Chat message handling, independent of the chat platform.

One incoming text goes: authorization -> rate limit -> intent routing ->
(direct reply | relay round trip) -> formatted reply. Platform adapters
(telegram_bot.py) supply a ``send`` coroutine for the replies.
"""

import logging
import time
from collections import defaultdict, deque
from collections.abc import Awaitable, Callable

from agentrelay.errors import RelayError
from agentrelay.relay.client import RelayClient
from agentrelay.relay.models import TimedOut, WorkItem
from agentrelay.reliability import ValidationError
from agentrelay.router.intent import DirectReply, IntentRouter, ResponseFormatter, ToolIntent

log = logging.getLogger(__name__)

Send = Callable[[str], Awaitable[None]]

RATE_LIMITED_REPLY = "⚠️ You've sent too many messages. Please wait a moment."
TIMEOUT_REPLY = "⏱️ This is taking longer than expected. I'll let you know when it's ready."
RELAY_DOWN_REPLY = "❌ I couldn't reach your local agent right now. Please try again in a moment."


class RateLimiter:
    """Fixed-window message counter per user."""

    def __init__(self, limit: int = 30, window_seconds: float = 60,
                 clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}  # user -> (window start, count)

    def allow(self, user_id: str) -> bool:
        now = self._clock()
        start, count = self._windows.get(user_id, (now, 0))
        if now - start >= self.window:
            start, count = now, 0
        count += 1
        self._windows[user_id] = (start, count)
        return count <= self.limit


class ConversationLog:
    """Recent lines per user, fed to the router as context."""

    def __init__(self, max_stored: int = 20, context_size: int = 10):
        self.context_size = context_size
        self._lines: dict[str, deque[str]] = defaultdict(lambda: deque(maxlen=max_stored))

    def add(self, user_id: str, line: str) -> None:
        self._lines[user_id].append(line)

    def context(self, user_id: str) -> list[str]:
        return list(self._lines[user_id])[-self.context_size:]


class ChatService:
    def __init__(
        self,
        relay: RelayClient,
        router: IntentRouter,
        formatter: ResponseFormatter,
        allowed_users: frozenset[int] | None = None,
        rate_limiter: RateLimiter | None = None,
        conversations: ConversationLog | None = None,
        deadline: float | None = None,
        channel: str = "telegram",
    ):
        self.relay = relay
        self.router = router
        self.formatter = formatter
        self.allowed_users = allowed_users
        self.rate_limiter = rate_limiter or RateLimiter()
        self.conversations = conversations or ConversationLog()
        self.deadline = deadline
        self.channel = channel

    def is_authorized(self, user_id: int) -> bool:
        if self.allowed_users is None:
            return True
        return user_id in self.allowed_users

    async def handle_message(self, user_id: int, text: str, send: Send) -> str | None:
        """Handle one message. Returns the final reply sent, or None if ignored."""
        if not self.is_authorized(user_id):
            log.warning(f"Unauthorized: {user_id}")
            return None

        key = str(user_id)
        if not self.rate_limiter.allow(key):
            log.warning(f"Rate limited: {user_id}")
            await send(RATE_LIMITED_REPLY)
            return RATE_LIMITED_REPLY

        self.conversations.add(key, f"User: {text}")
        decision = await self.router.classify(text, self.conversations.context(key))

        if isinstance(decision, DirectReply):
            reply = decision.text
        else:
            reply = await self._run_tool(key, decision, send)

        await send(reply)
        self.conversations.add(key, f"Assistant: {reply}")
        return reply

    async def _run_tool(self, user_key: str, decision: ToolIntent, send: Send) -> str:
        try:
            item = WorkItem.new(
                user_id=user_key,
                origin_channel=self.channel,
                tool_name=decision.tool_name,
                arguments=decision.arguments,
            )
        except ValidationError as e:
            log.warning(f"Rejected {decision.tool_name} request: {e}")
            return f"❌ Error: {e}"

        await send(f"{decision.agent.emoji} {decision.agent.name} is working on your request...")
        try:
            outcome = await self.relay.submit_and_wait(item, self.deadline)
        except RelayError as e:
            log.error(f"Could not enqueue {item.id}: {e}")
            return RELAY_DOWN_REPLY

        if isinstance(outcome, TimedOut):
            return TIMEOUT_REPLY
        return await self.formatter.format(decision, outcome)
