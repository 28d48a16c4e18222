"""
Agent Relay Test Work Item Generator

Generates work items and raw queue entries for unit and stress tests.
"""

import json
import random
import time
import uuid
from typing import Any, Optional

from agentrelay.relay.models import WorkItem


class WorkItemGenerator:
    """Generate work items for relay testing."""

    SAMPLE_USERS = ["100001", "100002", "100003", "100004", "100005"]

    # (tool name, arguments) pairs that a router could plausibly produce
    SAMPLE_CALLS = [
        ("files_list", {"path": "/tmp"}),
        ("files_search", {"query": "invoice", "type": "pdf"}),
        ("web_search", {"query": "python asyncio tutorial", "numResults": 3}),
        ("tasks_create", {"title": "Call the dentist", "priority": "high"}),
        ("notes_search", {"query": "meeting"}),
        ("calendar_list_events", {"startDate": "2026-01-01"}),
        ("email_list", {"folder": "inbox", "limit": 5}),
    ]

    def __init__(self, seed: Optional[int] = None):
        """Initialize generator with optional random seed for reproducibility."""
        self._rng = random.Random(seed)
        self._counter = 0

    def generate_item(
        self,
        tool_name: Optional[str] = None,
        arguments: Optional[dict[str, Any]] = None,
        user_id: Optional[str] = None,
        origin_channel: str = "telegram",
        item_id: Optional[str] = None,
    ) -> WorkItem:
        """
        Generate a single work item.

        Args:
            tool_name: Tool to call (random sample if not provided)
            arguments: Tool arguments (sample arguments if not provided)
            user_id: Requesting user (random if not provided)
            origin_channel: Channel the request came from
            item_id: Explicit id (fresh unique id if not provided)
        """
        self._counter += 1
        if tool_name is None:
            tool_name, sample_args = self._rng.choice(self.SAMPLE_CALLS)
            if arguments is None:
                arguments = dict(sample_args)
        return WorkItem(
            id=item_id or f"req_{self._counter}_{uuid.uuid4().hex[:8]}",
            user_id=user_id or self._rng.choice(self.SAMPLE_USERS),
            origin_channel=origin_channel,
            tool_name=tool_name,
            arguments=arguments or {},
            enqueued_at=time.time(),
        )

    def generate_batch(self, count: int, **kwargs) -> list[WorkItem]:
        """Generate ``count`` items with distinct ids."""
        return [self.generate_item(**kwargs) for _ in range(count)]

    def generate_malformed_entries(self) -> list[str]:
        """Raw queue entries a worker must survive."""
        return [
            "not json at all",
            json.dumps(["a", "list"]),
            json.dumps({"id": "no_tool_here", "arguments": {}}),
            json.dumps({"toolName": "files_list"}),  # no id
            json.dumps({"id": "bad_args", "toolName": "files_list", "arguments": "oops"}),
            json.dumps({"id": "../escape", "toolName": "files_list"}),
        ]
