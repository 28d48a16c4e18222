"""Agent Relay test mocks."""

from .mock_llm import MockLLMServer
from .mock_relay import FakeClock, FlakyQueue, FlakyStore, RecordingDispatcher
from .mock_telegram import MockMessage, MockUpdate, MockUser, make_update

__all__ = [
    "MockLLMServer",
    "FakeClock",
    "FlakyQueue",
    "FlakyStore",
    "RecordingDispatcher",
    "MockMessage",
    "MockUpdate",
    "MockUser",
    "make_update",
]
