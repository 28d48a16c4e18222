"""LLM intent routing and reply formatting."""

from .intent import DirectReply, IntentRouter, ResponseFormatter, ToolIntent
from .llm import LLMClient, LLMError

__all__ = [
    "DirectReply",
    "IntentRouter",
    "ResponseFormatter",
    "ToolIntent",
    "LLMClient",
    "LLMError",
]
