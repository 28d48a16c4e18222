"""Capability agents and the tool dispatcher that routes work items to them."""

from .catalog import AGENTS, AgentDefinition, ToolSpec, find_tool, get_agent
from .registry import ToolDispatcher, build_default_dispatcher

__all__ = [
    "AGENTS",
    "AgentDefinition",
    "ToolSpec",
    "find_tool",
    "get_agent",
    "ToolDispatcher",
    "build_default_dispatcher",
]
