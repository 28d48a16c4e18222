"""
Tool dispatcher: maps tool names to agent handlers.

The registry is built and checked once at startup. A missing or duplicate
handler is a ConfigError then, not a surprise on the first request.
"""

import asyncio
import inspect
import logging
from collections.abc import Iterable
from typing import Any

import httpx

from agentrelay.agents.base import Agent, Handler
from agentrelay.agents.catalog import AGENTS, AgentDefinition
from agentrelay.agents.comms import CommsAgent, SmtpSettings
from agentrelay.agents.files import FilesAgent
from agentrelay.agents.productivity import ProductivityAgent
from agentrelay.agents.web import WebAgent
from agentrelay.config import Config
from agentrelay.errors import ConfigError, ToolError, UnknownToolError
from agentrelay.reliability import ValidationError, validate_tool_arguments

log = logging.getLogger(__name__)


def _describe_os_error(e: OSError) -> str:
    if isinstance(e, FileNotFoundError):
        return f"Not found: {e.filename}"
    if isinstance(e, PermissionError):
        return f"Permission denied: {e.filename}"
    return f"{e.strerror or e}" + (f": {e.filename}" if e.filename else "")


class ToolDispatcher:
    def __init__(self, agents: Iterable[Agent] = (), catalog: Iterable[AgentDefinition] = AGENTS,
                 require_all: bool = True):
        self._handlers: dict[str, Handler] = {}
        for agent in agents:
            for tool_name, handler in agent.handlers().items():
                if handler is None:
                    raise ConfigError(f"{type(agent).__name__} has no handler for {tool_name}")
                self.register(tool_name, handler)

        if require_all:
            expected = {tool.name for agent in catalog for tool in agent.tools}
            missing = sorted(expected - self._handlers.keys())
            if missing:
                raise ConfigError(f"No handler registered for: {', '.join(missing)}")

    def register(self, tool_name: str, handler: Handler) -> None:
        if tool_name in self._handlers:
            raise ConfigError(f"Duplicate handler for tool {tool_name}")
        self._handlers[tool_name] = handler

    @property
    def tool_names(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, tool_name: str) -> bool:
        return tool_name in self._handlers

    async def execute(self, tool_name: str, arguments: dict[str, Any] | None) -> Any:
        """Run one tool. Raises UnknownToolError or ToolError with a user-presentable message."""
        handler = self._handlers.get(tool_name)
        if handler is None:
            raise UnknownToolError(tool_name)
        try:
            args = validate_tool_arguments(arguments)
            if inspect.iscoroutinefunction(handler):
                return await handler(args)
            return await asyncio.to_thread(handler, args)
        except ValidationError as e:
            raise ToolError(str(e)) from e
        except OSError as e:
            raise ToolError(_describe_os_error(e)) from e


def build_default_dispatcher(config: Config, http: httpx.AsyncClient) -> ToolDispatcher:
    """Dispatcher with the four standard agents wired to ``config``."""
    data_dir = config.data_dir / "agents"
    data_dir.mkdir(parents=True, exist_ok=True)
    smtp = None
    if config.smtp_host:
        smtp = SmtpSettings(
            host=config.smtp_host,
            port=config.smtp_port,
            user=config.smtp_user,
            password=config.smtp_password,
            sender=config.smtp_from or config.smtp_user,
        )
    dispatcher = ToolDispatcher([
        FilesAgent(config.files_base_dir),
        WebAgent(http, data_dir),
        ProductivityAgent(data_dir),
        CommsAgent(data_dir, smtp),
    ])
    log.info(f"Tool dispatcher ready with {len(dispatcher.tool_names)} tools")
    return dispatcher
