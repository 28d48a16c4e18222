"""
Base class for capability agents.

An agent implements each of its catalog tools as a method with the tool's
name, taking the argument dict. Methods may be sync (run in a worker thread
by the dispatcher) or async.

Every handler must be safe to run twice for the same request: the relay
delivers at least once, so creating tools look for an existing record with
the same natural key before writing a new one.
"""

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from agentrelay.agents.catalog import AgentDefinition, get_agent
from agentrelay.errors import ToolError
from agentrelay.reliability import atomic_write_json

log = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Any]


class Agent:
    agent_type: str = ""

    @property
    def definition(self) -> AgentDefinition:
        definition = get_agent(self.agent_type)
        if definition is None:
            raise LookupError(f"No catalog entry for agent type {self.agent_type!r}")
        return definition

    def handlers(self) -> dict[str, Handler | None]:
        """Map every catalog tool of this agent to its handler (None if missing)."""
        return {
            tool.name: getattr(self, tool.name, None)
            for tool in self.definition.tools
        }


def load_json(path: Path, default: Any) -> Any:
    """Read a JSON data file, returning ``default`` if it does not exist yet."""
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except json.JSONDecodeError as e:
        log.error(f"{path} is not valid JSON: {e}")
        raise ToolError(f"Data file {path.name} is corrupt") from e


def save_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    atomic_write_json(path, data)
