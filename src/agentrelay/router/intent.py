"""
Intent routing and reply formatting.

IntentRouter turns a chat message into either a ToolIntent (run a tool on
the worker) or a DirectReply (answer right away). ResponseFormatter turns a
relay Result back into a chat message.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from agentrelay.agents.catalog import AGENTS, AgentDefinition, find_tool
from agentrelay.relay.models import Result, strict_loads
from agentrelay.router.llm import LLMClient, LLMError

log = logging.getLogger(__name__)

ERROR_REPLY = "❌ There was an error processing your message. Please try again."
GREETING_REPLY = "Hi! How can I help you?"
MAX_REPLY_CHARS = 500


@dataclass(frozen=True)
class ToolIntent:
    tool_name: str
    agent: AgentDefinition
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DirectReply:
    text: str


def _tool_lines() -> str:
    sections = []
    for agent in AGENTS:
        lines = [f'{agent.emoji} {agent.name.upper()} (type: "{agent.type}"):']
        for tool in agent.tools:
            params = ", ".join(
                f"{name}{'*' if p.required else ''}" for name, p in tool.parameters.items()
            )
            lines.append(f"- {tool.name}({params}): {tool.description}")
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


ROUTING_PROMPT = f"""You are the router for a chat assistant backed by capability agents.

Your job:
1. Read the user's message
2. Decide whether it needs one of the agents below
3. If it does, pick the tool and extract its parameters (* = required)

{_tool_lines()}

RULES:
- Greetings and general questions get a direct answer, no agent
- For a concrete action, choose the right agent and tool
- Extract every parameter you can from the message
- If required parameters are missing, list them in missingParams

Reply with JSON in exactly this shape:
{{
  "needsAgent": boolean,
  "agent": "files" | "web" | "productivity" | "comms" | null,
  "tool": "tool_name" | null,
  "params": {{ ...extracted parameters }},
  "directResponse": "reply when no agent is needed" | null,
  "missingParams": ["missing parameter names"] | null
}}"""


def _missing_reply(agent: AgentDefinition | None, missing: list[str]) -> DirectReply:
    emoji = agent.emoji if agent else "🤖"
    bullets = "\n".join(f"• {p}" for p in missing)
    return DirectReply(f"{emoji} I need more information:\n{bullets}")


class IntentRouter:
    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def classify(self, message: str, context: list[str] | None = None) -> ToolIntent | DirectReply:
        context_block = ""
        if context:
            context_block = "Conversation so far:\n" + "\n".join(context) + "\n\n"
        try:
            raw = await self.llm.complete(
                ROUTING_PROMPT,
                f"{context_block}Current message: {message}",
                max_tokens=500,
                temperature=0.1,
                json_mode=True,
            )
            routing = strict_loads(raw)
        except (LLMError, ValueError) as e:
            log.error(f"Routing failed: {e}")
            return DirectReply(ERROR_REPLY)
        if not isinstance(routing, dict):
            log.error(f"Routing returned {type(routing).__name__}, expected an object")
            return DirectReply(ERROR_REPLY)
        return self.interpret(routing)

    @staticmethod
    def interpret(routing: dict) -> ToolIntent | DirectReply:
        """Turn the model's JSON decision into an intent, checked against the catalog."""
        if not routing.get("needsAgent"):
            return DirectReply(routing.get("directResponse") or GREETING_REPLY)

        found = find_tool(routing.get("tool") or "")
        if found is None:
            log.warning(f"Router picked unknown tool {routing.get('tool')!r}")
            return DirectReply("🤖 I couldn't match that to anything I can do. Could you rephrase it?")
        agent, tool = found

        missing = routing.get("missingParams") or []
        params = routing.get("params") or {}
        if not isinstance(params, dict):
            params = {}
        missing = list(missing) + [
            p for p in tool.required
            if p not in missing and params.get(p) in (None, "")
        ]
        if missing:
            return _missing_reply(agent, missing)

        return ToolIntent(tool_name=tool.name, agent=agent, arguments=params)


class ResponseFormatter:
    """Phrases a Result for chat. Summaries use the LLM when one is configured."""

    def __init__(self, llm: LLMClient | None = None):
        self.llm = llm

    async def format(self, intent: ToolIntent, result: Result) -> str:
        if not result.ok:
            return f"❌ Error: {result.error_message}"
        if self.llm is not None:
            try:
                return await self.llm.complete(
                    "You format tool results for a chat app. Turn technical data into a "
                    "clear, short message with a few fitting emoji (max 500 characters). "
                    f"The {intent.agent.name} ({intent.agent.emoji}) ran: {intent.tool_name}",
                    f"Format this result for the user:\n{json.dumps(result.value, default=str)}",
                )
            except LLMError as e:
                log.warning(f"Formatting with LLM failed, using plain rendering: {e}")
        return self.plain(intent, result.value)

    @staticmethod
    def plain(intent: ToolIntent, value: Any) -> str:
        body = json.dumps(value, ensure_ascii=False, default=str)
        if len(body) > MAX_REPLY_CHARS:
            body = body[:MAX_REPLY_CHARS - 3] + "..."
        return f"{intent.agent.emoji} {intent.tool_name} done:\n{body}"
