"""
Exception hierarchy for Agent Relay.

Relay errors describe the plumbing (stores, network, configuration).
Tool errors describe a capability handler that could not do its job; their
message is shown to the end user as-is, so keep it readable.
"""


class RelayError(Exception):
    """Base class for relay plumbing failures."""


class RelayTransportError(RelayError):
    """The pending queue or response store could not be reached."""


class ConfigError(RelayError):
    """Missing or invalid configuration, raised at startup."""


class ToolError(Exception):
    """A tool handler failed. The message is user-presentable."""


class UnknownToolError(ToolError):
    """No handler is registered for the requested tool name."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")
