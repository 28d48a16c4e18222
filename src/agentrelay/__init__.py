"""Agent Relay - chat messages routed to local capability agents over an async relay."""

__version__ = "0.3.0"
