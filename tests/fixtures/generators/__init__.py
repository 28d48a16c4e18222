"""Agent Relay test fixture generators."""

from .work_item_generator import WorkItemGenerator

__all__ = [
    "WorkItemGenerator",
]
