"""
Agent catalog: every capability agent and the tools it offers.

Shared by the intent router (to describe tools to the LLM), the dispatcher
(to check handlers at startup) and the MCP tool server (for input schemas).
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Param:
    type: str
    description: str
    required: bool = False
    enum: tuple[str, ...] = ()


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    parameters: dict[str, Param] = field(default_factory=dict)

    @property
    def required(self) -> list[str]:
        return [name for name, p in self.parameters.items() if p.required]

    def input_schema(self) -> dict:
        """JSON Schema for the tool's arguments."""
        properties = {}
        for name, p in self.parameters.items():
            prop: dict = {"type": p.type, "description": p.description}
            if p.enum:
                prop["enum"] = list(p.enum)
            properties[name] = prop
        return {"type": "object", "properties": properties, "required": self.required}


@dataclass(frozen=True)
class AgentDefinition:
    type: str
    name: str
    emoji: str
    description: str
    tools: tuple[ToolSpec, ...]


_FILE_TYPES = ("pdf", "doc", "image", "video", "all")

AGENTS: tuple[AgentDefinition, ...] = (
    AgentDefinition(
        type="files",
        name="Files Agent",
        emoji="📁",
        description="Searches, reads, creates and organizes files on your computer",
        tools=(
            ToolSpec("files_search", "Search files by name or content", {
                "query": Param("string", "Text to look for", required=True),
                "path": Param("string", "Directory to search (default: home)"),
                "type": Param("string", "File type", enum=_FILE_TYPES),
            }),
            ToolSpec("files_read", "Read the contents of a file", {
                "path": Param("string", "Full path of the file", required=True),
            }),
            ToolSpec("files_create", "Create a new file with content", {
                "path": Param("string", "Where to create the file", required=True),
                "content": Param("string", "File contents", required=True),
            }),
            ToolSpec("files_list", "List the files in a directory", {
                "path": Param("string", "Directory to list", required=True),
                "recursive": Param("boolean", "Include subdirectories"),
            }),
            ToolSpec("files_organize", "Organize files by type, date or size", {
                "sourcePath": Param("string", "Source directory", required=True),
                "organizeBy": Param("string", "How to group files", required=True,
                                    enum=("type", "date", "size")),
            }),
        ),
    ),
    AgentDefinition(
        type="web",
        name="Web Agent",
        emoji="🌐",
        description="Searches the web, extracts page content and watches pages for changes",
        tools=(
            ToolSpec("web_search", "Search the web", {
                "query": Param("string", "What to search for", required=True),
                "numResults": Param("number", "Number of results (max 10)"),
            }),
            ToolSpec("web_scrape", "Extract the content of a web page", {
                "url": Param("string", "Page URL", required=True),
                "selector": Param("string", "Optional CSS selector"),
            }),
            ToolSpec("web_screenshot", "Take a screenshot of a page", {
                "url": Param("string", "Page URL", required=True),
                "fullPage": Param("boolean", "Capture the full page"),
            }),
            ToolSpec("web_fill_form", "Fill in a web form", {
                "url": Param("string", "Form URL", required=True),
                "fields": Param("object", "Fields to fill in", required=True),
            }),
            ToolSpec("web_monitor", "Watch a page for changes", {
                "url": Param("string", "URL to watch", required=True),
                "selector": Param("string", "CSS selector of the element to watch"),
                "interval": Param("number", "Interval in minutes"),
            }),
        ),
    ),
    AgentDefinition(
        type="productivity",
        name="Productivity Agent",
        emoji="📅",
        description="Manages calendar, notes, reminders and tasks",
        tools=(
            ToolSpec("calendar_list_events", "Show calendar events", {
                "startDate": Param("string", "Start date (YYYY-MM-DD)"),
                "endDate": Param("string", "End date (YYYY-MM-DD)"),
            }),
            ToolSpec("calendar_create_event", "Create a calendar event", {
                "title": Param("string", "Event title", required=True),
                "startTime": Param("string", "Start date and time (ISO)", required=True),
                "endTime": Param("string", "End date and time (ISO)", required=True),
                "description": Param("string", "Event description"),
            }),
            ToolSpec("notes_create", "Create a note", {
                "title": Param("string", "Note title", required=True),
                "content": Param("string", "Note content", required=True),
                "tags": Param("array", "Tags for the note"),
            }),
            ToolSpec("notes_search", "Search notes", {
                "query": Param("string", "Text to look for", required=True),
            }),
            ToolSpec("notes_read", "Read a specific note", {
                "noteId": Param("string", "Note ID", required=True),
            }),
            ToolSpec("reminder_create", "Create a reminder", {
                "message": Param("string", "Reminder message", required=True),
                "datetime": Param("string", "When to remind (ISO)", required=True),
            }),
            ToolSpec("tasks_list", "List tasks", {
                "status": Param("string", "Filter by status", enum=("pending", "completed", "all")),
            }),
            ToolSpec("tasks_create", "Create a new task", {
                "title": Param("string", "Task title", required=True),
                "dueDate": Param("string", "Due date (YYYY-MM-DD)"),
                "priority": Param("string", "Priority", enum=("low", "medium", "high")),
            }),
            ToolSpec("tasks_complete", "Mark a task as completed", {
                "taskId": Param("string", "Task ID", required=True),
            }),
        ),
    ),
    AgentDefinition(
        type="comms",
        name="Communications Agent",
        emoji="💬",
        description="Sends and manages email",
        tools=(
            ToolSpec("email_send", "Send an email", {
                "to": Param("string", "Recipient", required=True),
                "subject": Param("string", "Subject", required=True),
                "body": Param("string", "Email body", required=True),
                "cc": Param("string", "Carbon copy (CC)"),
            }),
            ToolSpec("email_list", "List emails", {
                "folder": Param("string", "Folder", enum=("inbox", "sent", "drafts")),
                "unreadOnly": Param("boolean", "Unread only"),
                "limit": Param("number", "Maximum number of emails"),
            }),
            ToolSpec("email_read", "Read a full email", {
                "emailId": Param("string", "Email ID", required=True),
            }),
            ToolSpec("email_reply", "Reply to an email", {
                "emailId": Param("string", "ID of the original email", required=True),
                "body": Param("string", "Reply body", required=True),
            }),
            ToolSpec("email_draft", "Create an email draft", {
                "to": Param("string", "Recipient", required=True),
                "subject": Param("string", "Subject", required=True),
                "body": Param("string", "Email body", required=True),
            }),
        ),
    ),
)


def get_agent(agent_type: str) -> AgentDefinition | None:
    for agent in AGENTS:
        if agent.type == agent_type:
            return agent
    return None


def find_tool(tool_name: str) -> tuple[AgentDefinition, ToolSpec] | None:
    """Locate a tool and the agent that owns it."""
    for agent in AGENTS:
        for tool in agent.tools:
            if tool.name == tool_name:
                return agent, tool
    return None
