"""
Productivity agent: calendar events, notes, reminders and tasks.

Everything is stored as JSON under the agent data directory:

    events.json        list of calendar events
    notes/<id>.json    one note per file
    reminders.json     list of reminders
    tasks.json         list of tasks
"""

import logging
import uuid
from datetime import datetime, time as dt_time, timezone
from pathlib import Path
from typing import Any

from agentrelay.agents.base import Agent, load_json, save_json
from agentrelay.errors import ToolError
from agentrelay.reliability import ValidationError, require_string, validate_request_id

log = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_when(value: str, field: str, end_of_day: bool = False) -> datetime:
    """Parse an ISO date or datetime into a naive datetime for comparisons."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ToolError(f"{field} must be an ISO date, got {value!r}") from e
    if end_of_day and len(value) == 10:
        parsed = datetime.combine(parsed.date(), dt_time.max)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class ProductivityAgent(Agent):
    agent_type = "productivity"

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir
        self.notes_dir = data_dir / "notes"
        self.events_file = data_dir / "events.json"
        self.reminders_file = data_dir / "reminders.json"
        self.tasks_file = data_dir / "tasks.json"
        self.notes_dir.mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # Calendar
    # =========================================================================

    def calendar_list_events(self, args: dict[str, Any]) -> dict:
        events = load_json(self.events_file, [])
        start_raw, end_raw = args.get("startDate"), args.get("endDate")
        if start_raw or end_raw:
            start = _parse_when(start_raw, "startDate") if start_raw else datetime.min
            end = _parse_when(end_raw, "endDate", end_of_day=True) if end_raw else datetime.max
            events = [
                e for e in events
                if start <= _parse_when(e["startTime"], "startTime") <= end
            ]
        events.sort(key=lambda e: e["startTime"])
        return {"events": events[:10], "total": len(events)}

    def calendar_create_event(self, args: dict[str, Any]) -> dict:
        title = require_string(args, "title")
        start_time = require_string(args, "startTime")
        end_time = require_string(args, "endTime")
        if _parse_when(end_time, "endTime") < _parse_when(start_time, "startTime"):
            raise ToolError("endTime is before startTime")

        events = load_json(self.events_file, [])
        for event in events:
            if event["title"] == title and event["startTime"] == start_time:
                return {"created": False, "event": event}

        event = {
            "id": uuid.uuid4().hex,
            "title": title,
            "startTime": start_time,
            "endTime": end_time,
            "description": args.get("description") or "",
            "createdAt": _now(),
        }
        events.append(event)
        save_json(self.events_file, events)
        return {"created": True, "event": event}

    # =========================================================================
    # Notes
    # =========================================================================

    def _notes(self) -> list[dict]:
        notes = []
        for path in sorted(self.notes_dir.glob("*.json")):
            note = load_json(path, None)
            if note is not None:
                notes.append(note)
        return notes

    def notes_create(self, args: dict[str, Any]) -> dict:
        title = require_string(args, "title")
        content = require_string(args, "content")
        tags = args.get("tags") or []
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(",") if t.strip()]

        for note in self._notes():
            if note["title"] == title and note["content"] == content:
                return {"created": False, "note": {"id": note["id"], "title": title, "tags": note["tags"]}}

        note = {
            "id": uuid.uuid4().hex,
            "title": title,
            "content": content,
            "tags": [str(t) for t in tags],
            "createdAt": _now(),
            "updatedAt": _now(),
        }
        save_json(self.notes_dir / f"{note['id']}.json", note)
        return {"created": True, "note": {"id": note["id"], "title": title, "tags": note["tags"]}}

    def notes_search(self, args: dict[str, Any]) -> dict:
        query = require_string(args, "query")
        needle = query.lower()
        found = [
            n for n in self._notes()
            if needle in n["title"].lower()
            or needle in n["content"].lower()
            or any(needle in t.lower() for t in n.get("tags", []))
        ]
        return {
            "query": query,
            "found": len(found),
            "notes": [
                {
                    "id": n["id"],
                    "title": n["title"],
                    "preview": n["content"][:100],
                    "tags": n.get("tags", []),
                    "updatedAt": n.get("updatedAt"),
                }
                for n in found
            ],
        }

    def notes_read(self, args: dict[str, Any]) -> dict:
        try:
            note_id = validate_request_id(args.get("noteId"))
        except ValidationError as e:
            raise ToolError(f"Invalid noteId: {e}") from e
        note = load_json(self.notes_dir / f"{note_id}.json", None)
        if note is None:
            raise ToolError(f"Note not found: {note_id}")
        return {"note": note}

    # =========================================================================
    # Reminders
    # =========================================================================

    def reminder_create(self, args: dict[str, Any]) -> dict:
        message = require_string(args, "message")
        remind_at = _parse_when(require_string(args, "datetime"), "datetime").isoformat()

        reminders = load_json(self.reminders_file, [])
        for reminder in reminders:
            if reminder["message"] == message and reminder["remindAt"] == remind_at:
                return {"created": False, "reminder": reminder}

        reminder = {
            "id": uuid.uuid4().hex,
            "message": message,
            "remindAt": remind_at,
            "sent": False,
            "createdAt": _now(),
        }
        reminders.append(reminder)
        save_json(self.reminders_file, reminders)
        return {"created": True, "reminder": reminder}

    # =========================================================================
    # Tasks
    # =========================================================================

    def tasks_list(self, args: dict[str, Any]) -> dict:
        tasks = load_json(self.tasks_file, [])
        status = (args.get("status") or "all").lower()
        if status != "all":
            tasks = [t for t in tasks if t["status"] == status]
        tasks.sort(key=lambda t: (t["status"] != "pending", PRIORITY_ORDER.get(t["priority"], 1)))
        return {
            "tasks": tasks[:20],
            "total": len(tasks),
            "pending": sum(1 for t in tasks if t["status"] == "pending"),
            "completed": sum(1 for t in tasks if t["status"] == "completed"),
        }

    def tasks_create(self, args: dict[str, Any]) -> dict:
        title = require_string(args, "title")
        due_date = args.get("dueDate") or None
        priority = (args.get("priority") or "medium").lower()
        if priority not in PRIORITY_ORDER:
            raise ToolError(f"priority must be low, medium or high, got {priority!r}")

        tasks = load_json(self.tasks_file, [])
        for task in tasks:
            if task["title"] == title and task["status"] == "pending" and task.get("dueDate") == due_date:
                return {"created": False, "task": task}

        task = {
            "id": uuid.uuid4().hex,
            "title": title,
            "dueDate": due_date,
            "priority": priority,
            "status": "pending",
            "createdAt": _now(),
        }
        tasks.append(task)
        save_json(self.tasks_file, tasks)
        log.info(f"Task created: {title}")
        return {"created": True, "task": task}

    def tasks_complete(self, args: dict[str, Any]) -> dict:
        task_id = require_string(args, "taskId")
        tasks = load_json(self.tasks_file, [])
        for task in tasks:
            if task["id"] == task_id:
                break
        else:
            raise ToolError(f"Task not found: {task_id}")

        if task["status"] != "completed":
            task["status"] = "completed"
            task["completedAt"] = _now()
            save_json(self.tasks_file, tasks)
        return {"completed": True, "task": task}
