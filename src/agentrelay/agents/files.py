"""Files agent: search, read, create, list and organize files under a base directory."""

import logging
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any

from agentrelay.agents.base import Agent
from agentrelay.errors import ToolError
from agentrelay.reliability import atomic_write_text, require_string

log = logging.getLogger(__name__)

MAX_READ_BYTES = 1024 * 1024  # 1MB
MAX_READ_CHARS = 5000
MAX_LIST_ITEMS = 50
MAX_SUBDIR_ITEMS = 10
MAX_SEARCH_DEPTH = 5
SEARCH_IGNORED = {"node_modules", ".git"}

TYPE_EXTENSIONS = {
    "pdf": {"pdf"},
    "doc": {"doc", "docx", "txt", "rtf"},
    "image": {"jpg", "jpeg", "png", "gif", "webp", "svg"},
    "video": {"mp4", "avi", "mov", "mkv", "webm"},
}

ORGANIZE_FOLDERS = {
    "pdf": "PDFs",
    "doc": "Documents", "docx": "Documents", "txt": "Documents",
    "jpg": "Images", "jpeg": "Images", "png": "Images", "gif": "Images",
    "mp4": "Videos", "avi": "Videos", "mov": "Videos",
    "mp3": "Audio", "wav": "Audio", "flac": "Audio",
    "zip": "Archives", "rar": "Archives", "7z": "Archives",
}


def _mtime(path: Path) -> str:
    return datetime.fromtimestamp(path.stat().st_mtime).isoformat(timespec="seconds")


def _size_folder(size: int) -> str:
    if size < 1024 * 1024:
        return "Small (<1MB)"
    if size < 100 * 1024 * 1024:
        return "Medium (1-100MB)"
    return "Large (>100MB)"


class FilesAgent(Agent):
    agent_type = "files"

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir.expanduser().resolve()

    def resolve(self, raw: str) -> Path:
        """Resolve a user path against the base directory, refusing anything outside it."""
        path = Path(raw or "").expanduser()
        if not path.is_absolute():
            path = self.base_dir / path
        path = path.resolve()
        if path != self.base_dir and self.base_dir not in path.parents:
            raise ToolError("Access denied: path outside base directory")
        return path

    def files_search(self, args: dict[str, Any]) -> dict:
        query = require_string(args, "query").lower()
        root = self.resolve(args.get("path") or "")
        file_type = args.get("type") or "all"
        extensions = TYPE_EXTENSIONS.get(file_type)

        matches = []
        root_depth = len(root.parts)
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            if len(current.parts) - root_depth >= MAX_SEARCH_DEPTH:
                dirnames[:] = []
            dirnames[:] = [d for d in dirnames if d not in SEARCH_IGNORED]
            for name in filenames:
                if query not in name.lower():
                    continue
                if extensions and name.rsplit(".", 1)[-1].lower() not in extensions:
                    continue
                full = current / name
                try:
                    matches.append({
                        "name": name,
                        "path": str(full),
                        "size": full.stat().st_size,
                        "modified": _mtime(full),
                    })
                except OSError:
                    continue  # vanished or unreadable
            if len(matches) >= 20:
                break

        return {"query": args["query"], "found": len(matches), "files": matches[:10]}

    def files_read(self, args: dict[str, Any]) -> dict:
        path = self.resolve(require_string(args, "path"))
        if not path.is_file():
            raise ToolError(f"File not found: {path}")
        size = path.stat().st_size
        if size > MAX_READ_BYTES:
            raise ToolError("File too large (max 1MB)")
        content = path.read_text(errors="replace")
        return {
            "path": str(path),
            "name": path.name,
            "size": size,
            "content": content[:MAX_READ_CHARS],
            "truncated": len(content) > MAX_READ_CHARS,
        }

    def files_create(self, args: dict[str, Any]) -> dict:
        path = self.resolve(require_string(args, "path"))
        content = args.get("content")
        if content is None:
            raise ToolError("content is required")
        content = str(content)
        if path.is_dir():
            raise ToolError(f"{path} is a directory")

        existed = path.exists()
        if existed and path.read_text(errors="replace") == content:
            # Same path, same content: a repeated request.
            return {"path": str(path), "name": path.name, "size": len(content), "created": False}

        path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write_text(path, content)
        log.info(f"{'Overwrote' if existed else 'Created'} {path}")
        return {"path": str(path), "name": path.name, "size": len(content), "created": not existed}

    def files_list(self, args: dict[str, Any]) -> dict:
        path = self.resolve(require_string(args, "path"))
        if not path.is_dir():
            raise ToolError(f"Not a directory: {path}")
        recursive = bool(args.get("recursive"))

        items = []
        entries = sorted(e for e in path.iterdir() if not e.name.startswith("."))
        for entry in entries[:MAX_LIST_ITEMS]:
            try:
                is_dir = entry.is_dir()
                items.append({
                    "name": entry.name,
                    "type": "directory" if is_dir else "file",
                    "size": None if is_dir else entry.stat().st_size,
                    "modified": _mtime(entry),
                })
                # one level only
                if recursive and is_dir and len(items) < 100:
                    children = sorted(c for c in entry.iterdir() if not c.name.startswith("."))
                    for child in children[:MAX_SUBDIR_ITEMS]:
                        child_is_dir = child.is_dir()
                        items.append({
                            "name": f"{entry.name}/{child.name}",
                            "type": "directory" if child_is_dir else "file",
                            "size": None if child_is_dir else child.stat().st_size,
                            "modified": _mtime(child),
                        })
            except OSError as e:
                log.debug(f"Skipping {entry}: {e}")

        return {"path": str(path), "totalItems": len(items), "items": items}

    def files_organize(self, args: dict[str, Any]) -> dict:
        source = self.resolve(require_string(args, "sourcePath"))
        organize_by = require_string(args, "organizeBy")
        if organize_by not in ("type", "date", "size"):
            raise ToolError(f"Unknown organize criteria: {organize_by}")
        if not source.is_dir():
            raise ToolError(f"Not a directory: {source}")

        moved = []
        for entry in sorted(source.iterdir()):
            if not entry.is_file() or entry.name.startswith("."):
                continue
            stat = entry.stat()
            if organize_by == "type":
                target_dir = source / ORGANIZE_FOLDERS.get(entry.suffix.lower().lstrip("."), "Others")
            elif organize_by == "date":
                modified = datetime.fromtimestamp(stat.st_mtime)
                target_dir = source / f"{modified.year}" / f"{modified.month:02d}"
            else:
                target_dir = source / _size_folder(stat.st_size)

            target_dir.mkdir(parents=True, exist_ok=True)
            target = target_dir / entry.name
            if target.exists():
                target = target_dir / f"{entry.stem}_{int(time.time() * 1000)}{entry.suffix}"
            entry.rename(target)
            moved.append({"from": entry.name, "to": str(target)})

        log.info(f"Organized {len(moved)} file(s) in {source} by {organize_by}")
        return {
            "organized": True,
            "criteria": organize_by,
            "filesMoved": len(moved),
            "details": moved[:10],
        }
