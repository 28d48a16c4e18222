"""
Communications agent: send, list, read, reply to and draft email.

Mail lives in a local mailbox file (``mail.json`` with inbox/sent/drafts
folders). When SMTP is configured, sent mail is also delivered; otherwise
it is only recorded locally.
"""

import hashlib
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import make_msgid, parseaddr
from pathlib import Path
from typing import Any

from agentrelay.agents.base import Agent, load_json, save_json
from agentrelay.errors import ToolError
from agentrelay.reliability import require_string

log = logging.getLogger(__name__)

FOLDERS = ("inbox", "sent", "drafts")
MAX_BODY_CHARS = 5000


@dataclass(frozen=True)
class SmtpSettings:
    host: str
    port: int = 587
    user: str = ""
    password: str = ""
    sender: str = ""


def _message_key(*parts: str) -> str:
    """Stable id for a message so a repeated request finds the earlier one."""
    return hashlib.sha256("\x1f".join(parts).encode()).hexdigest()[:16]


class CommsAgent(Agent):
    agent_type = "comms"

    def __init__(self, data_dir: Path, smtp: SmtpSettings | None = None):
        self.mailbox_file = data_dir / "mail.json"
        self.smtp = smtp

    def _load(self) -> dict[str, list[dict]]:
        mailbox = load_json(self.mailbox_file, {})
        for folder in FOLDERS:
            mailbox.setdefault(folder, [])
        return mailbox

    def _deliver(self, message: EmailMessage) -> None:
        settings = self.smtp
        try:
            if settings.port == 465:
                server = smtplib.SMTP_SSL(settings.host, settings.port, timeout=30)
            else:
                server = smtplib.SMTP(settings.host, settings.port, timeout=30)
                server.starttls()
            with server:
                if settings.user:
                    server.login(settings.user, settings.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise ToolError(f"Email delivery failed: {e}") from e

    def _send(self, to: str, subject: str, body: str, cc: str = "", in_reply_to: str = "") -> dict:
        key = _message_key(to, subject, body, cc, in_reply_to)
        mailbox = self._load()
        record = next((m for m in mailbox["sent"] if m["id"] == key), None)
        if record is not None and record["status"] == "sent":
            return {"sent": False, "duplicate": True, "email": {"id": key, "to": to, "subject": subject}}

        if record is None:
            record = {
                "id": key,
                "messageId": make_msgid(),
                "from": self.smtp.sender if self.smtp else "me",
                "to": to,
                "cc": cc,
                "subject": subject,
                "body": body,
                "inReplyTo": in_reply_to,
                "date": datetime.now(timezone.utc).isoformat(),
                "read": True,
                "status": "queued",
            }
            mailbox["sent"].append(record)
            save_json(self.mailbox_file, mailbox)

        mode = "local"
        if self.smtp:
            message = EmailMessage()
            message["From"] = record["from"]
            message["To"] = to
            message["Subject"] = subject
            message["Message-ID"] = record["messageId"]
            if cc:
                message["Cc"] = cc
            if in_reply_to:
                message["In-Reply-To"] = in_reply_to
                message["References"] = in_reply_to
            message.set_content(body)
            self._deliver(message)
            mode = "smtp"
            log.info(f"Email delivered to {to}: {subject}")

        record["status"] = "sent"
        save_json(self.mailbox_file, mailbox)
        result = {"sent": True, "mode": mode, "email": {"id": key, "to": to, "subject": subject}}
        if mode == "local":
            result["note"] = "Email saved locally. Configure SMTP for real delivery."
        return result

    def _find(self, mailbox: dict, email_id: str) -> tuple[str, dict]:
        for folder in FOLDERS:
            for message in mailbox[folder]:
                if message["id"] == email_id:
                    return folder, message
        raise ToolError(f"Email not found: {email_id}")

    # =========================================================================
    # Tools
    # =========================================================================

    def email_send(self, args: dict[str, Any]) -> dict:
        return self._send(
            require_string(args, "to"),
            require_string(args, "subject"),
            require_string(args, "body"),
            cc=str(args.get("cc") or ""),
        )

    def email_list(self, args: dict[str, Any]) -> dict:
        folder = args.get("folder") or "inbox"
        if folder not in FOLDERS:
            raise ToolError(f"folder must be one of {', '.join(FOLDERS)}")
        try:
            limit = int(args.get("limit") or 10)
        except (TypeError, ValueError) as e:
            raise ToolError("limit must be a number") from e

        messages = self._load()[folder]
        if args.get("unreadOnly"):
            messages = [m for m in messages if not m.get("read")]
        messages = sorted(messages, key=lambda m: m.get("date", ""), reverse=True)
        return {
            "folder": folder,
            "total": len(messages),
            "emails": [
                {
                    "id": m["id"],
                    "from": m.get("from", ""),
                    "to": m.get("to", ""),
                    "subject": m.get("subject", ""),
                    "date": m.get("date", ""),
                    "snippet": m.get("body", "")[:100],
                    "unread": not m.get("read"),
                }
                for m in messages[:limit]
            ],
        }

    def email_read(self, args: dict[str, Any]) -> dict:
        email_id = require_string(args, "emailId")
        mailbox = self._load()
        folder, message = self._find(mailbox, email_id)
        if not message.get("read"):
            message["read"] = True
            save_json(self.mailbox_file, mailbox)
        body = message.get("body", "")
        return {
            "id": email_id,
            "folder": folder,
            "from": message.get("from", ""),
            "to": message.get("to", ""),
            "subject": message.get("subject", ""),
            "date": message.get("date", ""),
            "body": body[:MAX_BODY_CHARS],
            "truncated": len(body) > MAX_BODY_CHARS,
        }

    def email_reply(self, args: dict[str, Any]) -> dict:
        email_id = require_string(args, "emailId")
        body = require_string(args, "body")
        _, original = self._find(self._load(), email_id)

        to = parseaddr(original.get("from", ""))[1] or original.get("from", "")
        if not to:
            raise ToolError(f"Email {email_id} has no sender to reply to")
        subject = original.get("subject", "")
        if not subject.lower().startswith("re:"):
            subject = f"Re: {subject}"

        result = self._send(to, subject, body, in_reply_to=original.get("messageId", email_id))
        result["inReplyTo"] = email_id
        return result

    def email_draft(self, args: dict[str, Any]) -> dict:
        to = require_string(args, "to")
        subject = require_string(args, "subject")
        body = require_string(args, "body")
        key = _message_key(to, subject, body)

        mailbox = self._load()
        if any(d["id"] == key for d in mailbox["drafts"]):
            return {"created": False, "draft": {"id": key, "to": to, "subject": subject}}

        mailbox["drafts"].append({
            "id": key,
            "messageId": make_msgid(),
            "from": self.smtp.sender if self.smtp else "me",
            "to": to,
            "subject": subject,
            "body": body,
            "date": datetime.now(timezone.utc).isoformat(),
            "read": True,
        })
        save_json(self.mailbox_file, mailbox)
        return {"created": True, "mode": "local", "draft": {"id": key, "to": to, "subject": subject}}
