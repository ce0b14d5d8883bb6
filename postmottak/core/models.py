"""
Data models for email processing.

Uses dataclasses for clean, typed data structures.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


class MatchOutcome(str, Enum):
    """Outcome of matching a message against one email type."""

    YES = "yes"  # Confident match
    NO = "no"  # Not this type
    MAYBE = "maybe"  # Sender/subject matched, agent result did not


@dataclass
class MatchResult:
    """Result from EmailType.match_criteria."""

    outcome: MatchOutcome
    reason: str | None = None
    result: BaseModel | None = None  # Extracted data, only set on YES

    @classmethod
    def yes(cls, result: BaseModel | None = None) -> "MatchResult":
        return cls(MatchOutcome.YES, result=result)

    @classmethod
    def no(cls, reason: str | None = None) -> "MatchResult":
        return cls(MatchOutcome.NO, reason=reason)

    @classmethod
    def maybe(cls, reason: str | None = None) -> "MatchResult":
        return cls(MatchOutcome.MAYBE, reason=reason)

    @property
    def matched(self) -> bool:
        return self.outcome == MatchOutcome.YES


@dataclass
class MailAttachment:
    """File attachment on a message. Content is base64 as delivered by Graph."""

    name: str
    content_base64: str
    content_type: str = "application/octet-stream"


@dataclass
class Message:
    """Mail message snapshot. Owned by the mail transport, never mutated here."""

    id: str
    subject: str | None = None
    body_content: str | None = None
    body_content_type: str = "html"
    sender: str | None = None
    sender_name: str | None = None
    to_recipients: list[str] = field(default_factory=list)
    has_attachments: bool = False
    received_at: datetime | None = None
    conversation_id: str | None = None
    parent_folder_id: str | None = None

    @property
    def sender_email(self) -> str:
        """Lower-cased sender address."""
        return (self.sender or "").strip().lower()

    def is_only_to(self, address: str) -> bool:
        """True when the message is addressed to exactly this one mailbox."""
        return (
            len(self.to_recipients) == 1
            and self.to_recipients[0].strip().lower() == address.strip().lower()
        )

    @classmethod
    def from_graph(cls, data: dict[str, Any]) -> "Message":
        """Create Message from a Graph message resource."""
        body = data.get("body") or {}
        sender = (data.get("from") or {}).get("emailAddress") or {}
        received = data.get("receivedDateTime")

        return cls(
            id=data["id"],
            subject=data.get("subject"),
            body_content=body.get("content"),
            body_content_type=(body.get("contentType") or "html").lower(),
            sender=sender.get("address"),
            sender_name=sender.get("name"),
            to_recipients=[
                r["emailAddress"]["address"]
                for r in data.get("toRecipients") or []
                if (r.get("emailAddress") or {}).get("address")
            ],
            has_attachments=bool(data.get("hasAttachments")),
            received_at=datetime.fromisoformat(received) if received else None,
            conversation_id=data.get("conversationId"),
            parent_folder_id=data.get("parentFolderId"),
        )

    def to_graph(self) -> dict[str, Any]:
        """Convert to the Graph message shape (used for JSON storage)."""
        return {
            "id": self.id,
            "subject": self.subject,
            "body": {"contentType": self.body_content_type, "content": self.body_content},
            "from": {"emailAddress": {"address": self.sender, "name": self.sender_name}},
            "toRecipients": [{"emailAddress": {"address": a}} for a in self.to_recipients],
            "hasAttachments": self.has_attachments,
            "receivedDateTime": self.received_at.isoformat() if self.received_at else None,
            "conversationId": self.conversation_id,
            "parentFolderId": self.parent_folder_id,
        }


@dataclass
class UnknownMessage:
    """A message no email type matched."""

    message: Message
    result: str  # Aggregated HTML diagnostics from every email type tried
    partial_match: bool = False  # At least one email type answered MAYBE


@dataclass
class HandledMessage:
    """A message that reached a terminal state during a run."""

    message_id: str
    type: str
    escalated: bool = False


@dataclass
class ArchiveRunSummary:
    """Result from one archive processor run."""

    handled_messages: list[HandledMessage] = field(default_factory=list)
    unhandled_message_ids: list[str] = field(default_factory=list)
    stats: dict[str, int] = field(default_factory=lambda: {
        "fetched": 0,
        "classified": 0,
        "resumed": 0,
        "succeeded": 0,
        "retry_scheduled": 0,
        "escalated": 0,
        "unknown": 0,
        "skipped": 0,
        "errors": 0,
    })

    def to_dict(self) -> dict[str, Any]:
        return {
            "handledMessages": [
                {"messageId": m.message_id, "type": m.type, "escalated": m.escalated}
                for m in self.handled_messages
            ],
            "unhandledMessageIds": self.unhandled_message_ids,
            "stats": self.stats,
        }
