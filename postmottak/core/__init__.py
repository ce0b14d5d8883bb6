"""Core modules for email classification and archiving."""

from .logging import configure_logging, get_logger, bind_context, clear_context
from .models import (
    MatchOutcome,
    MatchResult,
    Message,
    MailAttachment,
    UnknownMessage,
    HandledMessage,
    ArchiveRunSummary,
)
from .flow_status import ArchiveStatus, FlowStatus

__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "MatchOutcome",
    "MatchResult",
    "Message",
    "MailAttachment",
    "UnknownMessage",
    "HandledMessage",
    "ArchiveRunSummary",
    "ArchiveStatus",
    "FlowStatus",
]
