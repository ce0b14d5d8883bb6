"""
Resumable per-message flow state.

A FlowStatus is created when a message is first matched, persisted to blob
storage when handling fails, and reloaded on later polls until the flow
succeeds or is escalated.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel

from postmottak.core.errors import WriteOnceViolation
from postmottak.core.models import Message
from postmottak.core.records import (
    ArchiveCase,
    ArchiveProject,
    DocumentContact,
    Enterprise,
)

FLOW_STATUS_SUFFIX = "-flowstatus.json"

# Completion markers for sub-steps. Set once per flow, never overwritten.
WRITE_ONCE_FIELDS = frozenset({"case_number", "document_number"})

_RECORD_FIELDS = {
    "sync_enterprise": ("syncEnterprise", Enterprise),
    "project": ("project", ArchiveProject),
    "case": ("case", ArchiveCase),
    "soknad_sender": ("soknadSender", DocumentContact),
}


@dataclass
class ArchiveStatus:
    """Side effects accumulated by a flow, memoized across attempts."""

    case_number: str | None = None
    document_number: str | None = None
    case_created: bool = False
    receipt_sent: bool = False
    sync_enterprise: Enterprise | None = None
    project: ArchiveProject | None = None
    case: ArchiveCase | None = None
    soknad_sender: DocumentContact | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name in WRITE_ONCE_FIELDS:
            current = getattr(self, name, None)
            if current and value != current:
                raise WriteOnceViolation(f"{name} is already set to {current}, refusing {value}")
        super().__setattr__(name, value)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "caseNumber": self.case_number,
            "documentNumber": self.document_number,
            "caseCreated": self.case_created,
            "receiptSent": self.receipt_sent,
        }
        for attr, (key, _) in _RECORD_FIELDS.items():
            record = getattr(self, attr)
            data[key] = record.dump() if record is not None else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ArchiveStatus":
        data = data or {}
        records = {
            attr: model.model_validate(data[key]) if data.get(key) is not None else None
            for attr, (key, model) in _RECORD_FIELDS.items()
        }
        return cls(
            case_number=data.get("caseNumber"),
            document_number=data.get("documentNumber"),
            case_created=bool(data.get("caseCreated")),
            receipt_sent=bool(data.get("receiptSent")),
            **records,
        )


@dataclass
class FlowStatus:
    """
    Resumable unit of work for one message.

    Identified by (message id, type). `result` holds the email type's
    classification result, typed as that email type's result model.
    """

    type: str
    message: Message
    result: BaseModel | None = None
    archive: ArchiveStatus = field(default_factory=ArchiveStatus)
    run_count: int = 0
    retry_after: datetime | None = None
    send_to_arkivarer: bool = False
    error_message: str | None = None
    error_stack: str | None = None
    finished: datetime | None = None
    # Handler result text, set once handle_message has succeeded. Only filing remains.
    handled_result: str | None = None

    @classmethod
    def new(cls, email_type: str, message: Message, result: BaseModel | None = None) -> "FlowStatus":
        return cls(type=email_type, message=message, result=result)

    def is_due(self, now: datetime) -> bool:
        """True when the flow may run now."""
        return self.retry_after is None or self.retry_after <= now

    def record_failure(self, error: BaseException, stack: str | None = None) -> None:
        """Count a failed attempt and keep its diagnostics."""
        self.run_count += 1
        self.error_message = str(error) or type(error).__name__
        self.error_stack = stack

    def blob_name(self, namespace: str) -> str:
        return blob_name(namespace, self.type, self.message.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message.to_graph(),
            "result": self.result.model_dump(mode="json") if self.result is not None else None,
            "archive": self.archive.to_dict(),
            "runCount": self.run_count,
            "retryAfter": self.retry_after.isoformat() if self.retry_after else None,
            "sendToArkivarerForHandling": self.send_to_arkivarer,
            "errorMessage": self.error_message,
            "errorStack": self.error_stack,
            "finished": self.finished.isoformat() if self.finished else None,
            "handledResult": self.handled_result,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        result_model: type[BaseModel] | None = None,
    ) -> "FlowStatus":
        """
        Create FlowStatus from stored JSON.

        Args:
            data: Parsed blob content
            result_model: Result model of the owning email type. The stored
                result is validated into it; without it the result is dropped.
        """
        raw_result = data.get("result")
        result = None
        if raw_result is not None and result_model is not None:
            result = result_model.model_validate(raw_result)

        retry_after = data.get("retryAfter")
        finished = data.get("finished")

        return cls(
            type=data["type"],
            message=Message.from_graph(data["message"]),
            result=result,
            archive=ArchiveStatus.from_dict(data.get("archive")),
            run_count=int(data.get("runCount") or 0),
            retry_after=datetime.fromisoformat(retry_after) if retry_after else None,
            send_to_arkivarer=bool(data.get("sendToArkivarerForHandling")),
            error_message=data.get("errorMessage"),
            error_stack=data.get("errorStack"),
            finished=datetime.fromisoformat(finished) if finished else None,
            handled_result=data.get("handledResult"),
        )


def blob_name(namespace: str, email_type: str, message_id: str) -> str:
    """Blob key for a flow: {namespace}/{type}/{messageId}-flowstatus.json."""
    return f"{namespace}/{email_type}/{message_id}{FLOW_STATUS_SUFFIX}"


def next_retry_after(run_count: int, intervals: list[int], now: datetime) -> datetime | None:
    """
    When a flow that has failed `run_count` times may run again.

    Returns None once the retry schedule is exhausted (run_count > len(intervals)).
    """
    if run_count < 1 or run_count > len(intervals):
        return None
    return now + timedelta(minutes=intervals[run_count - 1])
