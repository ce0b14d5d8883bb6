"""
Exception types raised by email types and collaborators.

The archive processor is the only place that decides between retry and
escalation. It escalates on EscalationRequired (or when a handler has set
FlowStatus.send_to_arkivarer); everything else consumes a retry slot.
"""

from typing import Any


class PostmottakError(Exception):
    """Base class for all application errors."""


class EscalationRequired(PostmottakError):
    """The flow cannot succeed automatically and must go to the archivists."""


class FlowValidationError(EscalationRequired):
    """Extracted data is missing or malformed."""


class ResultMissingError(EscalationRequired):
    """The flow has no classification result to work with."""


class FlowPendingError(PostmottakError):
    """A prerequisite record does not exist yet. Retrying later may succeed."""


class UnknownEmailTypeError(PostmottakError):
    """A persisted flow names an email type that is not registered."""


class WriteOnceViolation(PostmottakError):
    """A write-once archive field was about to be overwritten."""


class ArchiveRunInProgressError(PostmottakError):
    """Another archive run holds the mailbox in this process."""


class ArchiveError(PostmottakError):
    """Error response from the archive API."""

    def __init__(self, message: str, status_code: int | None = None, data: Any = None):
        super().__init__(f"{message} (status {status_code})" if status_code else message)
        self.message = message
        self.status_code = status_code
        self.data = data

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class MailTransportError(PostmottakError):
    """Error response from the mail transport (Microsoft Graph)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(f"{message} (status {status_code})" if status_code else message)
        self.status_code = status_code
