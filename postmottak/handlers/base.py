"""
Abstract base classes for email types.

An email type decides whether it owns a message (match_criteria) and then
performs the side effects for it (handle_message). Handlers never touch mail
folders: they return a result text on success and raise on failure, and
set FlowStatus.send_to_arkivarer when retrying cannot help.
"""

import base64
import html
import string
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, ClassVar, NoReturn

from pydantic import BaseModel

from postmottak.config import Settings, require_setting
from postmottak.core.errors import EscalationRequired, FlowValidationError, ResultMissingError
from postmottak.core.flow_status import FlowStatus
from postmottak.core.html import forward_banner, recipient_list
from postmottak.core.models import MatchResult, Message
from postmottak.services.archive import file_extension

if TYPE_CHECKING:
    from postmottak.agents.gemini import AgentClient
    from postmottak.services import ServiceContainer
    from postmottak.services.archive import ArchiveClient
    from postmottak.services.graph import GraphClient


def subject_keyword(subject: str | None, keywords: list[str]) -> str | None:
    """
    First keyword found in a subject, case-insensitive.

    Single-word keywords must equal a whole subject word (surrounding
    punctuation ignored). Multi-word keywords must appear as a phrase.
    """
    words = [word.strip(string.punctuation).casefold() for word in (subject or "").split()]
    phrase = f" {' '.join(words)} "
    for keyword in keywords:
        folded = keyword.casefold().strip()
        if " " in folded:
            if f" {folded} " in phrase:
                return keyword
        elif folded in words:
            return keyword
    return None


def describe_result(result: BaseModel | None) -> str:
    """Agent result rendered for the diagnostics box."""
    if result is None:
        return "null"
    return f"<pre>{html.escape(result.model_dump_json(indent=2))}</pre>"


class BaseEmailType(ABC):
    """Abstract email type interface."""

    name: ClassVar[str]  # Discriminator stored in FlowStatus.type
    title: ClassVar[str]  # Human readable label for audit text
    result_model: ClassVar[type[BaseModel]]
    include_fun_fact: ClassVar[bool] = False

    @classmethod
    def is_enabled(cls, settings: Settings) -> bool:
        return bool(getattr(settings, f"{cls.name}_enabled", True))

    @classmethod
    @abstractmethod
    def create(cls, services: "ServiceContainer") -> "BaseEmailType":
        """Build an instance from the collaborators it needs."""

    @abstractmethod
    def match_criteria(self, message: Message) -> MatchResult:
        """
        Decide whether this email type owns the message.

        Args:
            message: Message to classify

        Returns:
            MatchResult. YES carries the agent result used for handling.
        """

    @abstractmethod
    def handle_message(self, flow: FlowStatus) -> str:
        """
        Perform the workflow for a matched message.

        Must be safe to call again on the same flow after a failure; completed
        sub-steps are recorded on flow.archive and skipped.

        Args:
            flow: Flow state, mutated in place

        Returns:
            HTML result text for the audit banner.
        """

    def _result(self, flow: FlowStatus) -> Any:
        """The flow's classification result as this type's result model."""
        if flow.result is None:
            flow.send_to_arkivarer = True
            raise ResultMissingError(f"{self.title}: flow has no classification result")
        if not isinstance(flow.result, self.result_model):
            flow.result = self.result_model.model_validate(flow.result.model_dump())
        return flow.result

    @staticmethod
    def _escalate(
        flow: FlowStatus,
        message: str,
        error: type[EscalationRequired] = FlowValidationError,
    ) -> NoReturn:
        flow.send_to_arkivarer = True
        raise error(message)


class ArchivingEmailType(BaseEmailType):
    """Email type that files the message as a document in the archive."""

    def __init__(
        self,
        graph: "GraphClient",
        archive: "ArchiveClient",
        agent: "AgentClient",
        settings: Settings,
    ):
        self.graph = graph
        self.archive = archive
        self.agent = agent
        self.settings = settings
        self.epost_inn_category = require_setting(settings, "archive_document_category_epost_inn")

    @classmethod
    def create(cls, services: "ServiceContainer") -> "ArchivingEmailType":
        return cls(services.graph, services.archive, services.agent, services.settings)

    def _document_files(self, message: Message, eml_format: str = "eml") -> list[dict[str, Any]]:
        """The message as .eml plus one file per file attachment."""
        raw = self.graph.get_message_raw(message.id)
        attachments = self.graph.list_attachments(message.id) if message.has_attachments else []

        files = [{
            "Format": eml_format,
            "Status": "F",
            "Title": message.subject,
            "Data": base64.b64encode(raw).decode("ascii"),
            "VersionFormat": "P",
        }]
        for attachment in attachments:
            extension, version_format = file_extension(attachment.name)
            files.append({
                "Format": extension,
                "Status": "F",
                "Title": attachment.name,
                "Data": attachment.content_base64,
                "VersionFormat": version_format,
            })
        return files

    @staticmethod
    def _document_date(message: Message | None = None) -> str:
        if message is not None and message.received_at is not None:
            return message.received_at.isoformat()
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _case_handle_text(case_created: bool) -> str:
        if case_created:
            return "Sak ble også automatisk opprettet siden robåten ikke fant en eksisterende sak."
        return "Robåten fant en eksisterende sak og arkiverte dokumentet i denne."


class ForwardingEmailType(BaseEmailType):
    """
    Email type that forwards the message to a distribution list.

    Forwarding has no external state to check. The orchestrator marks the
    flow handled as soon as this returns, so a failure while filing the
    message never forwards it twice.
    """

    forward_addresses_setting: ClassVar[str]

    def __init__(self, graph: "GraphClient", agent: "AgentClient", settings: Settings):
        self.graph = graph
        self.agent = agent
        self.settings = settings
        self.mailbox = require_setting(settings, "postmottak_upn")
        self.forward_addresses: list[str] = require_setting(settings, self.forward_addresses_setting)

    @classmethod
    def create(cls, services: "ServiceContainer") -> "ForwardingEmailType":
        return cls(services.graph, services.agent, services.settings)

    def handle_message(self, flow: FlowStatus) -> str:
        result = self._result(flow)
        self.graph.forward_message(flow.message.id, self.forward_addresses, forward_banner(result.description))
        return (
            f"Denne e-posten er håndtert av KI på begrunnelse: {result.description}, "
            f"og videresendt til {recipient_list(self.forward_addresses)}"
        )
