"""
Shared pytest fixtures for postmottak tests.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from postmottak.config import Settings
from postmottak.core.models import Message
from postmottak.core.records import ArchiveDocument
from postmottak.services import ServiceContainer

MAILBOX = "test@test.test"


@pytest.fixture
def test_settings() -> Settings:
    """Settings with every handler enabled and all required values present."""
    return Settings(
        _env_file=None,
        postmottak_upn=MAILBOX,
        mail_folder_inbox_id="inbox-id",
        mail_folder_finished_id="finished-id",
        mail_folder_arkivarer_id="arkivarer-id",
        mail_folder_maybe_id="maybe-id",
        mail_folder_unknown_id="unknown-id",
        archive_document_category_epost_inn="recno:200",
        retry_intervals_minutes=[15, 60],
        rf1350_enabled=True,
        loyvegaranti_enabled=True,
        loyvegaranti_responsible_enterprise_recno="506",
        pengetransporten_enabled=True,
        pengetransporten_forward_addresses=["faktura@test.test"],
        innsyn_enabled=True,
        innsyn_forward_addresses=["innsyn@test.test"],
        case_number_enabled=True,
    )


@pytest.fixture
def mock_graph():
    """Mail transport without network access."""
    graph = MagicMock()
    graph.get_message_raw.return_value = b"From: someone\r\n\r\nbody"
    graph.list_attachments.return_value = []
    graph.list_messages.return_value = []
    return graph


@pytest.fixture
def mock_archive():
    """Archive client returning empty results unless a test says otherwise."""
    archive = MagicMock()
    archive.get_cases.return_value = []
    archive.get_projects.return_value = []
    archive.get_documents.return_value = []
    archive.create_document.return_value = ArchiveDocument(document_number="24/00001-1")
    return archive


@pytest.fixture
def mock_agent():
    """Agent returning no result unless a test says otherwise."""
    agent = MagicMock()
    agent.ask.return_value = ([], None)
    agent.fun_fact.return_value = ""
    return agent


@pytest.fixture
def services(mock_graph, mock_archive, mock_agent, test_settings) -> ServiceContainer:
    return ServiceContainer(
        graph=mock_graph,
        archive=mock_archive,
        agent=mock_agent,
        settings=test_settings,
    )


@pytest.fixture
def make_message():
    """Factory for messages sent to the post-room mailbox."""

    def _make(
        subject: str | None = "Subject",
        body: str | None = "Body",
        sender: str = "sender@example.com",
        to: list[str] | None = None,
        message_id: str = "msg-1",
        **kwargs,
    ) -> Message:
        return Message(
            id=message_id,
            subject=subject,
            body_content=body,
            sender=sender,
            sender_name="Sender",
            to_recipients=to if to is not None else [MAILBOX],
            received_at=datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc),
            **kwargs,
        )

    return _make


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
