"""Unit tests for core models and configuration helpers."""

import pytest
from datetime import datetime, timezone

from postmottak.config import Settings, require_setting
from postmottak.core.models import (
    ArchiveRunSummary,
    HandledMessage,
    MatchOutcome,
    MatchResult,
    Message,
)
from postmottak.core.records import ArchiveCase


class TestMatchResult:
    """Tests for the three-valued match result."""

    def test_yes_carries_result(self):
        case = ArchiveCase(case_number="24/00001")
        match = MatchResult.yes(case)
        assert match.outcome == MatchOutcome.YES
        assert match.matched is True
        assert match.result is case

    def test_no_and_maybe_are_not_matches(self):
        assert MatchResult.no("nope").matched is False
        assert MatchResult.maybe("perhaps").matched is False
        assert MatchResult.maybe("perhaps").outcome == MatchOutcome.MAYBE
        assert MatchResult.no("nope").reason == "nope"


class TestMessage:
    """Tests for the Graph message mapping."""

    def test_from_graph(self):
        message = Message.from_graph({
            "id": "AAMk-1",
            "subject": "Faktura",
            "body": {"contentType": "HTML", "content": "<p>Hei</p>"},
            "from": {"emailAddress": {"address": "Someone@Example.com", "name": "Someone"}},
            "toRecipients": [
                {"emailAddress": {"address": "test@test.test"}},
                {"emailAddress": {}},
            ],
            "hasAttachments": True,
            "receivedDateTime": "2025-03-01T08:00:00+00:00",
        })

        assert message.id == "AAMk-1"
        assert message.body_content_type == "html"
        assert message.sender_email == "someone@example.com"
        assert message.to_recipients == ["test@test.test"]
        assert message.has_attachments is True
        assert message.received_at == datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)

    def test_to_graph_is_readable_by_from_graph(self, make_message):
        message = make_message(subject="Emne", body="Innhold")
        assert Message.from_graph(message.to_graph()) == message

    def test_is_only_to(self, make_message):
        assert make_message(to=["Test@Test.test"]).is_only_to("test@test.test")
        assert not make_message(to=["rolf@rolf.rolf"]).is_only_to("test@test.test")
        assert not make_message(to=["rolf@rolf.rolf", "test@test.test"]).is_only_to("test@test.test")
        assert not make_message(to=[]).is_only_to("test@test.test")


class TestArchiveRunSummary:
    """Tests for the run summary payload."""

    def test_to_dict(self):
        summary = ArchiveRunSummary()
        summary.handled_messages.append(HandledMessage(message_id="a", type="rf1350"))
        summary.handled_messages.append(HandledMessage(message_id="b", type="innsyn", escalated=True))
        summary.unhandled_message_ids.append("c")
        summary.stats["succeeded"] = 1

        data = summary.to_dict()

        assert data["handledMessages"] == [
            {"messageId": "a", "type": "rf1350", "escalated": False},
            {"messageId": "b", "type": "innsyn", "escalated": True},
        ]
        assert data["unhandledMessageIds"] == ["c"]
        assert data["stats"]["succeeded"] == 1
        assert data["stats"]["errors"] == 0


class TestRequireSetting:
    """Tests for required configuration values."""

    def test_returns_value(self, test_settings):
        assert require_setting(test_settings, "postmottak_upn") == "test@test.test"

    def test_missing_value_names_setting(self):
        settings = Settings(_env_file=None, postmottak_upn="")
        with pytest.raises(ValueError, match="POSTMOTTAK_UPN is required"):
            require_setting(settings, "postmottak_upn")

    def test_archive_scopes_split(self):
        settings = Settings(_env_file=None, archive_scope="api://a/.default, api://b/.default,")
        assert settings.archive_scopes == ["api://a/.default", "api://b/.default"]
