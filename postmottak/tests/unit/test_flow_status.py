"""Unit tests for FlowStatus state and the retry schedule."""

import json
import pytest
from datetime import datetime, timedelta, timezone

from postmottak.agents.results import Rf1350Result
from postmottak.core.errors import WriteOnceViolation
from postmottak.core.flow_status import (
    ArchiveStatus,
    FlowStatus,
    blob_name,
    next_retry_after,
)
from postmottak.core.records import ArchiveProject, DocumentContact, Enterprise, ResponsiblePerson


class TestWriteOnce:
    """Tests for write-once archive markers."""

    def test_case_number_cannot_be_overwritten(self):
        archive = ArchiveStatus()
        archive.case_number = "24/00001"
        with pytest.raises(WriteOnceViolation):
            archive.case_number = "24/00002"
        assert archive.case_number == "24/00001"

    def test_same_value_is_accepted(self):
        archive = ArchiveStatus(document_number="24/00001-1")
        archive.document_number = "24/00001-1"
        assert archive.document_number == "24/00001-1"

    def test_other_fields_are_mutable(self):
        archive = ArchiveStatus()
        archive.case_created = True
        archive.case_created = False
        assert archive.case_created is False


class TestNextRetryAfter:
    """Tests for the retry schedule."""

    def test_uses_interval_for_run_count(self, now):
        assert next_retry_after(1, [15, 60], now) == now + timedelta(minutes=15)
        assert next_retry_after(2, [15, 60], now) == now + timedelta(minutes=60)

    def test_exhausted_schedule(self, now):
        assert next_retry_after(3, [15, 60], now) is None

    def test_empty_schedule_escalates_first_failure(self, now):
        assert next_retry_after(1, [], now) is None

    def test_zero_run_count(self, now):
        assert next_retry_after(0, [15], now) is None


class TestFlowStatus:
    """Tests for FlowStatus lifecycle helpers and storage format."""

    def test_new_flow(self, make_message):
        flow = FlowStatus.new("rf1350", make_message())
        assert flow.run_count == 0
        assert flow.retry_after is None
        assert flow.archive.case_number is None
        assert flow.send_to_arkivarer is False

    def test_is_due(self, make_message, now):
        flow = FlowStatus.new("rf1350", make_message())
        assert flow.is_due(now)
        flow.retry_after = now + timedelta(minutes=1)
        assert not flow.is_due(now)
        assert flow.is_due(now + timedelta(minutes=1))

    def test_record_failure(self, make_message):
        flow = FlowStatus.new("rf1350", make_message())
        flow.record_failure(RuntimeError("boom"), "stack")
        flow.record_failure(RuntimeError())
        assert flow.run_count == 2
        assert flow.error_message == "RuntimeError"
        assert flow.error_stack is None

    def test_blob_name(self, make_message):
        flow = FlowStatus.new("rf1350", make_message(message_id="AAMk=="))
        assert flow.blob_name("queue") == "queue/rf1350/AAMk==-flowstatus.json"
        assert blob_name("failed", "innsyn", "x") == "failed/innsyn/x-flowstatus.json"

    def test_stored_json_keys(self, make_message, now):
        flow = FlowStatus.new("rf1350", make_message())
        flow.retry_after = now
        flow.send_to_arkivarer = True

        data = json.loads(flow.to_json())

        assert data["type"] == "rf1350"
        assert data["runCount"] == 0
        assert data["retryAfter"] == now.isoformat()
        assert data["sendToArkivarerForHandling"] is True
        assert data["archive"]["caseNumber"] is None
        assert data["message"]["id"] == "msg-1"

    def test_reload_restores_result_and_archive(self, make_message, now):
        flow = FlowStatus.new(
            "rf1350",
            make_message(),
            Rf1350Result(reference_number="2025-0001", type="Overføring av mottatt søknad"),
        )
        flow.archive.case_number = "25/00010"
        flow.archive.case_created = True
        flow.archive.sync_enterprise = Enterprise(enterprise_number="123", name="Org")
        flow.archive.project = ArchiveProject(
            project_number="25-10",
            responsible_person=ResponsiblePerson(email="owner@test.test"),
        )
        flow.archive.soknad_sender = DocumentContact(reference_number="987654321", role="Avsender")
        flow.record_failure(RuntimeError("archive down"), "stack")
        flow.retry_after = now

        loaded = FlowStatus.from_dict(json.loads(flow.to_json()), Rf1350Result)

        assert isinstance(loaded.result, Rf1350Result)
        assert loaded.result.reference_number == "2025-0001"
        assert loaded.archive.case_number == "25/00010"
        assert loaded.archive.case_created is True
        assert loaded.archive.sync_enterprise.enterprise_number == "123"
        assert loaded.archive.project.responsible_person.email == "owner@test.test"
        assert loaded.archive.soknad_sender.reference_number == "987654321"
        assert loaded.run_count == 1
        assert loaded.error_message == "archive down"
        assert loaded.retry_after == now
        assert loaded.message == flow.message

    def test_reload_without_result_model_drops_result(self, make_message):
        flow = FlowStatus.new("gone", make_message(), Rf1350Result(reference_number="2025-0001"))
        loaded = FlowStatus.from_dict(flow.to_dict())
        assert loaded.result is None
        assert loaded.type == "gone"

    def test_handled_marker_survives_reload(self, make_message):
        flow = FlowStatus.new("pengetransporten", make_message())
        assert flow.handled_result is None

        flow.handled_result = "Videresendt til faktura@test.test"
        data = json.loads(flow.to_json())
        loaded = FlowStatus.from_dict(data)

        assert data["handledResult"] == "Videresendt til faktura@test.test"
        assert loaded.handled_result == "Videresendt til faktura@test.test"
        assert loaded.run_count == 0
