"""Unit tests for the Løyvegaranti and case number email types."""

import pytest

from postmottak.agents.results import GeneralResult, LoyvegarantiResult, LoyvegarantiType
from postmottak.core.errors import FlowValidationError
from postmottak.core.flow_status import FlowStatus
from postmottak.core.models import MatchOutcome
from postmottak.core.records import ArchiveCase, ArchiveDocument, ResponsiblePerson
from postmottak.handlers import CaseNumberEmailType, LoyvegarantiEmailType
from postmottak.handlers.case_number import find_case_number

MATRIX = "post@matrixinsurance.no"


def guarantee(**overrides) -> LoyvegarantiResult:
    values = {
        "description": "Ny løyvegaranti",
        "organization_name": "TAXI AS",
        "organization_number": "123 456 789",
        "title": "Løyvegaranti",
        "type": LoyvegarantiType.LOYVEGARANTI,
    }
    values.update(overrides)
    return LoyvegarantiResult(**values)


class TestLoyvegarantiMatch:
    """Tests for LoyvegarantiEmailType.match_criteria."""

    @pytest.fixture
    def email_type(self, services):
        return LoyvegarantiEmailType.create(services)

    def test_match_normalizes_organization_number(self, email_type, services, make_message):
        services.agent.ask.return_value = ([], guarantee())

        match = email_type.match_criteria(make_message(subject="Løyvegaranti TAXI AS Org.nr 123 456 789", sender=MATRIX))

        assert match.outcome == MatchOutcome.YES
        assert match.result.organization_number == "123456789"

    def test_wrong_sender(self, email_type, services, make_message):
        match = email_type.match_criteria(make_message(subject="Løyvegaranti"))

        assert match.outcome == MatchOutcome.NO
        services.agent.ask.assert_not_called()

    @pytest.mark.parametrize("subject", ["Forsikring", "Fwd: Løyvegaranti", "VIDERESEND: Org.nr 123456789"])
    def test_subject_rejected(self, email_type, services, make_message, subject):
        match = email_type.match_criteria(make_message(subject=subject, sender=MATRIX))

        assert match.outcome == MatchOutcome.NO
        services.agent.ask.assert_not_called()

    @pytest.mark.parametrize("result", [
        None,
        guarantee(organization_name=""),
        guarantee(organization_number="1234"),
        guarantee(type=None),
    ])
    def test_incomplete_result_is_maybe(self, email_type, services, make_message, result):
        services.agent.ask.return_value = ([], result)

        match = email_type.match_criteria(make_message(subject="Løyvegaranti", sender=MATRIX))

        assert match.outcome == MatchOutcome.MAYBE

    def test_requires_responsible_enterprise(self, services):
        services.settings.loyvegaranti_responsible_enterprise_recno = ""
        with pytest.raises(ValueError, match="LOYVEGARANTI_RESPONSIBLE_ENTERPRISE_RECNO"):
            LoyvegarantiEmailType.create(services)


class TestLoyvegarantiHandle:
    """Tests for archiving a guarantee notice."""

    @pytest.fixture
    def flow(self, make_message):
        return FlowStatus.new(
            "loyvegaranti",
            make_message(subject="Løyvegaranti", sender=MATRIX),
            guarantee(organization_number="123456789"),
        )

    def test_creates_case_when_missing(self, services, mock_archive, flow):
        mock_archive.create_case.return_value = ArchiveCase(case_number="25/00100")

        text = LoyvegarantiEmailType.create(services).handle_message(flow)

        mock_archive.get_cases.assert_called_once_with({
            "ArchiveCode": "123456789",
            "Title": "Drosjeløyve - % - 123456789%",
        })
        case_parameter = mock_archive.create_case.call_args.args[0]
        assert case_parameter["Title"] == "Drosjeløyve - TAXI AS - 123456789"
        assert case_parameter["ResponsibleEnterpriseRecno"] == "506"

        document_parameter = mock_archive.create_document.call_args.args[0]
        assert document_parameter["CaseNumber"] == "25/00100"
        assert document_parameter["Title"] == "Løyvegaranti - TAXI AS - 123456789"
        assert document_parameter["Files"][0]["Format"] == "EML"
        assert flow.archive.case_created is True
        assert text.startswith("Løyvegaranti er automatisk arkivert")

    def test_reopens_closed_case(self, services, mock_archive, flow):
        mock_archive.get_cases.return_value = [ArchiveCase(case_number="22/00007", status="Avsluttet")]
        flow.result = guarantee(organization_number="123456789", type=LoyvegarantiType.OPPHOR_AV_LOYVEGARANTI)

        LoyvegarantiEmailType.create(services).handle_message(flow)

        mock_archive.update_case.assert_called_once_with({"CaseNumber": "22/00007", "Status": "B"})
        mock_archive.create_case.assert_not_called()
        assert flow.archive.case_number == "22/00007"
        assert mock_archive.create_document.call_args.args[0]["Title"].startswith("Opphør av løyvegaranti")

    def test_open_case_is_used_as_is(self, services, mock_archive, flow):
        mock_archive.get_cases.return_value = [ArchiveCase(case_number="22/00007", status="Under behandling")]

        LoyvegarantiEmailType.create(services).handle_message(flow)

        mock_archive.update_case.assert_not_called()
        mock_archive.create_case.assert_not_called()


class TestCaseNumber:
    """Tests for the case number email type."""

    @pytest.fixture
    def email_type(self, services):
        return CaseNumberEmailType.create(services)

    def test_find_case_number(self, make_message):
        assert find_case_number(make_message(subject="Ang. sak 24/01234")) == "24/01234"
        assert find_case_number(make_message(subject="Hei", body="<p>Gjelder 23/00001</p>")) == "23/00001"
        assert find_case_number(make_message(subject="Hei", body="Tlf 12/3456")) is None

    def test_match(self, email_type, services, make_message):
        services.agent.ask.return_value = ([], GeneralResult(case_number=" 24/01234 ", title="Svar"))

        match = email_type.match_criteria(make_message(subject="Ang. sak 24/01234"))

        assert match.outcome == MatchOutcome.YES
        assert match.result.case_number == "24/01234"

    def test_agent_disagrees_is_maybe(self, email_type, services, make_message):
        services.agent.ask.return_value = ([], GeneralResult(case_number=None))

        match = email_type.match_criteria(make_message(subject="Ang. sak 24/01234"))

        assert match.outcome == MatchOutcome.MAYBE

    def test_handle_archives_and_replies_once(self, email_type, services, mock_archive, make_message):
        mock_archive.get_cases.return_value = [
            ArchiveCase(
                case_number="24/01234",
                status="Under behandling",
                responsible_person=ResponsiblePerson(email="saksbehandler@test.test"),
            ),
        ]
        mock_archive.create_document.return_value = ArchiveDocument(document_number="24/01234-5")
        flow = FlowStatus.new("case_number", make_message(), GeneralResult(case_number="24/01234", title="Svar"))

        email_type.handle_message(flow)
        email_type.handle_message(flow)

        parameter = mock_archive.create_document.call_args.args[0]
        assert parameter["UnregisteredContacts"][0]["ContactEmail"] == "sender@example.com"
        assert parameter["ResponsiblePersonEmail"] == "saksbehandler@test.test"
        mock_archive.create_document.assert_called_once()
        services.graph.reply_message.assert_called_once()
        assert flow.archive.receipt_sent is True

    def test_sensitive_data_escalates(self, email_type, mock_archive, make_message):
        flow = FlowStatus.new(
            "case_number",
            make_message(),
            GeneralResult(case_number="24/01234", contains_sensitive_data=True, sensitive_data_categories=["Helsedata"]),
        )

        with pytest.raises(FlowValidationError, match="Helsedata"):
            email_type.handle_message(flow)

        assert flow.send_to_arkivarer is True
        mock_archive.get_cases.assert_not_called()

    def test_no_active_case_escalates(self, email_type, mock_archive, make_message):
        mock_archive.get_cases.return_value = [ArchiveCase(case_number="24/01234", status="Avsluttet")]
        flow = FlowStatus.new("case_number", make_message(), GeneralResult(case_number="24/01234"))

        with pytest.raises(FlowValidationError):
            email_type.handle_message(flow)
