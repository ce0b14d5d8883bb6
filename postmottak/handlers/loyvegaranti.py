"""
Løyvegaranti: taxi license guarantees from Matrix Insurance.

Each organization has one "Drosjeløyve" case. The guarantee notice is
archived in it; the case is reopened if closed and created if missing.
"""

from postmottak.agents.results import LoyvegarantiResult
from postmottak.core.flow_status import FlowStatus
from postmottak.core.logging import get_logger
from postmottak.core.models import MatchResult, Message
from postmottak.config import require_setting
from postmottak.handlers.base import ArchivingEmailType, describe_result
from postmottak.handlers.registry import register_email_type

log = get_logger(__name__)

SENDER = "post@matrixinsurance.no"

SUBJECT_KEYWORDS = ["Løyve", "Org.nr"]

FORWARDED_PREFIXES = ["Fwd:", "FW:", "Forward:", "Videresend:"]

CASE_STATUSES = {"Under behandling", "Reservert", "Avsluttet"}

CLOSED_STATUS = "Avsluttet"

# Archive contact for Matrix Insurance
SENDER_REFERENCE_NUMBER = "966431695"


@register_email_type
class LoyvegarantiEmailType(ArchivingEmailType):
    name = "loyvegaranti"
    title = "Løyvegaranti"
    result_model = LoyvegarantiResult

    def __init__(self, graph, archive, agent, settings):
        super().__init__(graph, archive, agent, settings)
        self.responsible_enterprise_recno = require_setting(
            settings, "loyvegaranti_responsible_enterprise_recno"
        )

    def match_criteria(self, message: Message) -> MatchResult:
        if not message.sender_email:
            return MatchResult.no("Avsender mangler")

        if message.sender_email != SENDER:
            return MatchResult.no(f"Avsender er ikke {SENDER}. Dette er ikke en {self.title.lower()}-e-post")

        subject = message.subject or ""
        if not any(keyword.casefold() in subject.casefold() for keyword in SUBJECT_KEYWORDS):
            return MatchResult.no(
                f"E-postens emne inneholder ikke et gyldig søkeord for {self.title.lower()}. "
                f"Gyldige søkeord er: {', '.join(SUBJECT_KEYWORDS)}"
            )

        if any(subject.casefold().startswith(prefix.casefold()) for prefix in FORWARDED_PREFIXES):
            return MatchResult.no(
                f"E-postens emne har en ugyldig prefix for {self.title.lower()}. "
                f"Ugyldige prefixer er: {', '.join(FORWARDED_PREFIXES)}"
            )

        _, result = self.agent.ask(subject, LoyvegarantiResult)
        if (
            result is None
            or not result.organization_name
            or not _valid_organization_number(result)
            or result.type is None
        ):
            return MatchResult.maybe(
                f"Avsender og emne samsvarte med {self.title.lower()}, men AI-resultatet indikerer "
                f"at det ikke er en {self.title.lower()}-e-post.<br />AI-resultat:<br />{describe_result(result)}"
            )

        return MatchResult.yes(result.model_copy(update={
            "organization_number": result.organization_number.replace(" ", ""),
        }))

    def handle_message(self, flow: FlowStatus) -> str:
        result: LoyvegarantiResult = self._result(flow)
        archive = flow.archive

        if result.type is None:
            self._escalate(flow, "Løyvegaranti type is missing. Cannot determine document title")
        title = result.type.value

        if not archive.case_number:
            cases = self.archive.get_cases({
                "ArchiveCode": result.organization_number,
                "Title": f"Drosjeløyve - % - {result.organization_number}%",
            })
            case = next((c for c in cases if c.status in CASE_STATUSES), None)

            if case is not None and case.status == CLOSED_STATUS:
                self.archive.update_case({"CaseNumber": case.case_number, "Status": "B"})
                log.info("archive_case_reopened", case_number=case.case_number)

            if case is None:
                case = self.archive.create_case({
                    "AccessCode": "U",
                    "AccessGroup": "Alle",
                    "ArchiveCodes": [
                        {
                            "ArchiveCode": result.organization_number,
                            "ArchiveType": "ORG",
                            "IsManualText": True,
                            "Sort": 1,
                        },
                        {"ArchiveCode": "N12", "ArchiveType": "FAGKLASSE PRINSIPP", "Sort": 2},
                        {"ArchiveCode": "&18", "ArchiveType": "TILLEGGSKODE PRINSIPP", "Sort": 3},
                    ],
                    "CaseType": "Sak",
                    "ResponsibleEnterpriseRecno": self.responsible_enterprise_recno,
                    "Status": "B",
                    "SubArchive": "Løyver",
                    "Title": f"Drosjeløyve - {result.organization_name} - {result.organization_number}",
                })
                archive.case_created = True

            archive.case_number = case.case_number

        if not archive.document_number:
            document = self.archive.create_document({
                "Archive": "Saksdokument",
                "CaseNumber": archive.case_number,
                "Category": self.epost_inn_category,
                "Contacts": [{"ReferenceNumber": SENDER_REFERENCE_NUMBER, "Role": "Avsender"}],
                "DocumentDate": self._document_date(flow.message),
                "Files": self._document_files(flow.message, eml_format="EML"),
                "ResponsibleEnterpriseRecno": self.responsible_enterprise_recno,
                "Status": "J",
                "Title": f"{title} - {result.organization_name} - {result.organization_number}",
            })
            archive.document_number = document.document_number

        return (
            f"{title} er automatisk arkivert med dokumentnummer {archive.document_number}. "
            f"{self._case_handle_text(archive.case_created)}"
        )


def _valid_organization_number(result: LoyvegarantiResult) -> bool:
    number = result.organization_number.replace(" ", "")
    return len(number) == 9 and number.isdigit()
