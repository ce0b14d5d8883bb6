"""
RF13.50: automatic e-mails from regionalforvaltning.no about grant applications.

One result type covers three sub-flows, chosen by the agent-extracted type:

- Overføring av mottatt søknad: find or create the application case and
  archive the message in it.
- Anmodning om utbetaling: same as above, archived as a payment request.
- Automatisk kvittering på innsendt søknad: find the archived application,
  read its sender, and archive the receipt as outgoing mail to that sender.

Every sub-step records its outcome on flow.archive and is skipped when the
flow is resumed after a failure.
"""

import re

from postmottak.agents.results import Rf1350Result
from postmottak.core.errors import ArchiveError, FlowPendingError
from postmottak.core.flow_status import FlowStatus
from postmottak.core.logging import get_logger
from postmottak.core.models import MatchResult, Message
from postmottak.core.records import ArchiveCase, ArchiveProject
from postmottak.handlers.base import ArchivingEmailType, describe_result
from postmottak.handlers.registry import register_email_type

log = get_logger(__name__)

SENDER = "ikkesvar@regionalforvaltning.no"

SUBJECT_PREFIXES = [
    "RF13.50 - Automatisk kvittering på innsendt søknad",
    "RF13.50 - Automatisk epost til arkiv",
]

CASE_STATUSES = {"Under behandling", "Reservert"}

PROJECT_NUMBER = re.compile(r"^(\d{2})-(\d{1,6})$")
REFERENCE_NUMBER = re.compile(r"^(\d{4})-(\d{4})$")

OVERFORING_AV_MOTTATT_SOKNAD = "Overføring av mottatt søknad"
AUTOMATISK_KVITTERING = "Automatisk kvittering på innsendt søknad"
ANMODNING_OM_UTBETALING = "Anmodning om utbetaling"

APPLICATION_DOCUMENT_TITLE = "RF13.50 - Søknad -"

# Cases from earlier years may belong to the former counties
FIRST_CASE_YEAR = 2024


def active_case(cases: list[ArchiveCase]) -> ArchiveCase | None:
    return next((case for case in cases if case.status in CASE_STATUSES), None)


@register_email_type
class Rf1350EmailType(ArchivingEmailType):
    name = "rf1350"
    title = "RF13.50"
    result_model = Rf1350Result
    include_fun_fact = True

    def __init__(self, graph, archive, agent, settings):
        super().__init__(graph, archive, agent, settings)
        self.test_project_number = settings.rf1350_test_project_number

    def match_criteria(self, message: Message) -> MatchResult:
        if not message.sender_email:
            return MatchResult.no("Avsender mangler")

        if message.sender_email != SENDER:
            return MatchResult.no(f"Avsender er ikke {SENDER}. Dette er ikke en {self.title}-e-post")

        subject = (message.subject or "").casefold()
        if not any(subject.startswith(prefix.casefold()) for prefix in SUBJECT_PREFIXES):
            return MatchResult.no(
                f"E-postens emne starter ikke med et gyldig emne for {self.title}. "
                f"Gyldige emner er: {', '.join(SUBJECT_PREFIXES)}"
            )

        _, result = self.agent.ask(message.body_content, Rf1350Result)
        if result is None or not result.type or not result.reference_number:
            return MatchResult.maybe(
                f"Avsender og emne samsvarte med {self.title}, men AI-resultatet mangler type "
                f"eller referansenummer.<br />AI-resultat:<br />{describe_result(result)}"
            )

        if self.test_project_number and result.project_number:
            log.warning(
                "rf1350_test_project_number_override",
                extracted=result.project_number,
                override=self.test_project_number,
            )
            result = result.model_copy(update={"project_number": self.test_project_number})

        return MatchResult.yes(result)

    def handle_message(self, flow: FlowStatus) -> str:
        result: Rf1350Result = self._result(flow)
        sub_type = result.type.strip().casefold()

        if sub_type == OVERFORING_AV_MOTTATT_SOKNAD.casefold():
            return self._handle_application(flow, result, "Søknad", OVERFORING_AV_MOTTATT_SOKNAD)

        if sub_type == AUTOMATISK_KVITTERING.casefold():
            return self._handle_receipt(flow, result)

        if sub_type == ANMODNING_OM_UTBETALING.casefold():
            return self._handle_application(flow, result, ANMODNING_OM_UTBETALING, ANMODNING_OM_UTBETALING)

        self._escalate(flow, f"Unknown {self.title} type {result.type}")

    # Validation

    def _validate_numbers(self, flow: FlowStatus, result: Rf1350Result) -> None:
        if not REFERENCE_NUMBER.match(result.reference_number or ""):
            self._escalate(flow, f"Reference number {result.reference_number!r} is not valid")

        if result.project_number and not PROJECT_NUMBER.match(result.project_number):
            self._escalate(flow, f"Project number {result.project_number!r} is not valid")

    def _validate_application(self, flow: FlowStatus, result: Rf1350Result) -> None:
        self._validate_numbers(flow, result)

        if not result.project_number:
            self._escalate(flow, "Project number is missing")

        if not result.project_owner:
            self._escalate(flow, "Project owner is missing")

        if not result.valid_organization_number():
            self._escalate(flow, f"Organization number {result.organization_number!r} is missing or invalid")

    # Application and payment request

    def _handle_application(self, flow: FlowStatus, result: Rf1350Result, title: str, label: str) -> str:
        self._validate_application(flow, result)
        archive = flow.archive

        if archive.sync_enterprise is None:
            try:
                archive.sync_enterprise = self.archive.sync_enterprise(result.organization_digits)
            except ArchiveError as e:
                # Unknown organization, retrying cannot help
                if e.not_found:
                    flow.send_to_arkivarer = True
                raise

        if not archive.case_number:
            if archive.project is None:
                projects = self.archive.get_projects({"ProjectNumber": result.project_number})
                if not projects:
                    raise FlowPendingError(f"No projects found for project number {result.project_number}")
                archive.project = projects[0]

            cases = self.archive.get_cases({
                "ProjectNumber": result.project_number,
                "Title": f"RF13.50%{result.reference_number}%",
            })
            case = active_case(cases) or self._create_case(flow, result, archive.project)
            if not case.case_number:
                raise ArchiveError(f"Case for reference number {result.reference_number} has no CaseNumber")
            archive.case_number = case.case_number

        if not archive.document_number:
            self._create_document(flow, result, title)

        return (
            f"{label} er automatisk arkivert med dokumentnummer {archive.document_number}. "
            f"{self._case_handle_text(archive.case_created)}"
        )

    def _create_case(self, flow: FlowStatus, result: Rf1350Result, project: ArchiveProject) -> ArchiveCase:
        year = int(result.reference_number.split("-")[0])
        if year < FIRST_CASE_YEAR:
            self._escalate(
                flow,
                f"The year {year} indicates a case from before {FIRST_CASE_YEAR}. "
                "Message must be handled manually by arkivarer.",
            )

        responsible_email = project.responsible_person.email if project.responsible_person else None
        if not responsible_email:
            raise FlowPendingError(f"Responsible person email is missing from project {result.project_number}")

        case = self.archive.create_case({
            "ArchiveCodes": [
                {"ArchiveCode": "243", "ArchiveType": "FELLESKLASSE PRINSIPP", "Sort": 1},
                {"ArchiveCode": "U01", "ArchiveType": "FAGKLASSE PRINSIPP", "Sort": 2},
            ],
            "Project": result.project_number,
            "ResponsiblePersonEmail": responsible_email,
            "Status": "B",
            "Title": (
                f"RF13.50 - Søknad - {result.project_name} - "
                f"{result.reference_number} - {result.project_owner}"
            ),
        })
        flow.archive.case_created = True
        return case

    def _create_document(self, flow: FlowStatus, result: Rf1350Result, title: str) -> None:
        archive = flow.archive
        project = archive.project

        document = self.archive.create_document({
            "Archive": "Saksdokument",
            "CaseNumber": archive.case_number,
            "Category": self.epost_inn_category,
            "Contacts": [
                {"ReferenceNumber": archive.sync_enterprise.enterprise_number, "Role": "Avsender"},
            ],
            "DocumentDate": self._document_date(flow.message),
            "Files": self._document_files(flow.message),
            "ResponsiblePersonEmail": (
                project.responsible_person.email if project and project.responsible_person else None
            ),
            "Status": "J",
            "Title": (
                f"RF13.50 - {title} - {result.project_name} - "
                f"{result.reference_number} - {result.project_owner}"
            ),
        })
        archive.document_number = document.document_number

    # Receipt

    def _handle_receipt(self, flow: FlowStatus, result: Rf1350Result) -> str:
        self._validate_numbers(flow, result)
        archive = flow.archive

        if not archive.case_number or archive.soknad_sender is None or archive.case is None:
            case = active_case(self.archive.get_cases({"Title": f"RF13.50%{result.reference_number}%"}))
            if case is None or not case.documents:
                raise FlowPendingError(
                    f"No case or documents found for reference number {result.reference_number}. "
                    "Waiting for the application to be archived."
                )
            archive.case = case
            if not archive.case_number:
                archive.case_number = case.case_number

            category = self.epost_inn_category.replace("recno:", "")
            case_document = next(
                (
                    document for document in case.documents
                    if (document.document_title or "").casefold().startswith(APPLICATION_DOCUMENT_TITLE.casefold())
                    and document.category is not None
                    and document.category.recno == category
                ),
                None,
            )
            if case_document is None:
                raise FlowPendingError(
                    f"No document with title starting with {APPLICATION_DOCUMENT_TITLE} "
                    f"found on case {archive.case_number}"
                )

            documents = self.archive.get_documents({"DocumentNumber": case_document.document_number})
            if not documents or not documents[0].contacts:
                self._escalate(flow, f"No document or contacts found for document {case_document.document_number}")

            sender = next((contact for contact in documents[0].contacts if contact.role == "Avsender"), None)
            if sender is None or not sender.reference_number:
                self._escalate(flow, f"No sender with reference number on document {case_document.document_number}")
            archive.soknad_sender = sender

        if not archive.document_number:
            case = archive.case
            document = self.archive.create_document({
                "Archive": "Saksdokument",
                "CaseNumber": archive.case_number,
                "Category": "E-post ut",
                "Contacts": [
                    {"ReferenceNumber": archive.soknad_sender.reference_number, "Role": "Mottaker"},
                ],
                "DocumentDate": self._document_date(flow.message),
                "Files": self._document_files(flow.message),
                "ResponsiblePersonEmail": case.responsible_person.email if case.responsible_person else None,
                "Status": "J",
                "Title": "RF13.50 - Kvittering på søknad",
            })
            archive.document_number = document.document_number

        return f"Kvittering på søknad er automatisk arkivert med dokumentnummer {archive.document_number}."
