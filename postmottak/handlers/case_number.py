"""
Case number: e-mails that refer to an existing archive case.

The message is archived in the referenced case and the sender gets a
receipt reply.
"""

import re

from postmottak.agents.results import GeneralResult
from postmottak.core.flow_status import FlowStatus
from postmottak.core.models import MatchResult, Message
from postmottak.handlers.base import ArchivingEmailType, describe_result
from postmottak.handlers.registry import register_email_type

CASE_NUMBER = re.compile(r"\b\d{2}/\d{5}\b")

CASE_STATUSES = {"Under behandling", "Reservert"}

TAGS = re.compile(r"<[^>]+>")


def find_case_number(message: Message) -> str | None:
    """First case number (NN/NNNNN) in the subject or body."""
    for text in (message.subject or "", TAGS.sub(" ", message.body_content or "")):
        found = CASE_NUMBER.search(text)
        if found:
            return found.group(0)
    return None


@register_email_type
class CaseNumberEmailType(ArchivingEmailType):
    name = "case_number"
    title = "Saksnummer"
    result_model = GeneralResult

    def match_criteria(self, message: Message) -> MatchResult:
        case_number = find_case_number(message)
        if case_number is None:
            return MatchResult.no("Emnet eller innholdet inneholder ikke et saksnummer")

        _, result = self.agent.ask(f"{message.subject}\n\n{message.body_content}", GeneralResult)
        if result is None or not result.case_number or not CASE_NUMBER.fullmatch(result.case_number.strip()):
            return MatchResult.maybe(
                f"E-posten inneholder saksnummeret {case_number}, men AI-resultatet bekrefter det ikke."
                f"<br />AI-resultat:<br />{describe_result(result)}"
            )

        return MatchResult.yes(result.model_copy(update={"case_number": result.case_number.strip()}))

    def handle_message(self, flow: FlowStatus) -> str:
        result: GeneralResult = self._result(flow)
        archive = flow.archive
        message = flow.message

        if result.contains_sensitive_data:
            categories = ", ".join(result.sensitive_data_categories) or "ukjent"
            self._escalate(flow, f"Message contains sensitive data ({categories})")

        if not archive.case_number:
            cases = self.archive.get_cases({"CaseNumber": result.case_number})
            case = next((c for c in cases if c.status in CASE_STATUSES), None)
            if case is None:
                self._escalate(flow, f"No active case found for case number {result.case_number}")
            archive.case = case
            archive.case_number = case.case_number

        if not archive.document_number:
            case = archive.case
            document = self.archive.create_document({
                "Archive": "Saksdokument",
                "CaseNumber": archive.case_number,
                "Category": self.epost_inn_category,
                "UnregisteredContacts": [{
                    "ContactName": message.sender_name or message.sender_email,
                    "ContactEmail": message.sender_email,
                    "Role": "Avsender",
                }],
                "DocumentDate": self._document_date(message),
                "Files": self._document_files(message),
                "ResponsiblePersonEmail": (
                    case.responsible_person.email if case and case.responsible_person else None
                ),
                "Status": "J",
                "Title": result.title or message.subject,
            })
            archive.document_number = document.document_number

        if not archive.receipt_sent:
            self.graph.reply_message(
                message.id,
                f"Takk for din henvendelse. E-posten er arkivert på sak {archive.case_number} "
                f"med dokumentnummer {archive.document_number}.",
            )
            archive.receipt_sent = True

        return (
            f"E-posten er automatisk arkivert på sak {archive.case_number} med dokumentnummer "
            f"{archive.document_number}, og avsender har fått kvittering."
        )
