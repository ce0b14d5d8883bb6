"""
Pengetransporten: invoice and payment e-mails, forwarded to accounting.
"""

from postmottak.agents.results import PengetransportenResult
from postmottak.config import Settings
from postmottak.core.logging import get_logger
from postmottak.core.models import MatchResult, Message
from postmottak.handlers.base import ForwardingEmailType, describe_result, subject_keyword
from postmottak.handlers.registry import register_email_type

log = get_logger(__name__)


@register_email_type
class PengetransportenEmailType(ForwardingEmailType):
    """Invoice related e-mail sent directly to the post room."""

    name = "pengetransporten"
    title = "Pengetransporten"
    result_model = PengetransportenResult
    forward_addresses_setting = "pengetransporten_forward_addresses"

    def __init__(self, graph, agent, settings: Settings):
        super().__init__(graph, agent, settings)
        self.subjects = settings.pengetransporten_subjects

    def match_criteria(self, message: Message) -> MatchResult:
        if not message.is_only_to(self.mailbox):
            return MatchResult.no("E-posten er ikke sendt direkte til postmottaket")

        keyword = subject_keyword(message.subject, self.subjects)
        if keyword is None:
            return MatchResult.no("Emnet samsvarer ikke med noen av de forventede fakturarelaterte emnene")

        _, result = self.agent.ask(message.body_content, PengetransportenResult)
        if result is None or not result.is_invoice_related:
            return MatchResult.maybe(
                "Emne samsvarte med en av de forventede fakturarelaterte emnene, "
                f"men AI-resultatet indikerer at det ikke er en {self.title.lower()}-e-post."
                f"<br />AI-resultat:<br />{describe_result(result)}"
            )

        log.debug("invoice_keyword_matched", keyword=keyword, message_id=message.id)
        return MatchResult.yes(result)
