"""
Innsyn: requests for access to archived documents.
"""

from postmottak.agents.results import InnsynResult
from postmottak.core.models import MatchResult, Message
from postmottak.handlers.base import ForwardingEmailType, describe_result
from postmottak.handlers.registry import register_email_type

SUBJECTS = ["innsyn"]


@register_email_type
class InnsynEmailType(ForwardingEmailType):
    name = "innsyn"
    title = "Innsyn"
    result_model = InnsynResult
    forward_addresses_setting = "innsyn_forward_addresses"

    def match_criteria(self, message: Message) -> MatchResult:
        subject = (message.subject or "").casefold()
        if not any(keyword in subject for keyword in SUBJECTS):
            return MatchResult.no("Emnet samsvarer ikke med noen av de forventede emnene")

        _, result = self.agent.ask(message.body_content, InnsynResult)
        if result is None or not result.is_innsyn:
            return MatchResult.maybe(
                f"Emne samsvarte med en av de forventede {self.title.lower()}-emnene, "
                f"men AI-resultatet indikerer at det ikke er en {self.title.lower()}-henvendelse."
                f"<br />AI-resultat:<br />{describe_result(result)}"
            )

        return MatchResult.yes(result)
