"""
Email type registry.

Email types register under their `name`, the discriminator persisted in
FlowStatus.type, so a stored flow can be resumed with the same type.
Classification tries the enabled types in the configured priority order and
stops at the first YES.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Type

from pydantic import BaseModel

from postmottak.core.errors import UnknownEmailTypeError
from postmottak.core.flow_status import FlowStatus
from postmottak.core.html import diagnostics_line, html_box
from postmottak.core.logging import get_logger
from postmottak.core.models import MatchOutcome, Message, UnknownMessage
from postmottak.handlers.base import BaseEmailType

if TYPE_CHECKING:
    from postmottak.services import ServiceContainer

log = get_logger(__name__)

# Global email type table: name -> class
_email_types: dict[str, Type[BaseEmailType]] = {}


def register_email_type(email_type_class: Type[BaseEmailType]) -> Type[BaseEmailType]:
    """
    Decorator to register an email type class.

    Usage:
        @register_email_type
        class PengetransportenEmailType(ForwardingEmailType):
            name = "pengetransporten"
            ...
    """
    _email_types[email_type_class.name] = email_type_class
    log.debug("email_type_registered", email_type=email_type_class.name)
    return email_type_class


def get_email_type_class(name: str) -> Type[BaseEmailType]:
    try:
        return _email_types[name]
    except KeyError:
        raise UnknownEmailTypeError(f"Email type {name} is not registered")


def get_all_email_types() -> dict[str, Type[BaseEmailType]]:
    """Get all registered email type classes."""
    return _email_types.copy()


def result_model_for(name: str) -> type[BaseModel] | None:
    """Result model of a registered email type, None for unknown names."""
    email_type_class = _email_types.get(name)
    return email_type_class.result_model if email_type_class else None


@dataclass
class Classification:
    """Outcome of classifying one message."""

    email_type: BaseEmailType | None = None
    flow: FlowStatus | None = None
    unknown: UnknownMessage | None = None

    @property
    def matched(self) -> bool:
        return self.email_type is not None


class EmailTypeRegistry:
    """Creates email types and classifies messages."""

    def __init__(
        self,
        services: "ServiceContainer",
        order: list[str] | None = None,
        email_types: dict[str, Type[BaseEmailType]] | None = None,
    ):
        self.services = services
        self.order = order if order is not None else services.settings.email_type_order
        self._email_types = email_types if email_types is not None else get_all_email_types()

    def create_email_type(self, name: str) -> BaseEmailType:
        """Instantiate an email type by its discriminator."""
        email_type_class = self._email_types.get(name)
        if email_type_class is None:
            raise UnknownEmailTypeError(f"Email type {name} is not registered")
        return email_type_class.create(self.services)

    def result_model(self, name: str) -> type[BaseModel] | None:
        email_type_class = self._email_types.get(name)
        return email_type_class.result_model if email_type_class else None

    def enabled_email_types(self) -> list[BaseEmailType]:
        """Fresh instances of the enabled email types, in priority order."""
        instances = []
        for name in self.order:
            email_type_class = self._email_types.get(name)
            if email_type_class is None:
                log.warning("email_type_order_unknown", email_type=name)
                continue
            if not email_type_class.is_enabled(self.services.settings):
                continue
            instances.append(email_type_class.create(self.services))
        return instances

    def classify(self, message: Message) -> Classification:
        """
        Find the email type that owns a message.

        Tries each enabled type in order and stops at the first YES. NO and
        MAYBE reasons are collected into the diagnostics of the returned
        UnknownMessage when nothing matches.
        """
        if not message.body_content or not message.subject:
            log.info("message_missing_subject_or_body", message_id=message.id)
            return Classification(
                unknown=UnknownMessage(
                    message=message,
                    result=html_box("E-posten mangler emne eller innhold"),
                )
            )

        diagnostics = ""
        partial_match = False

        for email_type in self.enabled_email_types():
            match = email_type.match_criteria(message)

            if match.outcome == MatchOutcome.YES:
                log.info("email_type_matched", email_type=email_type.name, message_id=message.id)
                return Classification(
                    email_type=email_type,
                    flow=FlowStatus.new(email_type.name, message, match.result),
                )

            if match.outcome == MatchOutcome.MAYBE:
                partial_match = True
                log.info("email_type_maybe_match", email_type=email_type.name, message_id=message.id)

            if match.reason:
                diagnostics += diagnostics_line(email_type.title, match.reason)

        log.info("email_type_not_found", message_id=message.id, partial_match=partial_match)
        return Classification(
            unknown=UnknownMessage(
                message=message,
                result=html_box(diagnostics) if diagnostics else "",
                partial_match=partial_match,
            )
        )
