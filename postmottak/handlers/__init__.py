"""Email types."""

from .base import ArchivingEmailType, BaseEmailType, ForwardingEmailType
from .registry import (
    Classification,
    EmailTypeRegistry,
    get_email_type_class,
    register_email_type,
    result_model_for,
)

# Import email types to trigger registration via @register_email_type decorator
from .rf1350 import Rf1350EmailType
from .loyvegaranti import LoyvegarantiEmailType
from .case_number import CaseNumberEmailType
from .innsyn import InnsynEmailType
from .pengetransporten import PengetransportenEmailType

__all__ = [
    "ArchivingEmailType",
    "BaseEmailType",
    "ForwardingEmailType",
    "Classification",
    "EmailTypeRegistry",
    "get_email_type_class",
    "register_email_type",
    "result_model_for",
    "Rf1350EmailType",
    "LoyvegarantiEmailType",
    "CaseNumberEmailType",
    "InnsynEmailType",
    "PengetransportenEmailType",
]
