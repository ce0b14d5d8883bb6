"""
Abstract base class for email processors.
"""

from abc import ABC, abstractmethod

from postmottak.core.models import ArchiveRunSummary


class BaseProcessor(ABC):
    """Abstract processor interface for mailbox processing runs."""

    @abstractmethod
    def process(self) -> ArchiveRunSummary:
        """
        Process the current inbox snapshot.

        Returns:
            Summary of handled and unhandled messages with counters
        """
        pass
