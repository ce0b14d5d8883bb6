"""Email processors."""

from .base import BaseProcessor
from .archive import ArchiveProcessor

__all__ = ["BaseProcessor", "ArchiveProcessor"]
