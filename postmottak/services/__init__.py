"""External service clients."""

from dataclasses import dataclass, field

from postmottak.agents.gemini import AgentClient
from postmottak.config import Settings, settings as default_settings

from .archive import ArchiveClient
from .auth import TokenProvider
from .flow_store import FlowStatusStore
from .graph import GraphClient
from .minio import MinIOClient
from .statistics import StatisticsClient


@dataclass
class ServiceContainer:
    """Collaborators handed to email types through their create() factory."""

    graph: GraphClient
    archive: ArchiveClient
    agent: AgentClient
    settings: Settings = field(default_factory=lambda: default_settings)


def build_services(settings: Settings | None = None) -> ServiceContainer:
    """Build the production collaborators, sharing one token cache."""
    tokens = TokenProvider()
    return ServiceContainer(
        graph=GraphClient(token_provider=tokens),
        archive=ArchiveClient(token_provider=tokens),
        agent=AgentClient(),
        settings=settings or default_settings,
    )


__all__ = [
    "ArchiveClient",
    "FlowStatusStore",
    "GraphClient",
    "MinIOClient",
    "ServiceContainer",
    "StatisticsClient",
    "TokenProvider",
    "build_services",
]
