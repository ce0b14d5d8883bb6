"""
Archive endpoints.

GET  /ArchiveEmails: run one archive cycle now
GET  /ListFolders: list mail folders (or the children of one folder)
POST /AskArntIvan: ask the agent for one of its result shapes
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from postmottak.agents import AGENT_RESULTS, AgentClient
from postmottak.core.errors import ArchiveRunInProgressError
from postmottak.core.logging import get_logger
from postmottak.processors.archive import ArchiveProcessor
from postmottak.services.graph import GraphClient

log = get_logger(__name__)

router = APIRouter()


class AskRequest(BaseModel):
    agent: str
    prompt: str


# Dependencies, overridden in tests

def get_processor() -> ArchiveProcessor:
    return ArchiveProcessor()


def get_graph() -> GraphClient:
    return GraphClient()


def get_agent() -> AgentClient:
    return AgentClient()


@router.get("/ArchiveEmails")
def archive_emails(processor: ArchiveProcessor = Depends(get_processor)) -> dict[str, Any]:
    """Run one archive cycle and return its summary."""
    try:
        summary = processor.process()
    except ArchiveRunInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return summary.to_dict()


@router.get("/ListFolders")
def list_folders(folder_id: str | None = None, graph: GraphClient = Depends(get_graph)) -> list[dict[str, Any]]:
    """Mail folders of the post-room mailbox, for looking up folder ids."""
    if folder_id:
        return graph.list_child_folders(folder_id)
    return graph.list_folders()


@router.post("/AskArntIvan")
def ask_arnt_ivan(request: AskRequest, agent: AgentClient = Depends(get_agent)) -> dict[str, Any]:
    """Ad-hoc probe of an agent result shape."""
    result_type = AGENT_RESULTS.get(request.agent)
    if result_type is None:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown agent: {request.agent}. Valid agents are: {', '.join(AGENT_RESULTS)}",
        )

    history, result = agent.ask(request.prompt, result_type)
    log.info("agent_probe", agent=request.agent, parsed=result is not None)
    return {
        "history": [content.model_dump(mode="json", exclude_none=True) for content in history],
        "result": result.model_dump(mode="json") if result is not None else None,
    }
