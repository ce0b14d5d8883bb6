"""Gemini agent and the result shapes it fills in."""

from .gemini import AgentClient
from .results import (
    AGENT_RESULTS,
    FunFactResult,
    GeneralResult,
    InnsynResult,
    LoyvegarantiResult,
    LoyvegarantiType,
    PengetransportenResult,
    Rf1350Result,
)

__all__ = [
    "AgentClient",
    "AGENT_RESULTS",
    "FunFactResult",
    "GeneralResult",
    "InnsynResult",
    "LoyvegarantiResult",
    "LoyvegarantiType",
    "PengetransportenResult",
    "Rf1350Result",
]
