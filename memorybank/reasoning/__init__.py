"""
Reasoning services: fact extraction and merge decisions.
"""

from .base import (
    ActionKind,
    DecisionResult,
    DecisionService,
    ExtractionResult,
    ExtractionService,
    MergeAction,
    OldMemory,
)
from .llm_services import LLMDecisionService, LLMExtractionService

__all__ = [
    "ActionKind",
    "DecisionResult",
    "DecisionService",
    "ExtractionResult",
    "ExtractionService",
    "MergeAction",
    "OldMemory",
    "LLMDecisionService",
    "LLMExtractionService",
]
