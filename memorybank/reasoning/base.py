"""
Contracts for the external reasoning steps.

Extraction turns raw text into atomic facts. Decision compares new facts
against retrieved memories and answers with merge actions. Both are
non-deterministic; the engine only checks that their output has the right
shape, which is what these models encode.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ActionKind(str, Enum):
    """What to do with one fact or one retrieved memory."""
    ADD = "ADD"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    NONE = "NONE"


class ExtractionResult(BaseModel):
    """Extraction response: facts in the order they were found."""
    facts: list[str]


class OldMemory(BaseModel):
    """A retrieved memory as shown to the decision step (temporary id)."""
    id: int
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class MergeAction(BaseModel):
    """
    One decision. ``reference`` is a temporary id from the same call and is
    required for UPDATE and DELETE; ADD and NONE ignore it. On the wire it
    may be spelled either "id" or "reference". ``text`` is always present and
    must be non-blank for ADD and UPDATE, since it becomes the stored content.
    """
    model_config = ConfigDict(populate_by_name=True)

    reference: Optional[int] = Field(default=None, alias="id")
    text: str
    action: ActionKind

    @model_validator(mode="after")
    def _check_action_fields(self) -> "MergeAction":
        if self.action in (ActionKind.UPDATE, ActionKind.DELETE) and self.reference is None:
            raise ValueError(f"{self.action.value} action requires a reference")
        if self.action in (ActionKind.ADD, ActionKind.UPDATE) and not self.text.strip():
            raise ValueError(f"{self.action.value} action requires non-empty text")
        return self


class DecisionResult(BaseModel):
    """Decision response: actions in the order they must be applied."""
    actions: list[MergeAction]


class ExtractionService(ABC):
    """Maps raw input text to an ordered list of atomic facts."""

    @abstractmethod
    async def extract(self, content: str) -> list[str]:
        """Return the facts found in content (possibly none)."""
        pass


class DecisionService(ABC):
    """Decides how new facts merge into already-stored memories."""

    @abstractmethod
    async def decide(
        self,
        new_facts: list[str],
        old_memory: list[OldMemory],
    ) -> list[MergeAction]:
        """Return merge actions in application order."""
        pass
