"""
LLM-backed extraction and decision services.

Both ask the provider for JSON, strip any markdown fence the model wraps it
in, and validate it against the response models. Anything that fails to
parse or validate becomes a CollaboratorError so that the caller's add()
aborts before touching the store.
"""

import json
import logging
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import CollaboratorError
from ..llm.base import LLMProvider
from .base import (
    DecisionResult,
    DecisionService,
    ExtractionResult,
    ExtractionService,
    MergeAction,
    OldMemory,
)
from .prompts import (
    FACT_EXTRACTION_PROMPT,
    UPDATE_MEMORY_SYSTEM_PROMPT,
    build_update_memory_prompt,
)

logger = logging.getLogger("memorybank.reasoning")

ModelT = TypeVar("ModelT", bound=BaseModel)


def strip_code_fence(content: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else ""
        content = content.rsplit("```", 1)[0] if "```" in content else content
        content = content.strip()
    return content


def parse_structured(service: str, content: str, model: type[ModelT]) -> ModelT:
    """Parse an LLM JSON reply into ``model`` or raise CollaboratorError."""
    try:
        data = json.loads(strip_code_fence(content))
    except json.JSONDecodeError as e:
        logger.warning(f"{service} returned non-JSON output: {content[:200]!r}")
        raise CollaboratorError(service, f"response is not valid JSON: {e}") from e

    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"{service} returned malformed output: {e.error_count()} error(s)")
        raise CollaboratorError(service, f"response does not match schema: {e}") from e


class LLMExtractionService(ExtractionService):
    """Fact extraction through an LLM provider."""

    def __init__(self, llm: LLMProvider, temperature: float = 0.0, max_tokens: int = 2000):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def extract(self, content: str) -> list[str]:
        response = await self.llm.generate(
            prompt=content,
            system_prompt=FACT_EXTRACTION_PROMPT,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_schema=ExtractionResult,
        )
        result = parse_structured("extraction", response.content, ExtractionResult)
        logger.debug(f"Extracted {len(result.facts)} facts ({response.token_count} tokens)")
        return result.facts


class LLMDecisionService(DecisionService):
    """Merge decisions through an LLM provider."""

    def __init__(self, llm: LLMProvider, temperature: float = 0.0, max_tokens: int = 2000):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def decide(
        self,
        new_facts: list[str],
        old_memory: list[OldMemory],
    ) -> list[MergeAction]:
        response = await self.llm.generate(
            prompt=build_update_memory_prompt(new_facts, old_memory),
            system_prompt=UPDATE_MEMORY_SYSTEM_PROMPT,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_schema=DecisionResult,
        )
        result = parse_structured("decision", response.content, DecisionResult)
        logger.debug(f"Decided {len(result.actions)} actions ({response.token_count} tokens)")
        return result.actions
