"""Prompts for the LLM-backed extraction and decision steps."""

import json

from .base import OldMemory

FACT_EXTRACTION_PROMPT = """You are a personal information organizer. You read a piece of text and pull out the durable facts it states about the user: preferences, personal details, plans, relationships, habits, opinions and professional details.

RULES:
- Each fact is one short, self-contained statement ("lives in Paris", "is allergic to peanuts").
- Keep facts in the order they appear in the text.
- Do not invent facts. Skip greetings, small talk and anything not stated.
- Write facts in the same language as the input.
- If there is nothing worth remembering, return an empty list.

Respond with ONLY a JSON object of the form: {"facts": ["fact one", "fact two"]}"""


UPDATE_MEMORY_SYSTEM_PROMPT = """You are a smart memory manager. You keep a bank of short facts accurate and free of duplicates.

You receive the EXISTING MEMORIES (each with an integer id) and a list of NEW FACTS. For every new fact decide one operation:

- ADD: the fact is new information not present in any existing memory. Set "text" to the fact. Use id 0; it is ignored.
- UPDATE: the fact refines or corrects an existing memory. Set "id" to that memory's id and "text" to the merged, up-to-date statement. Prefer the statement carrying more information.
- DELETE: the fact contradicts an existing memory, which must be removed. Set "id" to that memory's id and "text" to the memory being removed.
- NONE: the fact is already captured. Set "id" to the matching memory's id and "text" to its content.

RULES:
- Only use ids that appear in EXISTING MEMORIES. Never make up an id.
- Existing memories untouched by any new fact need no action.
- Order the actions as they should be applied.

Respond with ONLY a JSON object of the form:
{"actions": [{"id": 0, "text": "...", "action": "ADD" | "UPDATE" | "DELETE" | "NONE"}]}"""


def build_update_memory_prompt(new_facts: list[str], old_memory: list[OldMemory]) -> str:
    """Render the decision request as the user prompt."""
    existing = [memory.model_dump() for memory in old_memory]
    return (
        "EXISTING MEMORIES:\n"
        f"{json.dumps(existing, ensure_ascii=False, indent=2)}\n\n"
        "NEW FACTS:\n"
        f"{json.dumps(list(new_facts), ensure_ascii=False, indent=2)}"
    )
