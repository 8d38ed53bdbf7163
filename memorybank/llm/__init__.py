"""
LLM Provider Interface Module.

Provides a unified interface for the reasoning backends (OpenAI, Google Gemini)
that power fact extraction and merge decisions.
"""

from .base import LLMProvider, LLMResponse
from .openai_client import OpenAIProvider
from .google_client import GoogleProvider
from .factory import create_llm_provider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "OpenAIProvider",
    "GoogleProvider",
    "create_llm_provider",
]
