"""
Google Gemini LLM Provider Implementation.

Provides integration with the Gemini API through the google-genai SDK.
"""

import logging

from google import genai
from google.genai import types
from pydantic import BaseModel

from .base import LLMProvider, LLMResponse

logger = logging.getLogger("memorybank.llm.google")


class GoogleProvider(LLMProvider):
    """Google Gemini provider implementation."""

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash"):
        """
        Initialize the Google provider.

        Args:
            api_key: Google API key.
            model: Model to use (default: gemini-2.0-flash).
        """
        self._api_key = api_key
        self._model = model
        self._client = genai.Client(api_key=api_key) if api_key else None

    @property
    def provider_name(self) -> str:
        return "Google"

    @property
    def model_name(self) -> str:
        return self._model

    def is_configured(self) -> bool:
        return self._client is not None and bool(self._api_key)

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        response_schema: type[BaseModel] | None = None,
    ) -> LLMResponse:
        """
        Generate a response using the Gemini API.

        Structured requests pass the pydantic model straight through as the
        response schema and ask for an application/json body.
        """
        if self._client is None:
            raise RuntimeError("GoogleProvider has no API key configured")

        logger.debug(f"Sending request to Google ({self._model})")

        config_kwargs = {
            "system_instruction": system_prompt,
            "temperature": temperature,
            "max_output_tokens": max_tokens,
        }
        if response_schema is not None:
            config_kwargs["response_mime_type"] = "application/json"
            config_kwargs["response_schema"] = response_schema
        generation_config = types.GenerateContentConfig(**config_kwargs)

        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=generation_config,
            )

            content = response.text or ""

            # Extract usage metadata if available
            usage = None
            if getattr(response, "usage_metadata", None):
                usage = {
                    "prompt_tokens": response.usage_metadata.prompt_token_count,
                    "completion_tokens": response.usage_metadata.candidates_token_count,
                    "total_tokens": response.usage_metadata.total_token_count,
                }

            logger.debug(f"Google response received, tokens used: {usage}")

            return LLMResponse(
                content=content,
                model=self._model,
                usage=usage,
                raw_response=response,
            )

        except Exception as e:
            logger.error(f"Google API error: {e}")
            raise
