"""
llm_client.py — Azure OpenAI chat-completions wrapper
=====================================================
Shared by RoadmapGeneratorAgent and SuggestionAgent.  Returns the raw
assistant text; parsing and recovery are the caller's job.

Any transport, HTTP or timeout error from the SDK is re-raised as
GenerationFailure so callers only handle the LearnPath taxonomy.
"""

from __future__ import annotations

import logging

from openai import AzureOpenAI, OpenAIError

from learnpath.config import AzureOpenAIConfig, get_settings
from learnpath.errors import GenerationFailure

logger = logging.getLogger(__name__)


class LLMClient:
    """Thin synchronous client: one system + one user message in, text out."""

    def __init__(self, config: AzureOpenAIConfig | None = None) -> None:
        self._cfg = config or get_settings().openai
        self._client: AzureOpenAI | None = None
        if self._cfg.is_configured:
            self._client = AzureOpenAI(
                azure_endpoint=self._cfg.endpoint,
                api_key=self._cfg.api_key,
                api_version=self._cfg.api_version,
                timeout=self._cfg.timeout_s,
                max_retries=0,
            )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        json_mode: bool = True,
    ) -> str:
        """Return the assistant's reply text for a single-turn prompt."""
        if self._client is None:
            logger.error("Azure OpenAI is not configured. "
                         "Set AZURE_OPENAI_ENDPOINT + AZURE_OPENAI_API_KEY.")
            raise GenerationFailure()

        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = self._client.chat.completions.create(
                model=self._cfg.deployment,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user",   "content": user_message},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs,
            )
        except OpenAIError as exc:
            logger.error("Azure OpenAI call failed: %s", exc)
            raise GenerationFailure() from exc

        if not response.choices:
            raise GenerationFailure("The model returned no content. Please try again.")
        return response.choices[0].message.content or ""
