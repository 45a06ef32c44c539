"""Client wrapper for OpenAI chat completions."""

from __future__ import annotations

import logging

import openai
from openai import AsyncOpenAI

from app.core.config import OpenAISettings
from app.core.errors import SummaryProviderError

logger = logging.getLogger(__name__)


class OpenAICompletionClient:
    """Expose a single ``complete(system, user)`` call over the chat API."""

    def __init__(
        self, settings: OpenAISettings, client: AsyncOpenAI | None = None
    ) -> None:
        self._settings = settings
        self._client = client or AsyncOpenAI(
            api_key=settings.api_key,
            organization=settings.organization,
            timeout=settings.timeout_seconds,
            max_retries=0,
        )

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the stripped completion text, raising ``SummaryProviderError``."""
        try:
            response = await self._client.chat.completions.create(
                model=self._settings.chat_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self._settings.temperature,
                max_tokens=self._settings.max_tokens,
            )
        except openai.OpenAIError as exc:
            raise SummaryProviderError(f"OpenAI completion failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else ""
        return (content or "").strip()


__all__ = ["OpenAICompletionClient"]
