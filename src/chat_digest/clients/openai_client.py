"""OpenAI-compatible API client.

Supports OpenAI API and any OpenAI-compatible endpoint (llama.cpp server, vLLM, Ollama, etc.)
"""

from __future__ import annotations

import logging
import os

from openai import OpenAI, OpenAIError

from ..clients.base import LLMClient
from ..utils.config import Config, PROVIDER_OPENAI

logger = logging.getLogger(__name__)


class OpenAIClient(LLMClient):
    """Client for OpenAI API and OpenAI-compatible endpoints."""

    provider = PROVIDER_OPENAI

    def __init__(self, model: str, config: Config, base_url: str | None = None, api_key: str | None = None):
        """Initialize OpenAI client.

        Args:
            model: Model name/ID
            config: Application config
            base_url: Optional custom API endpoint for OpenAI-compatible servers
            api_key: Optional API key (defaults to config, then OPENAI_API_KEY env var)
        """
        super().__init__(model, config)
        self.base_url = base_url or config.OPENAI_BASE_URL
        self.api_key = api_key or config.OPENAI_API_KEY or self._get_api_key()

        # Local OpenAI-compatible servers usually don't need a key
        if not self.api_key and not self.base_url:
            raise ValueError("OpenAI API key not found. Set OPENAI_API_KEY environment variable.")

        effective_key = self.api_key or "not-needed"
        if self.base_url:
            self.client = OpenAI(api_key=effective_key, base_url=self.base_url)
            logger.debug(f"OpenAI client using custom endpoint: {self.base_url}")
        else:
            self.client = OpenAI(api_key=effective_key)

    def _get_api_key(self) -> str | None:
        return os.getenv("OPENAI_API_KEY")

    def query(self, system_instruction: str, prompt: str) -> str:
        params = self.sampling
        # top_k is not part of the chat completions API
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_instruction},
                {"role": "user", "content": prompt},
            ],
            "temperature": params["temperature"],
            "top_p": params["top_p"],
        }
        try:
            completion = self.client.chat.completions.create(**payload)
        except OpenAIError as e:
            logger.error(f"OpenAI request failed ({self.model}): {e}")
            raise

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""
