"""Google Gemini client (google-genai SDK)."""

from __future__ import annotations

import logging
import os

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..clients.base import LLMClient
from ..utils.config import Config, PROVIDER_GEMINI

logger = logging.getLogger(__name__)


class GeminiClient(LLMClient):
    """Client for the Gemini API."""

    provider = PROVIDER_GEMINI

    def __init__(self, model: str, config: Config, api_key: str | None = None):
        """Initialize Gemini client.

        Args:
            model: Model name/ID (e.g. gemini-2.5-flash-lite)
            config: Application config
            api_key: Optional API key (defaults to config, then GEMINI_API_KEY / GOOGLE_API_KEY)
        """
        super().__init__(model, config)
        self.api_key = api_key or config.GEMINI_API_KEY or self._get_api_key()
        if not self.api_key:
            raise ValueError("Gemini API key not found. Set CHAT_DIGEST_GEMINI_API_KEY or GEMINI_API_KEY.")
        self.client = genai.Client(api_key=self.api_key)

    def _get_api_key(self) -> str | None:
        return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")

    def query(self, system_instruction: str, prompt: str) -> str:
        params = self.sampling
        generation_config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=params["temperature"],
            top_p=params["top_p"],
            top_k=params["top_k"],
        )
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=generation_config,
            )
        except genai_errors.APIError as e:
            logger.error(f"Gemini request failed ({self.model}): {e}")
            raise

        text = response.text
        if not text:
            logger.warning(f"Gemini returned no text ({self.model})")
            return ""
        return text
