"""Base LLM client class.

Simple abstract base for the generative backends used to write summaries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..utils.config import Config


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    provider: str = "unknown"

    def __init__(self, model: str, config: Config):
        self.model = model
        self.config = config

    @property
    def sampling(self) -> dict[str, Any]:
        """Deterministic sampling parameters shared by all backends."""
        return {
            "temperature": float(self.config.SUMMARY_TEMPERATURE),
            "top_p": float(self.config.SUMMARY_TOP_P),
            "top_k": int(self.config.SUMMARY_TOP_K),
        }

    @abstractmethod
    def query(self, system_instruction: str, prompt: str) -> str:
        """Run a single completion.

        Args:
            system_instruction: Fixed instruction describing the task.
            prompt: The rendered transcript.

        Returns:
            The model's text, or an empty string if it produced none.
        """
        pass

    def describe(self) -> str:
        return f"{self.provider}:{self.model}"
