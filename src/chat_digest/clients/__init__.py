"""Generative backends for conversation summaries."""

from ..utils.config import Config, DEFAULT_MODELS, PROVIDER_GEMINI
from .base import LLMClient


def create_client(config: Config) -> LLMClient:
    """Build the backend selected by SUMMARY_PROVIDER.

    An empty SUMMARY_MODEL falls back to the provider's default model.
    """
    provider = (config.SUMMARY_PROVIDER or PROVIDER_GEMINI).strip().lower()
    if provider not in DEFAULT_MODELS:
        raise ValueError(f"Unknown summary provider '{config.SUMMARY_PROVIDER}' (expected 'gemini' or 'openai')")
    model = (config.SUMMARY_MODEL or "").strip() or DEFAULT_MODELS[provider]

    if provider == PROVIDER_GEMINI:
        from .gemini_client import GeminiClient
        return GeminiClient(model, config)
    from .openai_client import OpenAIClient
    return OpenAIClient(model, config)


__all__ = ["LLMClient", "create_client"]
