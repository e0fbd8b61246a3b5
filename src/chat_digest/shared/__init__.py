"""Shared utilities used across chat-digest components."""

from .markup import convert_markdown_to_whatsapp

__all__ = ["convert_markdown_to_whatsapp"]
